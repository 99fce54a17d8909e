"""
Server processes launched from a command line.
"""

import logging
import shlex
import subprocess
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Union

import psutil
import requests

from configuration import (
    PROCESS_STARTUP_TIMEOUT_SECONDS,
    PROCESS_STOP_TIMEOUT_SECONDS,
    READY_POLL_INTERVAL_SECONDS,
    READY_PROBE_TIMEOUT_SECONDS,
)
from common.exceptions import ProcessStartError
from systems.base import ScopedProcess

logger = logging.getLogger(__name__)


class ServerProcess(ScopedProcess):
    """A server under test started with ``subprocess`` for the span of a run.

    Stopping terminates the whole process tree, so servers launched through a
    shell or a wrapper script do not leak children.
    """

    def __init__(
        self,
        name: str,
        command: Union[str, Sequence[str]],
        url: Optional[str] = None,
        ready_url: Optional[str] = None,
        startup_timeout: float = PROCESS_STARTUP_TIMEOUT_SECONDS,
        stop_timeout: float = PROCESS_STOP_TIMEOUT_SECONDS,
        cwd: Optional[str] = None,
    ):
        """Initialize the process description.

        Args:
            name: Variation name used to select this process
            command: Command line, as a string or an argument list
            url: Base URL the server answers on
            ready_url: URL polled until it answers before the run starts
            startup_timeout: Maximum wait for ``ready_url``
            stop_timeout: Grace period between SIGTERM and SIGKILL
            cwd: Working directory of the process
        """
        super().__init__(name, url)
        self.command: List[str] = shlex.split(command) if isinstance(command, str) else list(command)
        self.ready_url = ready_url
        self.startup_timeout = startup_timeout
        self.stop_timeout = stop_timeout
        self.cwd = cwd

    @contextmanager
    def start(self) -> Iterator["ServerProcess"]:
        """Start the process and stop it when the context exits.

        Raises:
            ProcessStartError: If the command cannot be launched, exits early
                or never becomes ready
        """
        logger.info(f"Starting process {self.name}: {' '.join(self.command)}")
        try:
            proc = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProcessStartError(f"Failed to launch {self.name}: {e}") from e

        try:
            if self.ready_url:
                self._wait_until_ready(proc)
            yield self
        finally:
            self._stop(proc)

    def _wait_until_ready(self, proc: subprocess.Popen) -> None:
        deadline = time.monotonic() + self.startup_timeout
        while time.monotonic() < deadline:
            if proc.poll() is not None:
                raise ProcessStartError(
                    f"Process {self.name} exited with code {proc.returncode} before becoming ready"
                )
            try:
                requests.get(self.ready_url, timeout=READY_PROBE_TIMEOUT_SECONDS)
                logger.info(f"Process {self.name} is ready")
                return
            except requests.RequestException:
                time.sleep(READY_POLL_INTERVAL_SECONDS)

        raise ProcessStartError(
            f"Process {self.name} not ready after {self.startup_timeout:.0f}s ({self.ready_url})"
        )

    def _stop(self, proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            logger.info(f"Process {self.name} already exited with code {proc.returncode}")
            return

        try:
            parent = psutil.Process(proc.pid)
            tree = [*parent.children(recursive=True), parent]
        except psutil.NoSuchProcess:
            proc.wait()
            return

        for p in tree:
            try:
                p.terminate()
            except psutil.NoSuchProcess:
                pass

        _, alive = psutil.wait_procs(tree, timeout=self.stop_timeout)
        for p in alive:
            logger.warning(f"Process {self.name} (pid {p.pid}) ignored SIGTERM, killing")
            try:
                p.kill()
            except psutil.NoSuchProcess:
                pass

        proc.wait()
        logger.info(f"Stopped process {self.name}")
