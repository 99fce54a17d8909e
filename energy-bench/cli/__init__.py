"""
Command line entry points for the energy benchmark.
"""
