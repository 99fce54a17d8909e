"""
Metrics export for the energy benchmark.
"""
