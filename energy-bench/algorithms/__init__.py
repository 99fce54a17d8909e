"""
Measurement algorithms for the energy benchmark.
"""
