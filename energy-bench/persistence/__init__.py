"""
Result storage for the energy benchmark.
"""
