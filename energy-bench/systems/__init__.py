"""
Systems under test and sensors for the energy benchmark.
"""
