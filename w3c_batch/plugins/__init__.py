"""
Page checker implementations.
"""
