"""
Policy store implementations.
"""
