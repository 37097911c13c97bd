"""
Directory implementations.
"""
