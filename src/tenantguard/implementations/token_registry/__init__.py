"""
Token registry implementations.
"""
