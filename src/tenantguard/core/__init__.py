"""
Core: configuration, authorization, hooks and wiring.
"""
