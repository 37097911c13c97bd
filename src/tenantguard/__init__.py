"""
tenantguard - multi-tenant policy-based authorization.
"""

__version__ = "0.1.0"
