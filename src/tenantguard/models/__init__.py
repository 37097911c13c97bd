"""
SQLAlchemy models.
"""

from .base import Base
from .policy import PolicyRuleModel, RoleAssignmentModel, RoleInheritanceModel, RoleModel
from .tenant import TenantModel
from .token import AccessTokenModel

__all__ = [
    "Base",
    "PolicyRuleModel",
    "RoleInheritanceModel",
    "RoleAssignmentModel",
    "RoleModel",
    "AccessTokenModel",
    "TenantModel",
]
