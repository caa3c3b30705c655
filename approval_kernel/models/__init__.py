"""ORM models for the approval kernel identity store."""

from approval_kernel.models.user_account import SystemRole, UserAccountModel

__all__ = ["SystemRole", "UserAccountModel"]
