"""Read-only selectors over the identity store."""

from approval_kernel.selectors.base import BaseSelector
from approval_kernel.selectors.user_account_selector import (
    UserAccountDTO,
    UserAccountSelector,
)

__all__ = ["BaseSelector", "UserAccountDTO", "UserAccountSelector"]
