"""
Module: approval_kernel.models.user_account
Responsibility: ORM persistence for registered system accounts.  An approver
    found in the org chart gets a ``user_id`` on their step only when an
    active account with the same e-mail exists here.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from selectors/, domain/, or outer layers.

Invariants enforced:
    - email is stored normalized (trimmed, lower-case) and is unique.

Failure modes:
    - IntegrityError on duplicate email (uq_user_account_email constraint).
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from approval_kernel.db.base import TrackedBase


class SystemRole(str, Enum):
    """Application role of an account.  Informational for the engine."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    FINANCE = "finance"
    SUPPLY_CHAIN = "supply_chain"
    ADMIN = "admin"


class UserAccountModel(TrackedBase):
    """A registered system account keyed by e-mail."""

    __tablename__ = "user_accounts"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_account_email"),
        Index("idx_user_account_active", "is_active"),
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    system_role: Mapped[SystemRole] = mapped_column(
        String(20),
        nullable=False,
        default=SystemRole.EMPLOYEE,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return (value or "").strip().lower()

    def __repr__(self) -> str:
        return f"<UserAccount {self.email} active={self.is_active}>"
