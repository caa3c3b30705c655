"""
Module: approval_kernel.selectors.user_account_selector
Responsibility: Read-only lookups of registered accounts.  Implements the
    ``IdentityResolver`` protocol the chain builder uses to fill
    ``approver.user_id``.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Inactive accounts never resolve.
    - Lookups use the same e-mail normalization as the Directory.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from approval_kernel.domain.directory import normalize_email
from approval_kernel.models.user_account import UserAccountModel
from approval_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class UserAccountDTO:
    id: UUID
    email: str
    full_name: str
    system_role: str
    is_active: bool


class UserAccountSelector(BaseSelector[UserAccountModel]):
    """Account queries.  Usable directly as an ``IdentityResolver``."""

    def get_by_email(self, email: str | None) -> UserAccountDTO | None:
        key = normalize_email(email)
        if not key:
            return None
        model = self.session.execute(
            select(UserAccountModel).where(UserAccountModel.email == key)
        ).scalar_one_or_none()
        return self._to_dto(model) if model is not None else None

    def resolve_user_id(self, email: str) -> UUID | None:
        key = normalize_email(email)
        if not key:
            return None
        return self.session.execute(
            select(UserAccountModel.id).where(
                UserAccountModel.email == key,
                UserAccountModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def list_active(self) -> list[UserAccountDTO]:
        models = self.session.execute(
            select(UserAccountModel)
            .where(UserAccountModel.is_active.is_(True))
            .order_by(UserAccountModel.email)
        ).scalars().all()
        return [self._to_dto(m) for m in models]

    @staticmethod
    def _to_dto(model: UserAccountModel) -> UserAccountDTO:
        return UserAccountDTO(
            id=model.id,
            email=model.email,
            full_name=model.full_name,
            system_role=str(getattr(model.system_role, "value", model.system_role)),
            is_active=model.is_active,
        )
