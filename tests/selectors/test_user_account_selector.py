"""
Tests for UserAccountSelector and its use as the chain builder's identity resolver.

Uses an in-memory SQLite session (see ``db_session`` in conftest).
"""

import pytest
from sqlalchemy.exc import IntegrityError

from approval_engines.chain_builder import build_chain
from approval_kernel.db.engine import get_session, reset_engine, session_scope
from approval_kernel.domain.approval import ChainSubject
from approval_kernel.models.user_account import SystemRole, UserAccountModel
from approval_kernel.selectors.user_account_selector import UserAccountSelector


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _add_account(session, email, full_name="Someone", role=SystemRole.EMPLOYEE, active=True):
    account = UserAccountModel(
        email=email,
        full_name=full_name,
        system_role=role,
        is_active=active,
    )
    session.add(account)
    session.flush()
    return account


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class TestUserAccountModel:

    def test_email_is_normalized_on_write(self, db_session):
        account = _add_account(db_session, "  Finance@Corp.TEST ")
        assert account.email == "finance@corp.test"
        assert account.id is not None

    def test_duplicate_email_rejected(self, db_session):
        _add_account(db_session, "dup@corp.test")
        with pytest.raises(IntegrityError):
            _add_account(db_session, "DUP@corp.test")

    def test_timestamps_set_by_database(self, db_session):
        account = _add_account(db_session, "stamped@corp.test")
        db_session.refresh(account)
        assert account.created_at is not None
        assert account.updated_at is not None


# ---------------------------------------------------------------------------
# Transactional scope
# ---------------------------------------------------------------------------


class TestSessionScope:

    def test_commits_on_success(self, db_session):
        with session_scope() as session:
            session.add(UserAccountModel(email="kept@corp.test", full_name="Kept"))

        assert UserAccountSelector(db_session).get_by_email("kept@corp.test") is not None

    def test_rolls_back_on_error(self, db_session):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(UserAccountModel(email="lost@corp.test", full_name="Lost"))
                session.flush()
                raise RuntimeError("abort")

        assert UserAccountSelector(db_session).get_by_email("lost@corp.test") is None

    def test_requires_initialized_engine(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_session()


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class TestUserAccountSelector:

    def test_get_by_email(self, db_session):
        _add_account(db_session, "finance@corp.test", "Rani Finance", SystemRole.FINANCE)
        dto = UserAccountSelector(db_session).get_by_email(" FINANCE@corp.test")

        assert dto.full_name == "Rani Finance"
        assert dto.system_role == "finance"
        assert dto.is_active

    def test_get_by_email_missing(self, db_session):
        selector = UserAccountSelector(db_session)
        assert selector.get_by_email("ghost@corp.test") is None
        assert selector.get_by_email("") is None

    def test_resolve_user_id(self, db_session):
        account = _add_account(db_session, "coord@corp.test")
        assert UserAccountSelector(db_session).resolve_user_id("Coord@corp.test") == account.id

    def test_inactive_account_does_not_resolve(self, db_session):
        _add_account(db_session, "left@corp.test", active=False)
        selector = UserAccountSelector(db_session)

        assert selector.resolve_user_id("left@corp.test") is None
        assert selector.get_by_email("left@corp.test") is not None

    def test_list_active_sorted_by_email(self, db_session):
        _add_account(db_session, "zed@corp.test")
        _add_account(db_session, "amy@corp.test")
        _add_account(db_session, "gone@corp.test", active=False)

        emails = [dto.email for dto in UserAccountSelector(db_session).list_active()]
        assert emails == ["amy@corp.test", "zed@corp.test"]


# ---------------------------------------------------------------------------
# Identity resolution during chain build
# ---------------------------------------------------------------------------


class TestSelectorAsIdentityResolver:

    def test_registered_approvers_get_user_ids(self, db_session, directory,
                                               budget_code_definition):
        finance = _add_account(db_session, "finance@corp.test", role=SystemRole.FINANCE)
        _add_account(db_session, "biz.head@corp.test", active=False)

        chain = build_chain(
            definition=budget_code_definition,
            subject=ChainSubject(creator_email="tech@corp.test"),
            directory=directory,
            identity=UserAccountSelector(db_session),
        ).chain

        assert chain.step_at(1).approver.user_id is None
        assert chain.step_at(2).approver.user_id is None
        assert chain.step_at(3).approver.user_id == finance.id
