"""
Typed Exception Hierarchy for the Approval Workflow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The API boundary must tell "wrong person" apart from "wrong time" so the
user sees the right message.  Parsing exception text for that is fragile,
so every failure the engine surfaces has:

  1. Its own exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured attributes (level, email, status ...)

Example - WRONG way:
    try:
        orchestrator.record_decision(...)
    except Exception as e:
        if "not your turn" in str(e):
            ...

Example - RIGHT way:
    try:
        orchestrator.record_decision(...)
    except UnauthorizedApproverError as e:
        api_response(403, code=e.code, level=e.level)
    except InvalidTransitionError as e:
        api_response(409, code=e.code, level=e.level, status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalWorkflowError (base)
    |
    +-- ChainError
    |   +-- LevelNotFoundError
    |   +-- InvalidTransitionError
    |   +-- InvalidDecisionError
    |   +-- MalformedChainError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedApproverError
    |
    +-- DirectoryError
    |   +-- PersonNotFoundError
    |   +-- DirectoryIntegrityError
    |
    +-- GradingError
    |   +-- InvalidGradeError
    |   +-- MissingGradeError
    |
    +-- ConfigurationError
        +-- WorkflowNotConfiguredError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                     | When Raised
----------------|--------------------------|--------------------------------------
Chain           | LEVEL_NOT_FOUND          | Level does not exist in the chain
                | INVALID_TRANSITION       | Step not pending / not current level
                | INVALID_DECISION         | Decision is not approve / reject
                | MALFORMED_CHAIN          | Levels not contiguous, bad skip data
----------------|--------------------------|--------------------------------------
Authorization   | UNAUTHORIZED_APPROVER    | Actor is not the step's approver
----------------|--------------------------|--------------------------------------
Directory       | PERSON_NOT_FOUND         | Strict lookup of an unknown e-mail
                | DIRECTORY_INTEGRITY      | Duplicate e-mail in org data
----------------|--------------------------|--------------------------------------
Grading         | INVALID_GRADE            | Grade outside 1.0-5.0 or too precise
                | MISSING_GRADE            | Kind requires a grade, none given
----------------|--------------------------|--------------------------------------
Configuration   | WORKFLOW_NOT_CONFIGURED  | No definition for a workflow kind

Data-quality problems in the org chart (dangling ``reports_to``,
unregistered role holders) are NOT exceptions.  The builder emits a step
with a null identity and reports a warning; ``can_act`` fails closed for
that step until the org data is fixed.
"""


class ApprovalWorkflowError(Exception):
    """
    Base exception for all approval workflow errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_WORKFLOW_ERROR"


# Chain state exceptions


class ChainError(ApprovalWorkflowError):
    """Base exception for chain state errors."""

    code: str = "CHAIN_ERROR"


class LevelNotFoundError(ChainError):
    """The referenced level does not exist in the chain."""

    code: str = "LEVEL_NOT_FOUND"

    def __init__(self, level: int, chain_length: int):
        self.level = level
        self.chain_length = chain_length
        super().__init__(
            f"Approval level {level} not found (chain has {chain_length} levels)"
        )


class InvalidTransitionError(ChainError):
    """Action attempted on a step that is not currently actionable."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        level: int,
        current_status: str,
        reason: str,
        actionable_level: int | None = None,
    ):
        self.level = level
        self.current_status = current_status
        self.reason = reason
        self.actionable_level = actionable_level
        super().__init__(
            f"Cannot act on level {level} (status '{current_status}'): {reason}"
        )


class InvalidDecisionError(ChainError):
    """Decision value is not one of the supported decisions."""

    code: str = "INVALID_DECISION"

    def __init__(self, decision: object, allowed: tuple[str, ...]):
        self.decision = decision
        self.allowed = allowed
        super().__init__(
            f"Unknown decision {decision!r}; expected one of {', '.join(allowed)}"
        )


class MalformedChainError(ChainError):
    """Chain violates a structural invariant."""

    code: str = "MALFORMED_CHAIN"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed approval chain: {reason}")


# Authorization exceptions


class AuthorizationError(ApprovalWorkflowError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedApproverError(AuthorizationError):
    """Acting person is not the approver bound to the step."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(self, actor_email: str, level: int, expected_email: str | None):
        self.actor_email = actor_email
        self.level = level
        self.expected_email = expected_email
        super().__init__(
            f"{actor_email} is not authorized to act on approval level {level}"
        )


# Directory exceptions


class DirectoryError(ApprovalWorkflowError):
    """Base exception for directory errors."""

    code: str = "DIRECTORY_ERROR"


class PersonNotFoundError(DirectoryError):
    """Strict directory lookup for an unknown e-mail."""

    code: str = "PERSON_NOT_FOUND"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Person not found in directory: {email}")


class DirectoryIntegrityError(DirectoryError):
    """Org data cannot form a directory (e.g. duplicate e-mails)."""

    code: str = "DIRECTORY_INTEGRITY"

    def __init__(self, reason: str, email: str | None = None):
        self.reason = reason
        self.email = email
        super().__init__(f"Directory integrity violation: {reason}")


# Grading exceptions


class GradingError(ApprovalWorkflowError):
    """Base exception for grading payload errors."""

    code: str = "GRADING_ERROR"


class InvalidGradeError(GradingError):
    """Grade is outside 1.0-5.0 or has more than one decimal place."""

    code: str = "INVALID_GRADE"

    def __init__(self, grade: object, reason: str):
        self.grade = grade
        self.reason = reason
        super().__init__(f"Invalid grade {grade!r}: {reason}")


class MissingGradeError(GradingError):
    """Workflow kind requires a grade on approval but none was supplied."""

    code: str = "MISSING_GRADE"

    def __init__(self, workflow_kind: str, level: int):
        self.workflow_kind = workflow_kind
        self.level = level
        super().__init__(
            f"Approving level {level} of a {workflow_kind} chain requires a grade"
        )


# Configuration exceptions


class ConfigurationError(ApprovalWorkflowError):
    """Base exception for workflow configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class WorkflowNotConfiguredError(ConfigurationError):
    """No workflow definition exists for the requested kind."""

    code: str = "WORKFLOW_NOT_CONFIGURED"

    def __init__(self, workflow_kind: str):
        self.workflow_kind = workflow_kind
        super().__init__(f"No workflow definition configured for '{workflow_kind}'")
