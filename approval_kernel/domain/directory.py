"""
Organisational directory (``approval_kernel.domain.directory``).

Responsibility
--------------
Immutable, versioned snapshot of the people who can appear in an
approval chain: who they are, which department they sit in, and whom
they report to.  Answers "who does X report to" in O(1) and "who reports
to X" in O(fan-out).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  A Directory is
built by ``approval_config`` from YAML at the load/reload boundary and
passed into the builder and orchestrator on every call; nothing reads a
module-global org chart.

Invariants enforced
-------------------
* E-mail keys are unique after normalisation (lower-case, trimmed);
  duplicates raise ``DirectoryIntegrityError`` at construction.
* Lookups never raise for unknown people: ``find_by_email`` returns
  ``NotFound`` and ``supervisor_of`` returns None.  Dangling
  ``reports_to`` references are a data-quality condition, reported by
  ``dangling_references()``.
* The snapshot is never mutated after construction.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from approval_kernel.exceptions import DirectoryIntegrityError, PersonNotFoundError


def normalize_email(email: str | None) -> str:
    """Canonical form used for every e-mail comparison."""
    return str(email or "").strip().lower()


def same_email(left: str | None, right: str | None) -> bool:
    """Case-insensitive, trimmed e-mail equality.  Blank never matches."""
    a = normalize_email(left)
    return bool(a) and a == normalize_email(right)


# =========================================================================
# Value objects
# =========================================================================


@dataclass(frozen=True)
class Person:
    """A node in the org chart.

    ``hierarchy_level`` and ``can_supervise`` are informational only;
    traversal always follows ``reports_to``.
    """

    email: str
    name: str
    department: str
    position: str
    reports_to: str | None = None
    can_supervise: frozenset[str] = frozenset()
    hierarchy_level: int = 0
    is_department_head: bool = False
    approval_authority: str | None = None

    @property
    def key(self) -> str:
        return normalize_email(self.email)

    @property
    def is_root(self) -> bool:
        return not normalize_email(self.reports_to)


@dataclass(frozen=True)
class Department:
    """A department with its head and the alternative names it goes by."""

    name: str
    head_email: str | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Found:
    """Successful directory lookup."""

    person: Person
    found: bool = field(default=True, init=False)


@dataclass(frozen=True)
class NotFound:
    """Unsuccessful directory lookup.  A normal branch, not an error."""

    email: str
    found: bool = field(default=False, init=False)


LookupResult = Found | NotFound


# =========================================================================
# Directory
# =========================================================================


class Directory:
    """Read-only org-chart snapshot.

    Args:
        persons: Every person in the org chart.
        departments: Department records (head + aliases).  Departments
            referenced by a person but not listed here still work for
            ``members_of``.
        role_holders: Named roles (``finance``, ``coordinator``,
            ``business_head``, ``top_approver`` ...) mapped to e-mails.
        version: Identifier of the source data (config checksum).
    """

    def __init__(
        self,
        persons: Iterable[Person],
        departments: Iterable[Department] = (),
        role_holders: Mapping[str, str] | None = None,
        version: str = "",
    ) -> None:
        by_email: dict[str, Person] = {}
        for person in persons:
            key = person.key
            if not key:
                raise DirectoryIntegrityError("person without e-mail", person.name)
            if key in by_email:
                raise DirectoryIntegrityError("duplicate e-mail", key)
            by_email[key] = person

        reports: dict[str, list[Person]] = {}
        for person in by_email.values():
            if not person.is_root:
                reports.setdefault(normalize_email(person.reports_to), []).append(person)

        dept_by_name: dict[str, Department] = {}
        aliases: dict[str, str] = {}
        for dept in departments:
            dept_by_name[dept.name] = dept
            aliases[dept.name.strip().lower()] = dept.name
            for alias in dept.aliases:
                aliases[alias.strip().lower()] = dept.name
        for person in by_email.values():
            aliases.setdefault(person.department.strip().lower(), person.department)

        self._by_email = MappingProxyType(by_email)
        self._reports = MappingProxyType(
            {k: tuple(v) for k, v in reports.items()}
        )
        self._departments = MappingProxyType(dept_by_name)
        self._aliases = MappingProxyType(aliases)
        self._roles = MappingProxyType(
            {role: normalize_email(email) for role, email in (role_holders or {}).items()}
        )
        self._version = version

    # -- basic lookups -----------------------------------------------------

    @property
    def version(self) -> str:
        return self._version

    @property
    def persons(self) -> tuple[Person, ...]:
        return tuple(self._by_email.values())

    def __len__(self) -> int:
        return len(self._by_email)

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and normalize_email(email) in self._by_email

    def find_by_email(self, email: str | None) -> LookupResult:
        """Case-insensitive, trimmed exact match."""
        person = self._by_email.get(normalize_email(email))
        if person is None:
            return NotFound(email=normalize_email(email))
        return Found(person=person)

    def get(self, email: str) -> Person:
        """Strict lookup.

        Raises:
            PersonNotFoundError: if the e-mail is not in the directory.
        """
        result = self.find_by_email(email)
        if isinstance(result, NotFound):
            raise PersonNotFoundError(result.email)
        return result.person

    def supervisor_of(self, email: str | None) -> Person | None:
        """The person ``email`` reports to.

        None when the person is unknown, is a hierarchy root, or reports to
        an e-mail that is not in the directory.
        """
        result = self.find_by_email(email)
        if isinstance(result, NotFound) or result.person.is_root:
            return None
        return self._by_email.get(normalize_email(result.person.reports_to))

    def subordinates_of(self, email: str | None) -> tuple[Person, ...]:
        """Direct reports of ``email``."""
        return self._reports.get(normalize_email(email), ())

    # -- departments -------------------------------------------------------

    def resolve_department(self, name: str | None) -> str | None:
        """Canonical department name for ``name`` or one of its aliases."""
        if not name:
            return None
        return self._aliases.get(name.strip().lower())

    def department_names(self) -> tuple[str, ...]:
        return tuple(sorted(set(self._aliases.values())))

    def department_head(self, department: str | None) -> Person | None:
        canonical = self.resolve_department(department)
        if canonical is None:
            return None
        dept = self._departments.get(canonical)
        if dept is not None and dept.head_email:
            return self._by_email.get(normalize_email(dept.head_email))
        for person in self._by_email.values():
            if person.department == canonical and person.is_department_head:
                return person
        return None

    def members_of(self, department: str | None) -> tuple[Person, ...]:
        canonical = self.resolve_department(department)
        if canonical is None:
            return ()
        return tuple(p for p in self._by_email.values() if p.department == canonical)

    # -- roles -------------------------------------------------------------

    def role_email(self, role: str) -> str | None:
        """Configured e-mail for a named role (may not be in the directory)."""
        return self._roles.get(role) or None

    def holder_of(self, role: str) -> Person | None:
        email = self._roles.get(role)
        if not email:
            return None
        return self._by_email.get(email)

    def roles_of(self, email: str | None) -> tuple[str, ...]:
        key = normalize_email(email)
        return tuple(sorted(role for role, holder in self._roles.items() if holder == key))

    # -- supervision metadata ---------------------------------------------

    def supervisable_positions(self, email: str | None) -> tuple[str, ...]:
        result = self.find_by_email(email)
        if isinstance(result, NotFound):
            return ()
        return tuple(sorted(result.person.can_supervise))

    def potential_supervisors(self, department: str, position: str) -> tuple[Person, ...]:
        """People in ``department`` whose ``can_supervise`` lists ``position``."""
        return tuple(
            p for p in self.members_of(department) if position in p.can_supervise
        )

    # -- data quality ------------------------------------------------------

    def dangling_references(self) -> tuple[tuple[str, str], ...]:
        """(person e-mail, missing supervisor e-mail) for every broken edge."""
        return tuple(
            (p.key, normalize_email(p.reports_to))
            for p in self._by_email.values()
            if not p.is_root and normalize_email(p.reports_to) not in self._by_email
        )
