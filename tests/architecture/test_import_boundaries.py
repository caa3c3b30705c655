"""
Import-boundary enforcement for the layered approval packages.

1. Engine purity      -- approval_engines/** may import only the kernel
                         domain types and exceptions; no ORM, YAML, config,
                         services, persistence or logging setup.
2. Engine no-impure   -- approval_engines/** may not call wall-clock or
                         environment functions.  Decision timestamps are
                         parameters.
3. Domain purity      -- approval_kernel/domain/** stays free of ORM and
                         persistence imports.
4. Config centralisation -- only approval_config/ may import its loader and
                         validator.
5. Dependency direction -- validates the full dependency DAG.

All scanning is done via AST -- these tests are read-only.
"""

import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]

PRODUCTION_PACKAGES = (
    "approval_kernel",
    "approval_engines",
    "approval_services",
    "approval_config",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(root: str) -> list[Path]:
    """Return all .py files under *root*, sorted for deterministic order."""
    return sorted((REPO_ROOT / root).rglob("*.py"))


def _relative(path: Path) -> str:
    return path.relative_to(REPO_ROOT).as_posix()


def _parse(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *path*."""
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(path)):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    for prefix in prefixes:
        if module == prefix or module.startswith(f"{prefix}."):
            return True
    return False


def _extract_attribute_calls(path: Path) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(path)):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


# ---------------------------------------------------------------------------
# 1. TestEnginePurity
# ---------------------------------------------------------------------------

class TestEnginePurity:
    """approval_engines/** may import the stdlib, itself, and
    approval_kernel.domain / approval_kernel.exceptions only."""

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "yaml",
        "sqlite3",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.selectors",
        "approval_kernel.logging_config",
        "approval_services",
        "approval_config",
    )

    ALLOWED_INTERNAL = (
        "approval_engines",
        "approval_kernel.domain",
        "approval_kernel.exceptions",
    )

    def test_engine_files_have_no_forbidden_imports(self):
        violations: list[str] = []

        for path in _python_files("approval_engines"):
            for lineno, module in _extract_imports(path):
                if _matches_any(module, self.FORBIDDEN_PREFIXES):
                    violations.append(f"  {_relative(path)}:{lineno} imports '{module}'")
                elif module.startswith("approval_") and not _matches_any(
                    module, self.ALLOWED_INTERNAL
                ):
                    violations.append(f"  {_relative(path)}:{lineno} imports '{module}'")

        assert not violations, (
            "Engine purity violation -- approval_engines/** must only import "
            "kernel domain types and exceptions:\n" + "\n".join(violations)
        )

    def test_engines_exist(self):
        assert _python_files("approval_engines")


# ---------------------------------------------------------------------------
# 2. TestEngineNoImpureFunctions
# ---------------------------------------------------------------------------

class TestEngineNoImpureFunctions:
    """approval_engines/** may not call wall-clock or environment functions.

    Allowed (observational-only): time.monotonic in the tracer.
    """

    FORBIDDEN_CALLS = frozenset({
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
    })

    def test_no_impure_calls_in_engines(self):
        violations: list[str] = []

        for path in _python_files("approval_engines"):
            for lineno, qualname in _extract_attribute_calls(path):
                if qualname in self.FORBIDDEN_CALLS:
                    violations.append(f"  {_relative(path)}:{lineno} calls '{qualname}'")

        assert not violations, (
            "Engine impurity violation -- approval_engines/** must not call "
            "wall-clock or environment functions.  Pass the time in "
            "explicitly:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 3. TestDomainPurity
# ---------------------------------------------------------------------------

class TestDomainPurity:
    """approval_kernel/domain/** holds pure value objects."""

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "yaml",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.selectors",
    )

    def test_domain_has_no_persistence_imports(self):
        violations = [
            f"  {_relative(path)}:{lineno} imports '{module}'"
            for path in _python_files("approval_kernel/domain")
            for lineno, module in _extract_imports(path)
            if _matches_any(module, self.FORBIDDEN_PREFIXES)
        ]
        assert not violations, (
            "Domain purity violation:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 4. TestConfigCentralization
# ---------------------------------------------------------------------------

class TestConfigCentralization:
    """Only approval_config/ may import its loader and validator.

    Production code outside the package reaches configuration through
    ``approval_config.get_active_config`` only.
    """

    FORBIDDEN_INTERNAL_MODULES = (
        "approval_config.loader",
        "approval_config.validator",
    )

    def test_no_external_import_of_config_internals(self):
        violations: list[str] = []

        for package in PRODUCTION_PACKAGES:
            if package == "approval_config":
                continue
            for path in _python_files(package):
                for lineno, module in _extract_imports(path):
                    if _matches_any(module, self.FORBIDDEN_INTERNAL_MODULES):
                        violations.append(f"  {_relative(path)}:{lineno} imports '{module}'")

        assert not violations, (
            "Config centralisation violation -- only approval_config/ may "
            "import its internal sub-modules:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 5. TestDependencyDirection
# ---------------------------------------------------------------------------

class TestDependencyDirection:
    """Verify the overall dependency DAG:

    Allowed edges (-> means "may import"):
        approval_config   -> approval_kernel.domain
        approval_services -> approval_kernel, approval_engines
        approval_engines  -> approval_kernel.domain, approval_kernel.exceptions
        approval_kernel   -> (stdlib, sqlalchemy + internal)

    Forbidden edges:
        approval_kernel   x approval_engines, approval_services, approval_config
        approval_services x approval_config, approval_kernel.db/models/selectors
        approval_config   x approval_services, approval_engines
    """

    RULES: list[tuple[str, tuple[str, ...]]] = [
        (
            "approval_kernel",
            ("approval_engines", "approval_services", "approval_config", "yaml"),
        ),
        (
            "approval_services",
            (
                "approval_config",
                "approval_kernel.db",
                "approval_kernel.models",
                "approval_kernel.selectors",
                "sqlalchemy",
            ),
        ),
        (
            "approval_config",
            ("approval_services", "approval_engines", "sqlalchemy"),
        ),
    ]

    def test_dependency_dag(self):
        violations: list[str] = []

        for source_root, forbidden in self.RULES:
            for path in _python_files(source_root):
                for lineno, module in _extract_imports(path):
                    if _matches_any(module, forbidden):
                        violations.append(
                            f"  [{source_root}] {_relative(path)}:{lineno} imports '{module}'"
                        )

        assert not violations, (
            "Dependency direction violation -- the following imports break "
            "the layered architecture DAG:\n" + "\n".join(violations)
        )

    def test_models_import_only_db_base(self):
        violations = [
            f"  {_relative(path)}:{lineno} imports '{module}'"
            for path in _python_files("approval_kernel/models")
            for lineno, module in _extract_imports(path)
            if module.startswith("approval_")
            and not _matches_any(module, ("approval_kernel.db.base", "approval_kernel.models"))
        ]
        assert not violations, "Model layer violation:\n" + "\n".join(violations)
