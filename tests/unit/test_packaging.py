"""Tests for packaging metadata and pyproject.toml validation."""

import re
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"
PACKAGE_ROOT = PYPROJECT.parent / "studyhall"


def load_pyproject():
    assert PYPROJECT.exists(), "pyproject.toml not found"
    with open(PYPROJECT, "rb") as f:
        return tomllib.load(f)


def parse_package_name(dep_string):
    """Extract package name from a dependency string."""
    match = re.match(r"^([a-zA-Z0-9_.-]+)", dep_string.strip())
    return match.group(1).lower().replace("_", "-") if match else None


class TestPackagingMetadata:
    """Tests for pyproject.toml packaging metadata."""

    def test_build_system_exists(self):
        build_system = load_pyproject()["build-system"]

        assert build_system["build-backend"]
        assert isinstance(build_system["requires"], list)
        assert len(build_system["requires"]) > 0

    def test_project_metadata_complete(self):
        project = load_pyproject()["project"]

        for field in ["name", "version", "description", "requires-python"]:
            assert project.get(field), f"Required field '{field}' missing from [project]"

    def test_version_matches_package(self):
        import studyhall

        assert load_pyproject()["project"]["version"] == studyhall.__version__

    def test_optional_dependencies_dev_exists(self):
        dev = load_pyproject()["project"]["optional-dependencies"]["dev"]
        names = {parse_package_name(d) for d in dev}

        assert {"pytest", "pytest-asyncio"} <= names


class TestDependencySynchronization:
    """Every third-party import in the package must be declared."""

    IMPORT_TO_DIST = {
        "aiohttp": "aiohttp",
        "loguru": "loguru",
        "pydantic": "pydantic",
        "pydantic_settings": "pydantic-settings",
        "tenacity": "tenacity",
    }

    def test_imports_are_declared(self):
        declared = {parse_package_name(d) for d in load_pyproject()["project"]["dependencies"]}
        imported = set()
        for path in PACKAGE_ROOT.rglob("*.py"):
            for line in path.read_text().splitlines():
                match = re.match(r"^\s*(?:from|import)\s+([a-zA-Z_][a-zA-Z0-9_]*)", line)
                if match and match.group(1) in self.IMPORT_TO_DIST:
                    imported.add(self.IMPORT_TO_DIST[match.group(1)])

        assert imported, "no third-party imports found"
        assert imported <= declared, f"Undeclared dependencies: {imported - declared}"
