"""Tests for package-level conventions: public API exports and module domain markers."""

from __future__ import annotations

from pathlib import Path

import pytest

import subjectlint
from subjectlint import analysis, auth, migration, subjects

PACKAGE_ROOT = Path(subjectlint.__file__).parent
MODULES = sorted(p for p in PACKAGE_ROOT.rglob("*.py") if p.name != "__init__.py")


class TestDomainMarkers:
    """Every module names the subpackage that owns it on its first line."""

    def test_modules_found(self) -> None:
        assert len(MODULES) >= 10

    @pytest.mark.parametrize(
        "path", MODULES, ids=lambda p: p.relative_to(PACKAGE_ROOT).as_posix()
    )
    def test_marker_matches_subpackage(self, path: Path) -> None:
        first_line = path.read_text(encoding="utf-8").splitlines()[0]
        assert first_line == f"# subjectlint:domain={path.parent.name}"


class TestPublicApi:
    @pytest.mark.parametrize("package", [analysis, auth, migration, subjects])
    def test_all_names_resolve(self, package: object) -> None:
        for name in package.__all__:  # type: ignore[attr-defined]
            assert hasattr(package, name), name
