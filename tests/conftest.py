"""Shared fixtures: synthetic projects built under tmp_path."""

from __future__ import annotations

from pathlib import Path

import pytest

from introspect.project import ProjectIntrospector, ResourceTracker
from shared.config import MaturityConfig, clear_config_cache

JULIA_MANIFEST = """\
name = "Demo"
uuid = "6f3c2a4e-1111-2222-3333-444455556666"
authors = ["Dev <dev@example.com>"]
version = "0.1.0"

[deps]
BenchmarkTools = "6e4b80f9-dd63-53aa-95a3-0cdb28fa8baf"
Test = "8dfed614-e22c-5e08-85e1-65c5234f0b40"

[compat]
BenchmarkTools = "1"
Test = "1"
julia = "1.10"
"""

PYTHON_MANIFEST = """\
[project]
name = "demo"
version = "0.1.0"
description = "Demo project"
authors = [{name = "Dev"}]
dependencies = ["pydantic>=2.0", "pyyaml>=6.0"]
"""


def write_tree(root: Path, files: dict[str, str | None]) -> Path:
    """Create files under root. A ``None`` value creates a directory."""
    for rel, content in files.items():
        target = root / rel
        if content is None:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


@pytest.fixture(autouse=True)
def _clear_cache():
    clear_config_cache()


@pytest.fixture()
def config():
    return MaturityConfig()


@pytest.fixture()
def make_project(tmp_path):
    """Factory writing a file tree into a fresh project directory."""

    def _make(files: dict[str, str | None], name: str = "demo") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        return write_tree(root, files)

    return _make


@pytest.fixture()
def introspect(config):
    """Factory returning an introspector for a root with a named profile."""

    def _introspect(root: Path, profile: str = "python", **kwargs) -> ProjectIntrospector:
        return ProjectIntrospector(
            root, config.profile_named(profile), ResourceTracker(), **kwargs
        )

    return _introspect
