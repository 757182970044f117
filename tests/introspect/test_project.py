"""Tests for the project introspector."""

from pathlib import Path

import pytest

from conftest import JULIA_MANIFEST, PYTHON_MANIFEST
from introspect.project import (
    ManifestError,
    ResourceTracker,
    detect_profile,
    normalize_package_name,
    parse_manifest,
    read_file_safely,
    resolve_root,
)
from shared.exceptions import InvalidProjectPath

PY_MANIFESTS = ["pyproject.toml"]


# --- Root Resolution ---


class TestResolveRoot:
    def test_root_with_manifest(self, make_project):
        root = make_project({"pyproject.toml": PYTHON_MANIFEST})
        assert resolve_root(root, PY_MANIFESTS) == root.resolve()

    def test_nested_directory_walks_up(self, make_project):
        root = make_project({"pyproject.toml": PYTHON_MANIFEST, "tests/unit": None})
        assert resolve_root(root / "tests" / "unit", PY_MANIFESTS) == root.resolve()

    def test_file_path_starts_from_parent(self, make_project):
        root = make_project({"pyproject.toml": PYTHON_MANIFEST, "src/app.py": "x = 1\n"})
        assert resolve_root(root / "src" / "app.py", PY_MANIFESTS) == root.resolve()

    def test_stops_at_vcs_boundary(self, make_project):
        outer = make_project({"pyproject.toml": PYTHON_MANIFEST, "inner/.git": None, "inner/src": None})
        start = outer / "inner" / "src"
        assert resolve_root(start, PY_MANIFESTS) == start.resolve()

    def test_falls_back_to_given_path(self, tmp_path):
        target = tmp_path / "nothing" / "here"
        target.mkdir(parents=True)
        (tmp_path / "nothing" / ".git").mkdir()
        assert resolve_root(target, PY_MANIFESTS) == target.resolve()

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(InvalidProjectPath, match="does not exist"):
            resolve_root(tmp_path / "missing", PY_MANIFESTS)

    def test_deterministic(self, make_project):
        root = make_project({"pyproject.toml": PYTHON_MANIFEST, "tests": None})
        first = resolve_root(root / "tests", PY_MANIFESTS)
        assert resolve_root(root / "tests", PY_MANIFESTS) == first


class TestDetectProfile:
    def test_detects_julia(self, make_project, config):
        root = make_project({"Project.toml": JULIA_MANIFEST})
        assert detect_profile(root, config.profiles).name == "julia"

    def test_detects_python(self, make_project, config):
        root = make_project({"pyproject.toml": PYTHON_MANIFEST})
        assert detect_profile(root, config.profiles).name == "python"

    def test_none_without_manifest(self, make_project, config):
        root = make_project({"README.md": "hi"})
        assert detect_profile(root, config.profiles) is None


# --- Safe Reads ---


class TestReadFileSafely:
    def test_reads_and_closes(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        tracker = ResourceTracker()
        assert read_file_safely(path, tracker) == "hello"
        assert tracker.files_opened == 1
        assert tracker.open_handles == 0

    def test_unreadable_file_is_skipped(self, tmp_path):
        tracker = ResourceTracker()
        assert read_file_safely(tmp_path, tracker) is None
        assert tracker.open_handles == 0
        assert len(tracker.summary()["skipped_files"]) == 1

    def test_missing_file_returns_none(self, tmp_path):
        assert read_file_safely(tmp_path / "nope.txt") is None

    def test_invalid_utf8_is_replaced(self, tmp_path):
        path = tmp_path / "bin.txt"
        path.write_bytes(b"ok \xff\xfe end")
        content = read_file_safely(path)
        assert content.startswith("ok ")
        assert content.endswith(" end")


class TestResourceTracker:
    def test_summary_shape(self):
        tracker = ResourceTracker()
        tracker.record_open()
        tracker.record_close()
        tracker.record_skip("b.txt", "PermissionError")
        tracker.record_skip("a.txt", "PermissionError")
        summary = tracker.summary()
        assert summary["files_read"] == 1
        assert summary["open_handles"] == 0
        assert summary["skipped_files"] == ["a.txt: PermissionError", "b.txt: PermissionError"]
        assert summary["scan_truncated"] is False


# --- Manifest ---


class TestParseManifest:
    def test_julia_manifest(self):
        manifest = parse_manifest(JULIA_MANIFEST, "julia")
        assert manifest.name == "Demo"
        assert manifest.dependencies == ("BenchmarkTools", "Test")
        assert manifest.pinned == ("BenchmarkTools", "Test")
        assert manifest.has_pin_section is True
        assert {"name", "uuid", "version", "authors"} <= manifest.fields

    def test_julia_compat_outside_deps_ignored(self):
        content = '[deps]\nJSON3 = "x"\n\n[compat]\njulia = "1.10"\n'
        manifest = parse_manifest(content, "julia")
        assert manifest.pinned == ()
        assert manifest.has_pin_section is True

    def test_pep621_manifest(self):
        manifest = parse_manifest(PYTHON_MANIFEST, "pep621")
        assert manifest.name == "demo"
        assert manifest.dependencies == ("pydantic", "pyyaml")
        assert manifest.pinned == ("pydantic", "pyyaml")
        assert "description" in manifest.fields

    def test_pep621_unpinned_and_markers(self):
        content = (
            "[project]\n"
            'name = "x"\n'
            "dependencies = [\n"
            '  "requests",\n'
            "  \"tomli; python_version < '3.11'\",\n"
            '  "rich==13.0",\n'
            '  "pkg @ https://example.com/pkg.whl",\n'
            "]\n"
        )
        manifest = parse_manifest(content, "pep621")
        assert manifest.dependencies == ("requests", "tomli", "rich", "pkg")
        assert manifest.pinned == ("rich", "pkg")

    def test_no_project_table(self):
        manifest = parse_manifest("[tool.black]\nline-length = 88\n", "pep621")
        assert manifest.name is None
        assert manifest.dependencies == ()
        assert manifest.has_pin_section is False

    def test_malformed_raises(self):
        with pytest.raises(ManifestError, match="Malformed manifest"):
            parse_manifest("name = [unclosed", "julia")

    def test_has_dependency_normalizes(self):
        manifest = parse_manifest(
            '[project]\nname = "x"\ndependencies = ["Pytest_Benchmark>=4"]\n', "pep621"
        )
        assert manifest.has_dependency("pytest-benchmark")

    def test_normalize_package_name(self):
        assert normalize_package_name("Typing_Extensions") == "typing-extensions"
        assert normalize_package_name("zope.interface") == "zope-interface"


# --- Introspector ---


class TestProjectIntrospector:
    def test_list_files_sorted_and_filtered(self, make_project, introspect):
        root = make_project(
            {
                "b.py": "",
                "a.py": "",
                "notes.txt": "",
                "pkg/c.py": "",
                ".hidden/d.py": "",
                "__pycache__/e.py": "",
            }
        )
        project = introspect(root, ignore_dirs=["__pycache__"])
        names = [p.relative_to(root).as_posix() for p in project.source_files()]
        assert names == ["a.py", "b.py", "pkg/c.py"]

    def test_list_files_skips_vcs(self, make_project, introspect):
        root = make_project({".git/hooks/x.py": "", "main.py": ""})
        names = [p.name for p in introspect(root).source_files()]
        assert names == ["main.py"]

    def test_list_files_truncates(self, make_project, introspect):
        root = make_project({"a.py": "", "b.py": "", "c.py": ""})
        project = introspect(root, max_files=2)
        assert len(list(project.source_files())) == 2
        assert project.tracker.truncated is True

    def test_list_files_missing_directory(self, make_project, introspect):
        root = make_project({})
        assert list(introspect(root).list_files("nope")) == []

    def test_list_dir_non_recursive(self, make_project, introspect):
        root = make_project({"tests/test_a.py": "", "tests/sub/test_b.py": "", "tests/data.json": ""})
        project = introspect(root)
        assert project.list_dir("tests") == ["data.json", "test_a.py"]
        assert project.list_dir("tests", extension=".py") == ["test_a.py"]

    def test_makefile_targets(self, make_project, introspect):
        makefile = "CC := gcc\nFLAGS=-O2\ntest: build\n\tpytest\nformat:\n\truff format\n"
        root = make_project({"Makefile": makefile})
        project = introspect(root)
        targets = project.makefile_targets()
        assert {"test", "format"} <= targets
        assert "CC" not in targets
        assert project.has_make_target("lint", "format")
        assert not project.has_make_target("bench")

    def test_no_makefile(self, make_project, introspect):
        assert introspect(make_project({})).makefile_targets() == frozenset()

    def test_pre_commit_from_git_hooks(self, make_project, introspect):
        root = make_project({".git/hooks/pre-commit": "#!/bin/sh\n"})
        assert introspect(root).has_pre_commit_hook()

    def test_pre_commit_from_config_file(self, make_project, introspect):
        root = make_project({".pre-commit-config.yaml": "repos: []\n"})
        assert introspect(root, "python").has_pre_commit_hook()
        assert not introspect(root, "julia").has_pre_commit_hook()

    def test_sample_hooks_do_not_count(self, make_project, introspect):
        root = make_project({".git/hooks/commit-msg.sample": ""})
        assert not introspect(root).has_pre_commit_hook()

    def test_test_dir_and_lockfile(self, make_project, introspect):
        root = make_project({"test/runtests.jl": "", "Manifest.toml": ""})
        project = introspect(root, "julia")
        assert project.test_dir() == "test"
        assert project.has_lockfile()

    def test_manifest_missing(self, make_project, introspect):
        assert introspect(make_project({})).manifest() is None

    def test_manifest_malformed(self, make_project, introspect):
        root = make_project({"pyproject.toml": "[project\n"})
        with pytest.raises(ManifestError):
            introspect(root).manifest()

    def test_read_missing_returns_none(self, make_project, introspect):
        assert introspect(make_project({})).read("README.md") is None

    def test_reads_leave_no_open_handles(self, make_project, introspect):
        root = make_project({"a.py": "x = 1\n", "b.py": "y = 2\n"})
        project = introspect(root)
        for path in project.source_files():
            project.read_path(path)
        assert project.tracker.files_opened == 2
        assert project.tracker.open_handles == 0

    def test_path_helpers(self, make_project, introspect):
        root = make_project({"docs/index.md": "# Docs"})
        project = introspect(root)
        assert project.path("docs") == Path(root) / "docs"
        assert project.is_dir("docs")
        assert project.is_file("docs", "index.md")
        assert project.exists("docs/index.md")
        assert not project.has_vcs()
