"""Read-only view of a project tree.

Resolves the project root, walks the tree lazily while skipping hidden and
VCS directories, reads files with guaranteed cleanup, and parses the package
manifest. Every probe sees the project only through a ProjectIntrospector.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import tomllib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from shared.config import LanguageProfile
from shared.exceptions import InvalidProjectPath

if TYPE_CHECKING:
    from probes.rules import RuleSet

logger = logging.getLogger(__name__)

VCS_DIRS = (".git", ".hg", ".svn")
MAKEFILE = "Makefile"
DEFAULT_MAX_FILES = 10_000

_MAKE_TARGET = re.compile(r"^([A-Za-z0-9_.\-]+)\s*:(?!=)")
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._\-]*)")
_VERSION_SPECIFIER = re.compile(r"(===|==|~=|!=|<=|>=|<|>|\s@\s)")


class ManifestError(ValueError):
    """The package manifest exists but cannot be read or parsed."""


# --- Resource Tracking ---


@dataclass
class ResourceTracker:
    """Per-evaluation record of file handles and skipped files.

    Owned by whoever starts an evaluation and passed down explicitly.
    Safe to share between the worker threads of one evaluation.
    """

    files_opened: int = 0
    files_closed: int = 0
    skipped: list[str] = field(default_factory=list)
    truncated: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_open(self) -> None:
        with self._lock:
            self.files_opened += 1

    def record_close(self) -> None:
        with self._lock:
            self.files_closed += 1

    def record_skip(self, path: Path | str, reason: str) -> None:
        with self._lock:
            self.skipped.append(f"{path}: {reason}")

    def mark_truncated(self) -> None:
        with self._lock:
            self.truncated = True

    @property
    def open_handles(self) -> int:
        return self.files_opened - self.files_closed

    def summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "files_read": self.files_closed,
                "open_handles": self.files_opened - self.files_closed,
                "skipped_files": sorted(set(self.skipped)),
                "scan_truncated": self.truncated,
            }


def read_file_safely(path: Path | str, tracker: ResourceTracker | None = None) -> str | None:
    """Read a text file, always closing the handle.

    Returns None (and records the skip) when the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            if tracker is not None:
                tracker.record_open()
            try:
                return handle.read()
            finally:
                if tracker is not None:
                    tracker.record_close()
    except OSError as e:
        logger.warning("Skipping unreadable file %s: %s", path, e)
        if tracker is not None:
            tracker.record_skip(path, type(e).__name__)
        return None


# --- Root Resolution ---


def resolve_root(path: Path | str, manifest_names: Iterable[str]) -> Path:
    """Locate the project root for a possibly nested path.

    Walks upward from ``path`` until a directory holding one of the manifest
    files is found. The walk stops at the filesystem root or at the first
    VCS root. Falls back to ``path`` itself when no manifest is found.

    Raises:
        InvalidProjectPath: If ``path`` does not exist.
    """
    given = Path(path).expanduser()
    if not given.exists():
        raise InvalidProjectPath(given)
    given = given.resolve()
    names = tuple(manifest_names)

    start = given if given.is_dir() else given.parent
    for candidate in (start, *start.parents):
        if any((candidate / name).is_file() for name in names):
            return candidate
        if any((candidate / vcs).exists() for vcs in VCS_DIRS):
            break

    return given


def detect_profile(root: Path, profiles: dict[str, LanguageProfile]) -> LanguageProfile | None:
    """Return the first profile whose manifest exists at root."""
    for profile in profiles.values():
        if any((root / name).is_file() for name in profile.manifests):
            return profile
    return None


# --- Manifest ---


def normalize_package_name(name: str) -> str:
    """PEP 503 style normalization, applied to every manifest format."""
    return re.sub(r"[-_.]+", "-", name).lower()


@dataclass(frozen=True)
class Manifest:
    """Dependency view of a package manifest."""

    name: str | None
    dependencies: tuple[str, ...] = ()
    pinned: tuple[str, ...] = ()
    has_pin_section: bool = False
    fields: frozenset[str] = frozenset()

    def has_dependency(self, name: str) -> bool:
        wanted = normalize_package_name(name)
        return any(normalize_package_name(dep) == wanted for dep in self.dependencies)


def _parse_julia(data: dict[str, Any]) -> Manifest:
    deps = data.get("deps")
    deps = deps if isinstance(deps, dict) else {}
    compat = data.get("compat")
    compat = compat if isinstance(compat, dict) else {}
    name = data.get("name")
    return Manifest(
        name=name if isinstance(name, str) else None,
        dependencies=tuple(deps),
        pinned=tuple(dep for dep in deps if dep in compat),
        has_pin_section="compat" in data,
        fields=frozenset(data),
    )


def _parse_pep621(data: dict[str, Any]) -> Manifest:
    project = data.get("project")
    project = project if isinstance(project, dict) else {}
    requirements = project.get("dependencies")
    requirements = requirements if isinstance(requirements, list) else []

    deps: list[str] = []
    pinned: list[str] = []
    for requirement in requirements:
        if not isinstance(requirement, str):
            continue
        match = _REQUIREMENT_NAME.match(requirement)
        if not match:
            continue
        deps.append(match.group(1))
        rest = requirement[match.end():].split(";", 1)[0]
        if _VERSION_SPECIFIER.search(rest):
            pinned.append(match.group(1))

    name = project.get("name")
    return Manifest(
        name=name if isinstance(name, str) else None,
        dependencies=tuple(deps),
        pinned=tuple(pinned),
        has_pin_section="dependencies" in project,
        fields=frozenset(project),
    )


def parse_manifest(content: str, manifest_format: str) -> Manifest:
    """Parse manifest TOML text.

    Raises:
        ManifestError: If the content is not valid TOML.
    """
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"Malformed manifest: {e}") from e

    if manifest_format == "julia":
        return _parse_julia(data)
    return _parse_pep621(data)


# --- Introspector ---


class ProjectIntrospector:
    """Read-only access to one resolved project root.

    Args:
        root: Resolved project root directory.
        profile: Language profile naming the artifacts to look for.
        tracker: Caller-owned resource tracker for this evaluation.
        rules: Rule tables the probes should use (defaults per profile).
        max_files: Cap on files visited by a single walk.
        ignore_dirs: Directory names never descended into.
    """

    def __init__(
        self,
        root: Path,
        profile: LanguageProfile,
        tracker: ResourceTracker | None = None,
        *,
        rules: RuleSet | None = None,
        max_files: int = DEFAULT_MAX_FILES,
        ignore_dirs: Iterable[str] = (),
    ) -> None:
        self.root = Path(root)
        self.profile = profile
        self.tracker = tracker if tracker is not None else ResourceTracker()
        self.rules = rules
        self.max_files = max_files
        self.ignore_dirs = frozenset(ignore_dirs)

    # --- Paths ---

    def path(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)

    def exists(self, *parts: str) -> bool:
        return self.path(*parts).exists()

    def is_file(self, *parts: str) -> bool:
        return self.path(*parts).is_file()

    def is_dir(self, *parts: str) -> bool:
        return self.path(*parts).is_dir()

    def read(self, *parts: str) -> str | None:
        """Read a file under the root, or None if missing/unreadable."""
        target = self.path(*parts)
        if not target.is_file():
            return None
        return read_file_safely(target, self.tracker)

    def read_path(self, path: Path) -> str | None:
        return read_file_safely(path, self.tracker)

    # --- Walking ---

    def _skip_dir(self, name: str) -> bool:
        return name.startswith(".") or name in VCS_DIRS or name in self.ignore_dirs

    def list_files(
        self,
        directory: str | None = None,
        extension: str | None = None,
    ) -> Iterator[Path]:
        """Lazily yield files under ``directory`` (default: root), sorted.

        Hidden, VCS, and ignored directories are never entered. Stops after
        ``max_files`` files and marks the tracker as truncated.
        """
        top = self.path(directory) if directory else self.root
        if not top.is_dir():
            return

        def _on_error(error: OSError) -> None:
            logger.warning("Cannot list %s: %s", error.filename, error)
            self.tracker.record_skip(error.filename or top, type(error).__name__)

        visited = 0
        for dirpath, dirnames, filenames in os.walk(top, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if not self._skip_dir(d))
            for filename in sorted(filenames):
                visited += 1
                if visited > self.max_files:
                    if not self.tracker.truncated:
                        logger.warning(
                            "File walk of %s stopped after %d files", top, self.max_files
                        )
                    self.tracker.mark_truncated()
                    return
                if extension is None or filename.endswith(extension):
                    yield Path(dirpath) / filename

    def source_files(self, directory: str | None = None) -> Iterator[Path]:
        return self.list_files(directory, self.profile.source_extension)

    def list_dir(self, *parts: str, extension: str | None = None) -> list[str]:
        """Sorted names of the files directly inside a directory."""
        target = self.path(*parts)
        if not target.is_dir():
            return []
        try:
            names = [entry.name for entry in target.iterdir() if entry.is_file()]
        except OSError as e:
            logger.warning("Cannot list %s: %s", target, e)
            self.tracker.record_skip(target, type(e).__name__)
            return []
        if extension is not None:
            names = [name for name in names if name.endswith(extension)]
        return sorted(names)

    # --- Well-known artifacts ---

    def makefile_targets(self) -> frozenset[str]:
        content = self.read(MAKEFILE)
        if content is None:
            return frozenset()
        targets = set()
        for line in content.splitlines():
            match = _MAKE_TARGET.match(line)
            if match:
                targets.add(match.group(1))
        return frozenset(targets)

    def has_make_target(self, *names: str) -> bool:
        targets = self.makefile_targets()
        return any(name in targets for name in names)

    def git_hooks(self) -> list[str]:
        return self.list_dir(".git", "hooks")

    def has_pre_commit_hook(self) -> bool:
        if any("pre-commit" in hook for hook in self.git_hooks()):
            return True
        return any(self.is_file(name) for name in self.profile.hook_files)

    def has_vcs(self) -> bool:
        return any(self.is_dir(vcs) for vcs in VCS_DIRS)

    def test_dir(self) -> str | None:
        for name in self.profile.test_dirs:
            if self.is_dir(name):
                return name
        return None

    def has_lockfile(self) -> bool:
        return any(self.is_file(name) for name in self.profile.lockfiles)

    def manifest_path(self) -> Path | None:
        for name in self.profile.manifests:
            candidate = self.path(name)
            if candidate.is_file():
                return candidate
        return None

    def manifest(self) -> Manifest | None:
        """Parse the package manifest, or None when there is none.

        Raises:
            ManifestError: If the manifest is unreadable or malformed.
        """
        path = self.manifest_path()
        if path is None:
            return None
        content = self.read_path(path)
        if content is None:
            raise ManifestError(f"Unreadable manifest: {path.name}")
        return parse_manifest(content, self.profile.manifest_format)
