"""Clean-Code pillar probes."""

from __future__ import annotations

import re
from collections.abc import Iterator

from introspect.project import ManifestError, ProjectIntrospector
from shared.models import ProbeResult

from .base import (
    AGENTS_FILE,
    DOCS_DIR,
    README_FILE,
    Advisory,
    ProbeSpec,
    clamp_score,
    editor_config_present,
    recommended_dir_count,
    safe_ratio,
)
from .rules import RuleSet, rules_for

IDEAL_FUNCTION_LINES = 20
SHORT_FUNCTION_LINES = 10
LONG_FUNCTION_PENALTY = 2.0
MAX_LENGTH_PENALTY = 50.0
SHORT_FUNCTION_BONUS = 10.0
INFORMATIVE_README_CHARS = 500
DOCSTRING_LOOKAROUND = 5


# --- Organization ---


def probe_code_organization(project: ProjectIntrospector) -> ProbeResult:
    """Directory layout, essential manifest fields, and a populated source dir."""
    profile = project.profile
    score = 0.0
    notes: list[str] = []

    if project.is_dir(profile.source_dir):
        score += 20.0
    if project.test_dir() is not None:
        score += 20.0

    optional = recommended_dir_count(project) + editor_config_present(project)
    score += 4.0 * optional
    notes.append(f"{optional} optional dirs")

    try:
        manifest = project.manifest()
    except ManifestError:
        score += 10.0
        notes.append("malformed manifest")
        manifest = None
    if manifest is not None:
        wanted = profile.essential_fields
        present = sum(1 for f in wanted if f in manifest.fields)
        score += safe_ratio(present, len(wanted), 0.0) * 30.0
        notes.append(f"essential fields {present}/{len(wanted)}")

    if next(iter(project.source_files(profile.source_dir)), None) is not None:
        score += 30.0
        notes.append(f"sources in {profile.source_dir}/")

    return ProbeResult(
        name="code_organization",
        score=clamp_score(score),
        details="; ".join(notes) or "No recognizable layout",
    )


# --- Documentation ---


def _has_docstring(lines: list[str], index: int, rules: RuleSet) -> bool:
    markers = rules.docstring_markers
    if rules.docstring_before:
        window = lines[max(0, index - DOCSTRING_LOOKAROUND):index]
        return any(marker in line for line in window for marker in markers)

    # Docstring must be the first statement after the (possibly wrapped) signature.
    end = index
    limit = min(len(lines) - 1, index + DOCSTRING_LOOKAROUND)
    while end < limit and not lines[end].split("#", 1)[0].rstrip().endswith(":"):
        end += 1
    for line in lines[end + 1:end + 1 + DOCSTRING_LOOKAROUND]:
        stripped = line.strip()
        if stripped:
            return stripped.lstrip("rRuU").startswith(markers)
    return False


def docstring_coverage(project: ProjectIntrospector) -> float:
    """Percentage of functions under the source dir carrying a docstring.

    Returns 50 when there is no source dir or it defines no functions.
    """
    rules = rules_for(project)
    total = 0
    documented = 0
    for path in project.source_files(project.profile.source_dir):
        content = project.read_path(path)
        if content is None:
            continue
        lines = content.splitlines()
        for i, line in enumerate(lines):
            if rules.function_def.match(line):
                total += 1
                if _has_docstring(lines, i, rules):
                    documented += 1
    return safe_ratio(documented, total, 0.5) * 100.0


def probe_documentation_quality(project: ProjectIntrospector) -> ProbeResult:
    score = 0.0
    notes: list[str] = []

    if project.is_file(README_FILE):
        readme = project.read(README_FILE)
        if readme is None:
            score += 5.0
        elif len(readme) > INFORMATIVE_README_CHARS:
            score += 25.0
        else:
            score += 10.0
            notes.append("README is short")
    else:
        notes.append("no README")

    if project.is_file(AGENTS_FILE):
        score += 25.0

    coverage = docstring_coverage(project)
    score += coverage * 0.25
    notes.append(f"docstring coverage {coverage:.0f}%")

    if project.list_dir(DOCS_DIR, extension=".md"):
        score += 25.0
        notes.append(f"{DOCS_DIR}/ present")

    return ProbeResult(
        name="documentation_quality",
        score=clamp_score(score),
        details="; ".join(notes),
    )


# --- Style ---


def _identifier_verdicts(lines: list[str], rules: RuleSet) -> Iterator[bool]:
    for line in lines:
        if rules.is_comment(line):
            continue
        for m in rules.function_def.finditer(line):
            yield bool(rules.good_function_name.match(m.group(1)))
        m = rules.assignment.match(line)
        if m:
            yield bool(rules.good_variable_name.match(m.group(1)))
        m = rules.type_def.match(line)
        if m:
            yield bool(rules.good_type_name.match(m.group(1)))


def probe_code_style(project: ProjectIntrospector) -> ProbeResult:
    """Share of function, variable, and type names following the naming convention."""
    rules = rules_for(project)
    total = 0
    good = 0
    for path in project.source_files():
        content = project.read_path(path)
        if content is None:
            continue
        for ok in _identifier_verdicts(content.splitlines(), rules):
            total += 1
            good += ok

    if total == 0:
        return ProbeResult(name="code_style", score=50.0, details="No identifiers found")
    return ProbeResult(
        name="code_style",
        score=clamp_score(good / total * 100.0),
        details=f"{good}/{total} identifiers follow naming conventions",
    )


# --- Maintainability ---


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def function_lengths(lines: list[str], rules: RuleSet) -> Iterator[int]:
    """Yield the line span of each function definition, nested ones included.

    Keyword-terminated languages end a function at the first ``end`` at or
    left of the definition's indentation; indentation-based ones end it at
    the first non-blank line dedented back to that level.
    """
    end_pattern = (
        re.compile(rf"^{rules.block_end_keyword}\b") if rules.block_end_keyword else None
    )
    for start, line in enumerate(lines):
        if not rules.function_def.match(line):
            continue
        level = _indent(line)
        length = 1
        for follower in lines[start + 1:]:
            stripped = follower.strip()
            if end_pattern is not None:
                length += 1
                if end_pattern.match(stripped) and _indent(follower) <= level:
                    break
            else:
                if stripped and _indent(follower) <= level and not stripped.startswith(")"):
                    break
                length += 1
        if end_pattern is None:
            # trailing blank lines belong to the gap, not the body
            body = lines[start:start + length]
            while len(body) > 1 and not body[-1].strip():
                body.pop()
            length = len(body)
        yield length


def function_quality(length: int) -> float:
    score = 100.0
    if length > IDEAL_FUNCTION_LINES:
        score -= min(MAX_LENGTH_PENALTY, (length - IDEAL_FUNCTION_LINES) * LONG_FUNCTION_PENALTY)
    if length <= SHORT_FUNCTION_LINES:
        score = min(100.0, score + SHORT_FUNCTION_BONUS)
    return score


def probe_maintainability(project: ProjectIntrospector) -> ProbeResult:
    """Mean per-function quality, penalizing functions longer than 20 lines."""
    rules = rules_for(project)
    qualities: list[float] = []
    longest = 0
    for path in project.source_files():
        content = project.read_path(path)
        if content is None:
            continue
        for length in function_lengths(content.splitlines(), rules):
            qualities.append(function_quality(length))
            longest = max(longest, length)

    if not qualities:
        return ProbeResult(name="maintainability", score=50.0, details="No functions found")
    return ProbeResult(
        name="maintainability",
        score=clamp_score(sum(qualities) / len(qualities)),
        details=f"{len(qualities)} functions, longest {longest} lines",
    )


CLEAN_CODE_PROBES: tuple[ProbeSpec, ...] = (
    ProbeSpec(
        "code_organization",
        0.25,
        probe_code_organization,
        (Advisory(70.0, recommendation="Improve module organization and project structure"),),
    ),
    ProbeSpec(
        "documentation_quality",
        0.25,
        probe_documentation_quality,
        (
            Advisory(
                50.0,
                recommendation="Add docstrings to public functions",
                critical_issue="Insufficient documentation",
            ),
        ),
    ),
    ProbeSpec(
        "code_style",
        0.25,
        probe_code_style,
        (Advisory(65.0, recommendation="Align code style with the naming guidelines"),),
    ),
    ProbeSpec(
        "maintainability",
        0.25,
        probe_maintainability,
        (
            Advisory(
                70.0,
                recommendation="Refactor functions to at most 20 lines",
                critical_issue="Overly long or complex functions detected",
            ),
        ),
    ),
)
