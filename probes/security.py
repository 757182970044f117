"""Security pillar probes.

Package provenance, source risk patterns, manifest completeness, and
security automation. Line/regex heuristics only, fully deterministic.
"""

from __future__ import annotations

from collections import Counter

from introspect.project import ManifestError, ProjectIntrospector, normalize_package_name
from shared.models import ProbeResult

from .base import AGENTS_FILE, Advisory, ProbeSpec, clamp_score, safe_ratio
from .rules import rules_for

SECURITY_TARGETS = ("audit", "security", "scan")


# --- Package Provenance ---


def probe_package_security(project: ProjectIntrospector) -> ProbeResult:
    """Share of dependencies on the trusted list, plus a version-pinning bonus.

    No manifest scores 0, a malformed one 10, and a manifest without
    dependencies scores 100.
    """
    name = "package_security"
    try:
        manifest = project.manifest()
    except ManifestError as e:
        return ProbeResult(name=name, score=10.0, details=str(e))

    if manifest is None:
        return ProbeResult(name=name, score=0.0, details="No package manifest")

    deps = manifest.dependencies
    if not deps:
        return ProbeResult(name=name, score=100.0, details="No declared dependencies")

    trusted = {normalize_package_name(p) for p in project.profile.trusted_packages}
    untrusted = [d for d in deps if normalize_package_name(d) not in trusted]
    trusted_ratio = safe_ratio(len(deps) - len(untrusted), len(deps), 1.0)
    pin_bonus = min(20.0, safe_ratio(len(manifest.pinned), len(deps), 1.0) * 20.0)

    details = f"{len(deps) - len(untrusted)}/{len(deps)} dependencies trusted"
    if untrusted:
        details += f"; untrusted: {', '.join(untrusted[:5])}"
    return ProbeResult(
        name=name,
        score=clamp_score(trusted_ratio * 80.0 + pin_bonus),
        details=details,
    )


# --- Source Risk Patterns ---


def probe_code_security(project: ProjectIntrospector) -> ProbeResult:
    """Penalize source lines matching hardcoded-secret or unsafe-call rules."""
    name = "code_security"
    rules = rules_for(project)
    violations: Counter[str] = Counter()
    files = 0
    total_lines = 0

    for path in project.source_files():
        files += 1
        content = project.read_path(path)
        if content is None:
            continue
        lines = content.splitlines()
        total_lines += len(lines)
        for line in lines:
            if rules.is_comment(line):
                continue
            hit = rules.first_risk(line)
            if hit is not None:
                violations[hit.name] += 1

    if files == 0:
        return ProbeResult(name=name, score=50.0, details="No source files")
    if total_lines == 0:
        return ProbeResult(name=name, score=50.0, details="No readable source lines")

    count = sum(violations.values())
    rate = safe_ratio(count, total_lines, 0.0)
    score = clamp_score(100.0 - rate * 1000.0)
    if not count:
        return ProbeResult(name=name, score=score, details=f"No risk patterns in {total_lines} lines")

    found = ", ".join(f"{rule}={n}" for rule, n in sorted(violations.items()))
    return ProbeResult(
        name=name,
        score=score,
        details=f"{count} risky lines of {total_lines}: {found}",
    )


# --- Manifest Completeness ---


def probe_dependency_management(project: ProjectIntrospector) -> ProbeResult:
    """Manifest parses, versions pinned, metadata complete, lock file present."""
    name = "dependency_management"
    score = 0.0
    notes: list[str] = []

    try:
        manifest = project.manifest()
    except ManifestError as e:
        score += 10.0
        notes.append(str(e))
        manifest = None

    if manifest is not None:
        score += 25.0
        deps = manifest.dependencies
        if manifest.has_pin_section:
            pinned_ratio = safe_ratio(len(manifest.pinned), len(deps), 1.0)
            score += min(25.0, pinned_ratio * 25.0)
            notes.append(f"{len(manifest.pinned)}/{len(deps)} pinned")
        else:
            notes.append("no version constraints")

        wanted = project.profile.metadata_fields
        present = [f for f in wanted if f in manifest.fields]
        score += safe_ratio(len(present), len(wanted), 1.0) * 25.0
        notes.append(f"metadata {len(present)}/{len(wanted)}")
    elif not notes:
        notes.append("no manifest")

    if project.has_lockfile():
        score += 25.0
        notes.append("lock file present")

    return ProbeResult(name=name, score=clamp_score(score), details="; ".join(notes))


# --- Security Automation ---


def probe_security_automation(project: ProjectIntrospector) -> ProbeResult:
    """Audit/scan build targets, agent instructions, security tests, commit hooks."""
    name = "security_automation"
    score = 0.0
    found: list[str] = []

    targets = project.makefile_targets()
    hits = [t for t in SECURITY_TARGETS if t in targets]
    if hits:
        score += 25.0 * len(hits) / len(SECURITY_TARGETS)
        found.append(f"targets: {', '.join(hits)}")

    agents = project.read(AGENTS_FILE)
    if agents is not None and "Security" in agents and "audit" in agents:
        score += 25.0
        found.append("agent security instructions")

    test_dir = project.test_dir()
    if test_dir is not None and any("security" in f.lower() for f in project.list_dir(test_dir)):
        score += 25.0
        found.append("security tests")

    if project.has_pre_commit_hook():
        score += 25.0
        found.append("pre-commit hook")

    return ProbeResult(
        name=name,
        score=clamp_score(score),
        details="; ".join(found) or "No security automation found",
    )


SECURITY_PROBES: tuple[ProbeSpec, ...] = (
    ProbeSpec(
        "package_security",
        0.30,
        probe_package_security,
        (
            Advisory(
                80.0,
                recommendation="Restrict dependencies to trusted, well-maintained packages",
                critical_issue="Unvetted packages detected",
            ),
        ),
    ),
    ProbeSpec(
        "code_security",
        0.25,
        probe_code_security,
        (
            Advisory(
                70.0,
                recommendation="Remove hardcoded secrets and dynamic code evaluation; "
                "validate and sanitize inputs",
                critical_issue="Code security risks detected",
            ),
        ),
    ),
    ProbeSpec(
        "dependency_management",
        0.25,
        probe_dependency_management,
        (
            Advisory(
                75.0,
                recommendation="Pin dependency versions in the package manifest "
                "and commit a lock file",
            ),
        ),
    ),
    ProbeSpec(
        "security_automation",
        0.20,
        probe_security_automation,
        (Advisory(60.0, recommendation="Configure automated security audits"),),
    ),
)
