"""Automation pillar probes."""

from __future__ import annotations

from introspect.project import ProjectIntrospector
from shared.models import ProbeResult

from .base import (
    AGENTS_FILE,
    RECOMMENDED_DIRS,
    Advisory,
    ProbeSpec,
    clamp_score,
    editor_config_present,
    recommended_dir_count,
    safe_ratio,
)

AGENT_SECTIONS: dict[str, tuple[str, ...]] = {
    "Security": ("Security",),
    "Clean Code": ("Clean Code",),
    "Green Code": ("Green Code", "Resource"),
    "Automation": ("Automation",),
}
AGENT_COMMANDS = ("make test", "make format", "make clean", "make dev")


def probe_cicd_infrastructure(project: ProjectIntrospector) -> ProbeResult:
    """Essential make targets, manifest plus lock file, version control."""
    score = 0.0
    found: list[str] = []

    targets = project.makefile_targets()
    present = [t for t in project.profile.essential_targets if t in targets]
    score += 10.0 * len(present)
    if present:
        found.append(f"targets: {', '.join(present)}")

    if project.manifest_path() is not None:
        if project.has_lockfile():
            score += 25.0
            found.append("manifest and lock file")
        else:
            score += 15.0
            found.append("manifest")

    if project.has_vcs():
        score += 25.0
        found.append("version control")

    return ProbeResult(
        name="cicd_infrastructure",
        score=clamp_score(score),
        details="; ".join(found) or "No build automation",
    )


def probe_testing_automation(project: ProjectIntrospector) -> ProbeResult:
    """Test dir, test entry point, modular test files, and a test target."""
    profile = project.profile
    score = 0.0
    notes: list[str] = []

    test_dir = project.test_dir()
    if test_dir is not None:
        score += 25.0
        if project.is_file(test_dir, profile.test_entrypoint):
            score += 25.0
        test_files = project.list_dir(test_dir, extension=profile.source_extension)
        if len(test_files) > 1:
            score += 25.0
        elif len(test_files) == 1:
            score += 15.0
        notes.append(f"{len(test_files)} files in {test_dir}/")
    else:
        notes.append("no test directory")

    if project.has_make_target("test"):
        score += 25.0
        notes.append("test target")

    return ProbeResult(
        name="testing_automation",
        score=clamp_score(score),
        details="; ".join(notes),
    )


def probe_quality_automation(project: ProjectIntrospector) -> ProbeResult:
    score = 0.0
    if project.has_make_target("format"):
        score += 25.0
    if editor_config_present(project):
        score += 25.0
    if project.has_pre_commit_hook():
        score += 25.0
    dirs = recommended_dir_count(project)
    score += safe_ratio(dirs, len(RECOMMENDED_DIRS), 0.0) * 25.0

    return ProbeResult(
        name="quality_automation",
        score=clamp_score(score),
        details=f"{dirs}/{len(RECOMMENDED_DIRS)} recommended dirs",
    )


def probe_agents_integration(project: ProjectIntrospector) -> ProbeResult:
    """AGENTS.md coverage of the four pillars and the make commands it documents."""
    name = "agents_integration"
    if not project.is_file(AGENTS_FILE):
        return ProbeResult(name=name, score=0.0, details=f"No {AGENTS_FILE}")

    content = project.read(AGENTS_FILE)
    if content is None:
        return ProbeResult(name=name, score=10.0, details=f"Unreadable {AGENTS_FILE}")

    sections = [
        section
        for section, aliases in AGENT_SECTIONS.items()
        if any(alias in content for alias in aliases)
    ]
    commands = [cmd for cmd in AGENT_COMMANDS if cmd in content]
    score = 15.0 * len(sections) + 10.0 * len(commands)

    return ProbeResult(
        name=name,
        score=clamp_score(score),
        details=f"sections {len(sections)}/{len(AGENT_SECTIONS)}, "
        f"commands {len(commands)}/{len(AGENT_COMMANDS)}",
    )


AUTOMATION_PROBES: tuple[ProbeSpec, ...] = (
    ProbeSpec(
        "cicd_infrastructure",
        0.30,
        probe_cicd_infrastructure,
        (
            Advisory(
                60.0,
                recommendation="Add a Makefile with the essential targets",
                critical_issue="CI/CD infrastructure missing",
            ),
        ),
    ),
    ProbeSpec(
        "testing_automation",
        0.30,
        probe_testing_automation,
        (
            Advisory(
                70.0,
                recommendation="Organize tests into a modular test suite",
                critical_issue="Insufficient automated tests",
            ),
        ),
    ),
    ProbeSpec(
        "quality_automation",
        0.25,
        probe_quality_automation,
        (Advisory(50.0, recommendation="Automate formatting and linting"),),
    ),
    ProbeSpec(
        "agents_integration",
        0.15,
        probe_agents_integration,
        (Advisory(40.0, recommendation=f"Create {AGENTS_FILE} to guide AI coding tools"),),
    ),
)
