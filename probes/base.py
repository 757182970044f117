"""Probe contract and pillar table rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from shared.models import ProbeResult

if TYPE_CHECKING:
    from introspect.project import ProjectIntrospector

AGENTS_FILE = "AGENTS.md"
README_FILE = "README.md"
DOCS_DIR = "docs"
EDITOR_CONFIG = (".vscode", ".editorconfig")
RECOMMENDED_DIRS = ("docs", "examples", "benchmarks", "notebooks")


class Probe(Protocol):
    """A single heuristic producing one sub-metric of a pillar."""

    def __call__(self, project: ProjectIntrospector) -> ProbeResult:
        """Score the project 0-100. May raise; the pillar isolates failures."""
        ...


@dataclass(frozen=True)
class Advisory:
    """Advice emitted when a probe scores below ``below``."""

    below: float
    recommendation: str = ""
    critical_issue: str = ""


@dataclass(frozen=True)
class ProbeSpec:
    """One row of a pillar's weight table."""

    name: str
    weight: float
    probe: Probe
    advisories: tuple[Advisory, ...] = ()

    def advise(self, score: float) -> tuple[list[str], list[str]]:
        """Return (recommendations, critical_issues) triggered by a score."""
        recommendations: list[str] = []
        critical: list[str] = []
        for advisory in self.advisories:
            if score < advisory.below:
                if advisory.recommendation:
                    recommendations.append(advisory.recommendation)
                if advisory.critical_issue:
                    critical.append(advisory.critical_issue)
        return recommendations, critical


def clamp_score(value: float) -> float:
    """Clamp a score to 0-100."""
    return min(max(float(value), 0.0), 100.0)


def safe_ratio(numerator: float, denominator: float, default: float) -> float:
    """numerator / denominator, or ``default`` when the denominator is zero."""
    if denominator <= 0:
        return default
    return numerator / denominator


def editor_config_present(project: ProjectIntrospector) -> bool:
    return any(project.exists(name) for name in EDITOR_CONFIG)


def recommended_dir_count(project: ProjectIntrospector) -> int:
    return sum(1 for name in RECOMMENDED_DIRS if project.is_dir(name))
