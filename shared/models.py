"""Shared data models for maturity-scorecard.

Core Pydantic models used across the introspector, probes, and scorecard
packages. Every model is an immutable value object owned by the caller.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Enums ---


class Pillar(str, Enum):
    """Top-level quality pillars."""

    SECURITY = "security"
    CLEAN_CODE = "clean_code"
    GREEN_CODE = "green_code"
    AUTOMATION = "automation"

    @property
    def display_name(self) -> str:
        return PILLAR_DISPLAY_NAMES[self]


PILLAR_DISPLAY_NAMES = {
    Pillar.SECURITY: "Security First",
    Pillar.CLEAN_CODE: "Clean Code",
    Pillar.GREEN_CODE: "Green Code",
    Pillar.AUTOMATION: "Advanced Automation",
}


class PillarState(str, Enum):
    """Lifecycle of a single pillar evaluation."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"


class ProbeStatus(str, Enum):
    """Outcome of running one probe."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MaturityLevel(str, Enum):
    """Ordinal maturity tier derived from the overall score."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ComplianceStatus(str, Enum):
    """Compliance verdict derived from the overall score."""

    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    CRITICAL = "critical"


class PillarVerdict(str, Enum):
    """Per-pillar pass/warn/fail status for report tables."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


PASS_THRESHOLD = 80.0
WARN_THRESHOLD = 60.0


def verdict_for(score: float) -> PillarVerdict:
    """Pass at 80 and above, warn at 60 and above, else fail."""
    if score >= PASS_THRESHOLD:
        return PillarVerdict.PASS
    if score >= WARN_THRESHOLD:
        return PillarVerdict.WARN
    return PillarVerdict.FAIL


# --- Probe Models ---


class ProbeResult(BaseModel):
    """Sub-score produced by a single probe."""

    model_config = ConfigDict(frozen=True)

    name: str
    score: float = Field(ge=0.0, le=100.0)
    details: str = ""
    recommendations: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)


class ProbeOutcome(BaseModel):
    """Success or failure of running a probe, with its weight in the pillar."""

    model_config = ConfigDict(frozen=True)

    name: str
    weight: float = Field(ge=0.0, le=1.0)
    status: ProbeStatus
    result: ProbeResult | None = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == ProbeStatus.SUCCEEDED

    @property
    def score(self) -> float:
        if self.result is None:
            return 0.0
        return self.result.score


# --- Scorecard Models ---


class PillarScore(BaseModel):
    """Score for a single pillar."""

    model_config = ConfigDict(frozen=True)

    pillar: Pillar
    name: str
    score: float = Field(ge=0.0, le=100.0)
    weight: float = Field(ge=0.0, le=1.0)
    metrics: dict[str, float] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)
    status: PillarState = PillarState.SUCCEEDED
    failed_probes: list[str] = Field(default_factory=list)

    @field_validator("metrics")
    @classmethod
    def _metrics_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for metric, score in value.items():
            if not 0.0 <= score <= 100.0:
                raise ValueError(f"metric '{metric}' out of range [0, 100]: {score}")
        return value

    @property
    def contribution(self) -> float:
        """Weighted contribution of this pillar to the overall score."""
        return self.score * self.weight

    @property
    def verdict(self) -> PillarVerdict:
        return verdict_for(self.score)


class ProjectScore(BaseModel):
    """Complete evaluation result for one project."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    project_path: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)
    security: PillarScore
    clean_code: PillarScore
    green_code: PillarScore
    automation: PillarScore
    overall_score: float = Field(ge=0.0, le=100.0, default=0.0)
    maturity_level: MaturityLevel
    compliance_status: ComplianceStatus
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def pillars(self) -> tuple[PillarScore, PillarScore, PillarScore, PillarScore]:
        return (self.security, self.clean_code, self.green_code, self.automation)

    def all_recommendations(self, limit: int | None = None) -> list[str]:
        """Recommendations from every pillar, deduplicated, in pillar order."""
        seen: list[str] = []
        for pillar in self.pillars:
            for rec in pillar.recommendations:
                if rec not in seen:
                    seen.append(rec)
        return seen if limit is None else seen[:limit]

    def score_fingerprint(self) -> dict[str, Any]:
        """Everything but the timestamp, for comparing two runs by value."""
        return self.model_dump(mode="json", exclude={"timestamp"})
