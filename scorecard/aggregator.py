"""Overall score aggregation and classification."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from shared.config import ComplianceThresholds, MaturityThresholds, ScoreThresholds
from shared.models import (
    ComplianceStatus,
    MaturityLevel,
    PillarScore,
    PillarVerdict,
    ProjectScore,
    verdict_for,
)

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 0.001


def validate_weights(pillars: Sequence[PillarScore]) -> list[str]:
    """Check that pillar weights sum to 1.0 within tolerance.

    Returns the warnings found (also logged). Never raises: evaluation
    proceeds with whatever weights were supplied.
    """
    warnings: list[str] = []
    total = sum(p.weight for p in pillars)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        warnings.append(f"Pillar weights sum to {total:.4f}, expected 1.0")
    for warning in warnings:
        logger.warning(warning)
    return warnings


def weighted_overall(pillars: Sequence[PillarScore]) -> float:
    """Sum of score x weight over all pillars, clamped to 0-100."""
    total = sum(p.score * p.weight for p in pillars)
    return min(max(total, 0.0), 100.0)


def classify_maturity(
    score: float, thresholds: MaturityThresholds | None = None
) -> MaturityLevel:
    t = thresholds or MaturityThresholds()
    if score >= t.expert:
        return MaturityLevel.EXPERT
    if score >= t.advanced:
        return MaturityLevel.ADVANCED
    if score >= t.intermediate:
        return MaturityLevel.INTERMEDIATE
    return MaturityLevel.BEGINNER


def classify_compliance(
    score: float, thresholds: ComplianceThresholds | None = None
) -> ComplianceStatus:
    t = thresholds or ComplianceThresholds()
    if score >= t.compliant:
        return ComplianceStatus.COMPLIANT
    if score >= t.non_compliant:
        return ComplianceStatus.NON_COMPLIANT
    return ComplianceStatus.CRITICAL


def pillar_verdict(score: float) -> PillarVerdict:
    return verdict_for(score)


def aggregate(
    security: PillarScore,
    clean_code: PillarScore,
    green_code: PillarScore,
    automation: PillarScore,
    *,
    project_name: str,
    project_path: str = "",
    timestamp: datetime | None = None,
    thresholds: ScoreThresholds | None = None,
    metadata: dict[str, Any] | None = None,
) -> ProjectScore:
    """Combine four pillar scores into a classified ProjectScore.

    Args:
        security: Security pillar score.
        clean_code: Clean-Code pillar score.
        green_code: Green-Code pillar score.
        automation: Automation pillar score.
        project_name: Name reported for the project.
        project_path: Resolved project root.
        timestamp: Evaluation time (defaults to now).
        thresholds: Maturity and compliance bounds (defaults built in).
        metadata: Extra data attached to the result.
    """
    thresholds = thresholds or ScoreThresholds()
    pillars = (security, clean_code, green_code, automation)

    result_metadata = dict(metadata) if metadata else {}
    warnings = validate_weights(pillars)
    if warnings:
        result_metadata["warnings"] = [*result_metadata.get("warnings", []), *warnings]

    overall = weighted_overall(pillars)
    logger.debug("Overall score for %s: %.2f", project_name, overall)

    return ProjectScore(
        project_name=project_name,
        project_path=project_path,
        timestamp=timestamp or datetime.now(),
        security=security,
        clean_code=clean_code,
        green_code=green_code,
        automation=automation,
        overall_score=overall,
        maturity_level=classify_maturity(overall, thresholds.maturity),
        compliance_status=classify_compliance(overall, thresholds.compliance),
        metadata=result_metadata,
    )
