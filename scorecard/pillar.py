"""Pillar evaluator.

Runs a pillar's probes, isolates each probe's failure, and rolls the
sub-scores up into a single PillarScore using the pillar's weight table.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from introspect.project import ProjectIntrospector
from probes.base import ProbeSpec
from shared.models import (
    Pillar,
    PillarScore,
    PillarState,
    ProbeOutcome,
    ProbeResult,
    ProbeStatus,
)

logger = logging.getLogger(__name__)


def failed_outcome(spec: ProbeSpec, error: BaseException | str) -> ProbeOutcome:
    """A zero-scored outcome recording why the probe produced nothing."""
    message = error if isinstance(error, str) else str(error) or type(error).__name__
    return ProbeOutcome(
        name=spec.name,
        weight=spec.weight,
        status=ProbeStatus.FAILED,
        error=message,
    )


def run_probe(spec: ProbeSpec, project: ProjectIntrospector) -> ProbeOutcome:
    """Run one probe; any exception becomes a failed outcome."""
    try:
        result = spec.probe(project)
    except Exception as e:
        logger.warning("Probe %s failed: %s", spec.name, e)
        return failed_outcome(spec, e)

    if not isinstance(result, ProbeResult):
        logger.warning("Probe %s returned %s, not a ProbeResult", spec.name, type(result).__name__)
        return failed_outcome(spec, f"invalid result type {type(result).__name__}")

    return ProbeOutcome(
        name=spec.name,
        weight=spec.weight,
        status=ProbeStatus.SUCCEEDED,
        result=result,
    )


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


class PillarEvaluator:
    """Evaluates one pillar.

    State moves ``pending -> running -> succeeded | degraded``. A pillar is
    degraded only when every one of its probes failed; it still yields a
    valid, zero-scored PillarScore.

    Args:
        pillar: Which pillar this evaluator scores.
        probes: The pillar's weight table.
        weight: The pillar's weight in the overall score.
    """

    def __init__(self, pillar: Pillar, probes: Sequence[ProbeSpec], weight: float):
        self.pillar = pillar
        self.probes = tuple(probes)
        self.weight = weight
        self.state = PillarState.PENDING
        self._specs = {spec.name: spec for spec in self.probes}

    def evaluate(self, project: ProjectIntrospector) -> PillarScore:
        """Run every probe in order and build the pillar score."""
        self.start()
        outcomes = [run_probe(spec, project) for spec in self.probes]
        return self.finish(outcomes)

    def start(self) -> None:
        self.state = PillarState.RUNNING
        logger.debug("Evaluating pillar %s", self.pillar.value)

    def finish(self, outcomes: Sequence[ProbeOutcome]) -> PillarScore:
        """Build the score from outcomes and move to a terminal state."""
        try:
            score = self.from_outcomes(outcomes)
        except Exception as e:
            logger.warning("Pillar %s could not be scored: %s", self.pillar.value, e)
            score = self.degraded(e)
        self.state = score.status
        logger.debug(
            "Pillar %s scored %.2f (%s)", self.pillar.value, score.score, score.status.value
        )
        return score

    def from_outcomes(self, outcomes: Sequence[ProbeOutcome]) -> PillarScore:
        """Weighted rollup of probe outcomes, in weight-table order."""
        order = {spec.name: i for i, spec in enumerate(self.probes)}
        ordered = sorted(outcomes, key=lambda o: order.get(o.name, len(order)))

        metrics: dict[str, float] = {}
        recommendations: list[str] = []
        critical: list[str] = []
        failed: list[str] = []
        total = 0.0

        for outcome in ordered:
            metrics[outcome.name] = min(max(outcome.score, 0.0), 100.0)
            total += metrics[outcome.name] * outcome.weight
            if not outcome.succeeded:
                failed.append(outcome.name)
                critical.append(f"{outcome.name} probe failed: {outcome.error}")
                continue

            spec = self._specs.get(outcome.name)
            if spec is not None:
                recs, crits = spec.advise(outcome.score)
                critical.extend(crits)
                recommendations.extend(recs)
            critical.extend(outcome.result.critical_issues)
            recommendations.extend(outcome.result.recommendations)

        all_failed = bool(ordered) and len(failed) == len(ordered)
        return PillarScore(
            pillar=self.pillar,
            name=self.pillar.display_name,
            score=min(max(total, 0.0), 100.0),
            weight=self.weight,
            metrics=metrics,
            recommendations=_unique(recommendations),
            critical_issues=_unique(critical),
            status=PillarState.DEGRADED if all_failed else PillarState.SUCCEEDED,
            failed_probes=failed,
        )

    def degraded(self, error: BaseException | str) -> PillarScore:
        """Zero-scored placeholder for a pillar that could not be evaluated."""
        return PillarScore(
            pillar=self.pillar,
            name=self.pillar.display_name,
            score=0.0,
            weight=self.weight,
            metrics={spec.name: 0.0 for spec in self.probes},
            critical_issues=[f"{self.pillar.display_name} evaluation failed: {error}"],
            status=PillarState.DEGRADED,
            failed_probes=[spec.name for spec in self.probes],
        )


def evaluate_pillar_safely(
    evaluator: PillarEvaluator, project: ProjectIntrospector
) -> PillarScore:
    """Evaluate a pillar, degrading instead of raising on any error."""
    try:
        return evaluator.evaluate(project)
    except Exception as e:
        logger.warning("Pillar %s evaluation failed: %s", evaluator.pillar.value, e)
        evaluator.state = PillarState.DEGRADED
        return evaluator.degraded(e)
