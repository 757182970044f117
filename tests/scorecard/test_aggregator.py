"""Tests for score aggregation and classification."""

import logging
from datetime import datetime

import pytest

from scorecard.aggregator import (
    WEIGHT_TOLERANCE,
    aggregate,
    classify_compliance,
    classify_maturity,
    pillar_verdict,
    validate_weights,
    weighted_overall,
)
from shared.config import MaturityThresholds, ScoreThresholds
from shared.models import (
    ComplianceStatus,
    MaturityLevel,
    Pillar,
    PillarScore,
    PillarVerdict,
)

FIXED_TIME = datetime(2025, 1, 1, 12, 0, 0)


def pillar(which: Pillar, score: float, weight: float) -> PillarScore:
    return PillarScore(pillar=which, name=which.display_name, score=score, weight=weight)


def four(scores=(80.0, 80.0, 80.0, 80.0), weights=(0.30, 0.25, 0.20, 0.25)):
    return tuple(pillar(p, s, w) for p, s, w in zip(Pillar, scores, weights))


# --- Classification ---


class TestClassifyMaturity:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100.0, MaturityLevel.EXPERT),
            (87.4, MaturityLevel.EXPERT),
            (87.39, MaturityLevel.ADVANCED),
            (75.0, MaturityLevel.ADVANCED),
            (74.99, MaturityLevel.INTERMEDIATE),
            (60.0, MaturityLevel.INTERMEDIATE),
            (59.99, MaturityLevel.BEGINNER),
            (0.0, MaturityLevel.BEGINNER),
        ],
    )
    def test_tiers_inclusive(self, score, expected):
        assert classify_maturity(score) == expected

    def test_custom_thresholds(self):
        thresholds = MaturityThresholds(expert=95.0, advanced=90.0, intermediate=50.0)
        assert classify_maturity(90.0, thresholds) == MaturityLevel.ADVANCED


class TestClassifyCompliance:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (80.0, ComplianceStatus.COMPLIANT),
            (79.99, ComplianceStatus.NON_COMPLIANT),
            (60.0, ComplianceStatus.NON_COMPLIANT),
            (59.99, ComplianceStatus.CRITICAL),
        ],
    )
    def test_bounds_inclusive(self, score, expected):
        assert classify_compliance(score) == expected


class TestPillarVerdict:
    def test_verdicts(self):
        assert pillar_verdict(80.0) == PillarVerdict.PASS
        assert pillar_verdict(79.9) == PillarVerdict.WARN
        assert pillar_verdict(60.0) == PillarVerdict.WARN
        assert pillar_verdict(59.9) == PillarVerdict.FAIL


# --- Weights ---


class TestValidateWeights:
    def test_canonical_weights_valid(self):
        assert validate_weights(four()) == []

    def test_within_tolerance(self):
        weights = (0.30, 0.25, 0.20, 0.25 + WEIGHT_TOLERANCE / 2)
        assert validate_weights(four(weights=weights)) == []

    def test_mismatch_warns_without_raising(self, caplog):
        with caplog.at_level(logging.WARNING, logger="scorecard.aggregator"):
            warnings = validate_weights(four(weights=(0.5, 0.5, 0.5, 0.5)))
        assert len(warnings) == 1
        assert "2.0000" in warnings[0]
        assert "expected 1.0" in caplog.text


class TestWeightedOverall:
    def test_dot_product(self):
        pillars = four(scores=(100.0, 80.0, 60.0, 40.0))
        assert weighted_overall(pillars) == pytest.approx(30.0 + 20.0 + 12.0 + 10.0)

    def test_clamped_with_invalid_weights(self):
        pillars = four(scores=(100.0,) * 4, weights=(1.0,) * 4)
        assert weighted_overall(pillars) == 100.0


# --- aggregate ---


class TestAggregate:
    def test_builds_project_score(self):
        result = aggregate(*four(), project_name="demo", project_path="/tmp/demo", timestamp=FIXED_TIME)
        assert result.overall_score == pytest.approx(80.0)
        assert result.maturity_level == MaturityLevel.ADVANCED
        assert result.compliance_status == ComplianceStatus.COMPLIANT
        assert result.timestamp == FIXED_TIME
        assert result.project_path == "/tmp/demo"
        assert "warnings" not in result.metadata

    def test_bad_weights_recorded_in_metadata(self):
        result = aggregate(
            *four(weights=(0.4, 0.4, 0.4, 0.4)),
            project_name="demo",
            metadata={"profile": "python"},
        )
        assert result.metadata["profile"] == "python"
        assert len(result.metadata["warnings"]) == 1
        assert 0.0 <= result.overall_score <= 100.0

    def test_caller_metadata_not_mutated(self):
        metadata = {"warnings": ["earlier"]}
        result = aggregate(*four(weights=(0.4,) * 4), project_name="demo", metadata=metadata)
        assert metadata == {"warnings": ["earlier"]}
        assert result.metadata["warnings"][0] == "earlier"

    def test_custom_thresholds(self):
        thresholds = ScoreThresholds.model_validate({"compliance": {"compliant": 90.0}})
        result = aggregate(*four(), project_name="demo", thresholds=thresholds)
        assert result.compliance_status == ComplianceStatus.NON_COMPLIANT

    def test_expert_boundary(self):
        result = aggregate(*four(scores=(87.4,) * 4), project_name="demo")
        assert result.overall_score == pytest.approx(87.4)
