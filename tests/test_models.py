"""Tests for shared data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from shared.models import (
    ComplianceStatus,
    MaturityLevel,
    Pillar,
    PillarScore,
    PillarState,
    PillarVerdict,
    ProbeOutcome,
    ProbeResult,
    ProbeStatus,
    ProjectScore,
    verdict_for,
)


def make_pillar(pillar: Pillar, score: float = 70.0, weight: float = 0.25, **kwargs) -> PillarScore:
    return PillarScore(pillar=pillar, name=pillar.display_name, score=score, weight=weight, **kwargs)


def make_project_score(**kwargs) -> ProjectScore:
    defaults = dict(
        project_name="demo",
        timestamp=datetime(2025, 1, 1),
        security=make_pillar(Pillar.SECURITY, recommendations=["Pin versions", "Audit"]),
        clean_code=make_pillar(Pillar.CLEAN_CODE, recommendations=["Audit", "Docstrings"]),
        green_code=make_pillar(Pillar.GREEN_CODE),
        automation=make_pillar(Pillar.AUTOMATION, recommendations=["Makefile"]),
        overall_score=70.0,
        maturity_level=MaturityLevel.INTERMEDIATE,
        compliance_status=ComplianceStatus.NON_COMPLIANT,
    )
    defaults.update(kwargs)
    return ProjectScore(**defaults)


# --- Enums ---


class TestEnums:
    def test_pillar_values(self):
        assert [p.value for p in Pillar] == ["security", "clean_code", "green_code", "automation"]

    def test_display_names(self):
        assert Pillar.SECURITY.display_name == "Security First"
        assert Pillar.AUTOMATION.display_name == "Advanced Automation"

    def test_string_enums(self):
        assert MaturityLevel.EXPERT == "expert"
        assert ComplianceStatus.NON_COMPLIANT == "non_compliant"


# --- Probe Models ---


class TestProbeResult:
    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            ProbeResult(name="x", score=100.1)
        with pytest.raises(ValidationError):
            ProbeResult(name="x", score=-0.1)

    def test_frozen(self):
        result = ProbeResult(name="x", score=50.0)
        with pytest.raises(ValidationError):
            result.score = 60.0


class TestProbeOutcome:
    def test_failed_outcome_scores_zero(self):
        outcome = ProbeOutcome(name="x", weight=0.5, status=ProbeStatus.FAILED, error="boom")
        assert outcome.score == 0.0
        assert not outcome.succeeded

    def test_succeeded_outcome_uses_result(self):
        outcome = ProbeOutcome(
            name="x",
            weight=0.5,
            status=ProbeStatus.SUCCEEDED,
            result=ProbeResult(name="x", score=42.0),
        )
        assert outcome.score == 42.0
        assert outcome.succeeded


# --- Pillar Models ---


class TestPillarScore:
    def test_metrics_validated(self):
        with pytest.raises(ValidationError, match="out of range"):
            make_pillar(Pillar.SECURITY, metrics={"package_security": 120.0})

    def test_weight_bounds(self):
        with pytest.raises(ValidationError):
            make_pillar(Pillar.SECURITY, weight=1.5)

    def test_contribution(self):
        assert make_pillar(Pillar.SECURITY, score=80.0, weight=0.3).contribution == pytest.approx(24.0)

    def test_defaults(self):
        pillar = make_pillar(Pillar.SECURITY)
        assert pillar.status == PillarState.SUCCEEDED
        assert pillar.failed_probes == []

    @pytest.mark.parametrize(
        "score,expected",
        [(95.0, PillarVerdict.PASS), (80.0, PillarVerdict.PASS), (65.0, PillarVerdict.WARN), (10.0, PillarVerdict.FAIL)],
    )
    def test_verdict(self, score, expected):
        assert make_pillar(Pillar.SECURITY, score=score).verdict == expected
        assert verdict_for(score) == expected


class TestProjectScore:
    def test_pillars_in_order(self):
        score = make_project_score()
        assert [p.pillar for p in score.pillars] == list(Pillar)

    def test_all_recommendations_deduplicated(self):
        score = make_project_score()
        assert score.all_recommendations() == ["Pin versions", "Audit", "Docstrings", "Makefile"]
        assert score.all_recommendations(limit=2) == ["Pin versions", "Audit"]

    def test_fingerprint_ignores_timestamp(self):
        first = make_project_score(timestamp=datetime(2025, 1, 1))
        second = make_project_score(timestamp=datetime(2026, 1, 1))
        assert first.score_fingerprint() == second.score_fingerprint()
        assert "timestamp" not in first.score_fingerprint()

    def test_fingerprint_sees_score_changes(self):
        assert make_project_score().score_fingerprint() != make_project_score(overall_score=71.0).score_fingerprint()

    def test_json_dump(self):
        data = make_project_score().model_dump(mode="json")
        assert data["maturity_level"] == "intermediate"
        assert data["security"]["pillar"] == "security"
        assert data["security"]["status"] == "succeeded"

    def test_overall_bounds(self):
        with pytest.raises(ValidationError):
            make_project_score(overall_score=101.0)
