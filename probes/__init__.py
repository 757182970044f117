"""Heuristic probes for the four quality pillars.

Each pillar module exposes a weight table of ProbeSpec rows.
"""

from shared.models import Pillar

from .automation import AUTOMATION_PROBES
from .base import Advisory, Probe, ProbeSpec
from .clean_code import CLEAN_CODE_PROBES
from .green_code import GREEN_CODE_PROBES
from .rules import RULESETS, PatternRule, RuleSet, get_ruleset, rules_for
from .security import SECURITY_PROBES

PILLAR_PROBES: dict[Pillar, tuple[ProbeSpec, ...]] = {
    Pillar.SECURITY: SECURITY_PROBES,
    Pillar.CLEAN_CODE: CLEAN_CODE_PROBES,
    Pillar.GREEN_CODE: GREEN_CODE_PROBES,
    Pillar.AUTOMATION: AUTOMATION_PROBES,
}

__all__ = [
    "AUTOMATION_PROBES",
    "Advisory",
    "CLEAN_CODE_PROBES",
    "GREEN_CODE_PROBES",
    "PILLAR_PROBES",
    "PatternRule",
    "Probe",
    "ProbeSpec",
    "RULESETS",
    "RuleSet",
    "SECURITY_PROBES",
    "get_ruleset",
    "rules_for",
]
