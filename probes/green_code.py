"""Green-Code (resource and performance hygiene) pillar probes."""

from __future__ import annotations

from introspect.project import ManifestError, ProjectIntrospector
from shared.models import ProbeResult

from .base import Advisory, ProbeSpec, clamp_score, safe_ratio
from .rules import rules_for

BENCHMARK_TARGETS = ("bench", "benchmark")
PERF_TEST_MARKERS = ("performance", "bench")
ADVANCED_PATTERN_POINTS = 5.0
MAX_ADVANCED_POINTS = 50.0


# --- Performance Infrastructure ---


def probe_performance_infrastructure(project: ProjectIntrospector) -> ProbeResult:
    """Benchmark dependency, benchmark sources, a bench target, performance tests."""
    profile = project.profile
    score = 0.0
    found: list[str] = []

    try:
        manifest = project.manifest()
    except ManifestError:
        manifest = None
    if manifest is not None and any(
        manifest.has_dependency(dep) for dep in profile.benchmark_dependencies
    ):
        score += 25.0
        found.append("benchmark dependency")

    if project.is_dir(profile.benchmark_dir):
        if next(iter(project.source_files(profile.benchmark_dir)), None) is not None:
            score += 25.0
            found.append(f"{profile.benchmark_dir}/ with sources")
        else:
            score += 10.0
            found.append(f"empty {profile.benchmark_dir}/")

    if project.has_make_target(*BENCHMARK_TARGETS):
        score += 25.0
        found.append("bench target")

    test_dir = project.test_dir()
    if test_dir is not None and any(
        marker in name.lower()
        for name in project.list_dir(test_dir)
        for marker in PERF_TEST_MARKERS
    ):
        score += 25.0
        found.append("performance tests")

    return ProbeResult(
        name="performance_infrastructure",
        score=clamp_score(score),
        details="; ".join(found) or "No performance infrastructure",
    )


# --- Code Efficiency ---


def probe_code_efficiency(project: ProjectIntrospector) -> ProbeResult:
    """Weighted efficient-pattern hits minus anti-pattern hits, per line.

    ``50 + (good - bad) / lines * 1000``, clamped. Anti-patterns carry
    their own (heavier) weight in the rule table.
    """
    name = "code_efficiency"
    rules = rules_for(project)
    files = 0
    total_lines = 0
    good = 0.0
    bad = 0.0

    for path in project.source_files():
        files += 1
        content = project.read_path(path)
        if content is None:
            continue
        lines = content.splitlines()
        total_lines += len(lines)
        for line in lines:
            good += rules.weighted_hits(line, "efficient")
            bad += rules.weighted_hits(line, "anti")

    if files == 0:
        return ProbeResult(name=name, score=50.0, details="No source files")
    if total_lines == 0:
        return ProbeResult(name=name, score=50.0, details="No readable source lines")

    ratio = safe_ratio(good - bad, total_lines, 0.0)
    return ProbeResult(
        name=name,
        score=clamp_score(50.0 + ratio * 1000.0),
        details=f"efficient {good:g}, inefficient {bad:g} over {total_lines} lines",
    )


# --- Resource Management ---


def probe_resource_management(project: ProjectIntrospector) -> ProbeResult:
    """Guarded blocks and released handles, plus advanced cleanup idioms.

    ``25 + good/contexts * 25 + min(50, 5 * advanced hits)`` where contexts
    are guard blocks plus acquire calls, and an advanced idiom counts once
    per file it appears in.
    """
    name = "resource_management"
    rules = rules_for(project)
    files = 0
    contexts = 0
    good_practices = 0
    advanced = 0.0

    for path in project.source_files():
        files += 1
        content = project.read_path(path)
        if content is None:
            continue

        guards = sum(1 for _ in rules.guard_open.finditer(content))
        closers = sum(1 for _ in rules.guard_close.finditer(content))
        contexts += guards
        good_practices += min(guards, closers)

        acquired = sum(r.count(content) for r in rules.acquire)
        released = sum(r.count(content) for r in rules.release)
        if acquired:
            contexts += acquired
            good_practices += min(acquired, released)

        advanced += sum(ADVANCED_PATTERN_POINTS for r in rules.cleanup if r.matches(content))

    if files == 0:
        return ProbeResult(name=name, score=50.0, details="No source files")

    score = 25.0
    if contexts:
        score += good_practices / contexts * 25.0
    score += min(MAX_ADVANCED_POINTS, advanced)

    return ProbeResult(
        name=name,
        score=clamp_score(score),
        details=f"{good_practices}/{contexts} resource contexts cleaned up; "
        f"advanced cleanup {advanced:g}",
    )


GREEN_CODE_PROBES: tuple[ProbeSpec, ...] = (
    ProbeSpec(
        "performance_infrastructure",
        0.40,
        probe_performance_infrastructure,
        (
            Advisory(
                60.0,
                recommendation="Add a benchmark suite with a benchmarking library",
                critical_issue="Benchmark infrastructure missing",
            ),
        ),
    ),
    ProbeSpec(
        "code_efficiency",
        0.35,
        probe_code_efficiency,
        (
            Advisory(
                50.0,
                recommendation="Reduce memory allocations and prefer views or generators",
                critical_issue="Inefficient patterns detected in the code",
            ),
        ),
    ),
    ProbeSpec(
        "resource_management",
        0.25,
        probe_resource_management,
        (Advisory(70.0, recommendation="Improve resource management and cleanup"),),
    ),
)
