"""Maturity engine.

Main entry point: resolves the project root, picks a language profile,
runs all four pillars, and aggregates them into a ProjectScore.

Supports both sync and async evaluation. Async mode runs every probe
concurrently in worker threads with a per-probe timeout.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from introspect.project import (
    ManifestError,
    ProjectIntrospector,
    ResourceTracker,
    detect_profile,
    resolve_root,
)
from probes import PILLAR_PROBES, ProbeSpec, get_ruleset
from scorecard.aggregator import aggregate
from scorecard.pillar import PillarEvaluator, evaluate_pillar_safely, failed_outcome, run_probe
from shared.config import LanguageProfile, MaturityConfig, load_config
from shared.exceptions import InvalidProjectPath
from shared.models import Pillar, PillarScore, ProbeOutcome, ProjectScore

logger = logging.getLogger(__name__)

AUTO_PROFILE = "auto"
FALLBACK_PROFILE = "python"

# Tracker counters still moving while a timed-out probe thread runs on.
_VOLATILE_COUNTERS = ("files_read", "open_handles")


def _manifest_names(config: MaturityConfig) -> list[str]:
    if config.scan.profile != AUTO_PROFILE:
        return list(config.profile_named(config.scan.profile).manifests)
    names: list[str] = []
    for profile in config.profiles.values():
        names.extend(n for n in profile.manifests if n not in names)
    return names


def _select_profile(root: Path, config: MaturityConfig) -> LanguageProfile:
    name = config.scan.profile
    if name != AUTO_PROFILE:
        return config.profile_named(name)
    detected = detect_profile(root, config.profiles)
    if detected is not None:
        return detected
    logger.debug("No manifest at %s, using the %s profile", root, FALLBACK_PROFILE)
    if FALLBACK_PROFILE in config.profiles:
        return config.profiles[FALLBACK_PROFILE]
    return next(iter(config.profiles.values()))


class MaturityEngine:
    """Evaluates projects against the four quality pillars.

    Args:
        config: Fixed configuration for every evaluation. When omitted, each
            evaluation discovers ``.maturity-scorecard.yaml`` from the
            resolved project root, never from the working directory.
        probes: Per-pillar weight tables (the built-in ones by default).
    """

    def __init__(
        self,
        config: MaturityConfig | None = None,
        probes: dict[Pillar, tuple[ProbeSpec, ...]] | None = None,
    ):
        self.config = config
        self.probes = probes if probes is not None else PILLAR_PROBES

    # --- Setup ---

    def configure(self, path: str | Path) -> tuple[Path, MaturityConfig]:
        """Resolve the project root and the configuration that applies to it.

        Raises:
            InvalidProjectPath: If the path is missing or the root is not a directory.
            ValueError: If the configured profile is unknown.
        """
        known = self.config if self.config is not None else MaturityConfig()
        root = resolve_root(path, _manifest_names(known))
        if not root.is_dir():
            raise InvalidProjectPath(root, "is not a directory")

        config = self.config if self.config is not None else load_config(start_dir=root)
        return root, config

    def _introspector(self, root: Path, config: MaturityConfig) -> ProjectIntrospector:
        profile = _select_profile(root, config)
        rules = get_ruleset(profile.ruleset).with_config(config.rules)
        scan = config.scan
        logger.debug("Evaluating %s with the %s profile", root, profile.name)
        return ProjectIntrospector(
            root,
            profile,
            ResourceTracker(),
            rules=rules,
            max_files=scan.max_files,
            ignore_dirs=scan.ignore_dirs,
        )

    def prepare(self, path: str | Path) -> ProjectIntrospector:
        """Resolve the root and build a fresh introspector for one evaluation.

        Raises:
            InvalidProjectPath: If the path is missing or the root is not a directory.
            ValueError: If the configured profile or a custom rule is invalid.
        """
        return self._introspector(*self.configure(path))

    def _project_name(self, project: ProjectIntrospector) -> str:
        try:
            manifest = project.manifest()
        except ManifestError as e:
            logger.warning("Using directory name for %s: %s", project.root, e)
            return project.root.name
        if manifest is not None and manifest.name:
            return manifest.name
        return project.root.name

    def _evaluators(self, config: MaturityConfig) -> dict[Pillar, PillarEvaluator]:
        return {
            pillar: PillarEvaluator(
                pillar,
                self.probes.get(pillar, ()),
                config.scorecard.weight_for(pillar.value),
            )
            for pillar in Pillar
        }

    def _finish(
        self,
        project: ProjectIntrospector,
        config: MaturityConfig,
        project_name: str,
        scores: dict[Pillar, PillarScore],
        timestamp: datetime | None,
        timed_out: list[str] | None = None,
    ) -> ProjectScore:
        metadata: dict[str, Any] = {"profile": project.profile.name}
        metadata.update(project.tracker.summary())
        if timed_out:
            for key in _VOLATILE_COUNTERS:
                metadata.pop(key, None)
            metadata["timed_out_probes"] = timed_out

        probe_errors = [
            f"{pillar.value}.{probe}"
            for pillar, score in scores.items()
            for probe in score.failed_probes
        ]
        if probe_errors:
            metadata["probe_errors"] = probe_errors

        return aggregate(
            scores[Pillar.SECURITY],
            scores[Pillar.CLEAN_CODE],
            scores[Pillar.GREEN_CODE],
            scores[Pillar.AUTOMATION],
            project_name=project_name,
            project_path=str(project.root),
            timestamp=timestamp or datetime.now(),
            thresholds=config.scorecard.thresholds,
            metadata=metadata,
        )

    # --- Evaluation ---

    def evaluate(self, path: str | Path, *, timestamp: datetime | None = None) -> ProjectScore:
        """Evaluate one project, running the probes one after another.

        Args:
            path: Project directory, or any file or subdirectory inside it.
            timestamp: Fixed evaluation time for reproducible output.

        Raises:
            InvalidProjectPath: If the path does not resolve to a project directory.
        """
        root, config = self.configure(path)
        project = self._introspector(root, config)
        project_name = self._project_name(project)
        scores = {
            pillar: evaluate_pillar_safely(evaluator, project)
            for pillar, evaluator in self._evaluators(config).items()
        }
        return self._finish(project, config, project_name, scores, timestamp)

    async def evaluate_async(
        self, path: str | Path, *, timestamp: datetime | None = None
    ) -> ProjectScore:
        """Evaluate one project with all probes running concurrently.

        Each probe runs in a worker thread, at most ``scan.probe_concurrency``
        at a time. A probe exceeding ``scan.probe_timeout`` counts as failed
        instead of blocking the evaluation. Its thread cannot be cancelled and
        may still be reading files, so when any probe timed out the
        ``files_read`` and ``open_handles`` counters are left out of the
        metadata and ``timed_out_probes`` names the stragglers.
        """
        root, config = await asyncio.to_thread(self.configure, path)
        project = await asyncio.to_thread(self._introspector, root, config)
        project_name = await asyncio.to_thread(self._project_name, project)

        timeout = config.scan.probe_timeout
        semaphore = asyncio.Semaphore(config.scan.probe_concurrency)
        timed_out: list[str] = []

        async def _run_probe(pillar: Pillar, spec: ProbeSpec) -> ProbeOutcome:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        asyncio.to_thread(run_probe, spec, project), timeout=timeout
                    )
                except asyncio.TimeoutError:
                    logger.warning("Probe %s timed out after %ss", spec.name, timeout)
                    timed_out.append(f"{pillar.value}.{spec.name}")
                    return failed_outcome(spec, f"timed out after {timeout}s")

        evaluators = self._evaluators(config)
        for evaluator in evaluators.values():
            evaluator.start()

        gathered = await asyncio.gather(
            *[
                asyncio.gather(*[_run_probe(pillar, spec) for spec in evaluator.probes])
                for pillar, evaluator in evaluators.items()
            ]
        )
        scores = {
            pillar: evaluator.finish(outcomes)
            for (pillar, evaluator), outcomes in zip(evaluators.items(), gathered)
        }
        return self._finish(
            project, config, project_name, scores, timestamp, sorted(timed_out)
        )


def evaluate_project(
    path: str | Path,
    config: MaturityConfig | None = None,
    *,
    timestamp: datetime | None = None,
) -> ProjectScore:
    """Evaluate the project at ``path`` and return its maturity score.

    Without ``config``, settings come from ``.maturity-scorecard.yaml`` at the
    project root (then the user's home, then the defaults).

    Raises:
        InvalidProjectPath: If the path does not resolve to a project directory.
    """
    return MaturityEngine(config).evaluate(path, timestamp=timestamp)
