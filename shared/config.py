"""Configuration management for maturity-scorecard.

Loads YAML config with cascading precedence: start directory → user home → defaults.
"""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

# --- Config Schema ---

CONFIG_FILENAME = ".maturity-scorecard.yaml"


class PillarConfig(BaseModel):
    """Configuration for a single pillar."""

    weight: float = Field(default=0.0, ge=0.0, le=1.0)


class MaturityThresholds(BaseModel):
    """Inclusive lower bounds for each maturity tier."""

    expert: float = 87.4
    advanced: float = 75.0
    intermediate: float = 60.0


class ComplianceThresholds(BaseModel):
    """Inclusive lower bounds for each compliance verdict."""

    compliant: float = 80.0
    non_compliant: float = 60.0


class ScoreThresholds(BaseModel):
    maturity: MaturityThresholds = Field(default_factory=MaturityThresholds)
    compliance: ComplianceThresholds = Field(default_factory=ComplianceThresholds)


class ScorecardConfig(BaseModel):
    """Top-level pillar weights and classification thresholds."""

    pillars: dict[str, PillarConfig] = Field(
        default_factory=lambda: {
            "security": PillarConfig(weight=0.30),
            "clean_code": PillarConfig(weight=0.25),
            "green_code": PillarConfig(weight=0.20),
            "automation": PillarConfig(weight=0.25),
        }
    )
    thresholds: ScoreThresholds = Field(default_factory=ScoreThresholds)

    def weight_for(self, pillar: str) -> float:
        pillar_config = self.pillars.get(pillar)
        if pillar_config is None:
            return 0.0
        return pillar_config.weight


class LanguageProfile(BaseModel):
    """Artifact names and conventions for one target language."""

    name: str
    ruleset: str = "python"
    source_extension: str = ".py"
    manifests: list[str] = Field(default_factory=lambda: ["pyproject.toml"])
    manifest_format: Literal["julia", "pep621"] = "pep621"
    lockfiles: list[str] = Field(default_factory=list)
    source_dir: str = "src"
    test_dirs: list[str] = Field(default_factory=lambda: ["tests", "test"])
    test_entrypoint: str = "conftest.py"
    benchmark_dir: str = "benchmarks"
    benchmark_dependencies: list[str] = Field(default_factory=list)
    metadata_fields: list[str] = Field(default_factory=lambda: ["name", "version"])
    essential_fields: list[str] = Field(default_factory=lambda: ["name", "version"])
    essential_targets: list[str] = Field(
        default_factory=lambda: ["test", "dev", "lint", "clean", "format"]
    )
    hook_files: list[str] = Field(default_factory=list)
    trusted_packages: list[str] = Field(default_factory=list)


def _julia_profile() -> LanguageProfile:
    return LanguageProfile(
        name="julia",
        ruleset="julia",
        source_extension=".jl",
        manifests=["Project.toml", "JuliaProject.toml"],
        manifest_format="julia",
        lockfiles=["Manifest.toml"],
        test_dirs=["test"],
        test_entrypoint="runtests.jl",
        benchmark_dependencies=["BenchmarkTools"],
        metadata_fields=["name", "uuid", "authors", "version"],
        essential_fields=["name", "uuid", "version"],
        essential_targets=["test", "dev", "pluto", "clean", "format"],
        trusted_packages=[
            "BenchmarkTools", "CSV", "DataFrames", "Dates", "Debugger",
            "Distributions", "Documenter", "FileIO", "HTTP", "IJulia",
            "JLD2", "JSON3", "LinearAlgebra", "Logging", "PackageCompiler",
            "Pkg", "Plots", "Pluto", "PlutoUI", "Printf",
            "ProfileView", "Random", "Revise", "SpecialFunctions", "StaticArrays",
            "Statistics", "StatsBase", "StringEncodings", "Test", "ThreadsX",
        ],
    )


def _python_profile() -> LanguageProfile:
    return LanguageProfile(
        name="python",
        ruleset="python",
        lockfiles=["uv.lock", "poetry.lock", "pdm.lock", "requirements.lock", "Pipfile.lock"],
        benchmark_dependencies=["pytest-benchmark", "asv", "pyperf"],
        metadata_fields=["name", "version", "description", "authors"],
        essential_fields=["name", "version", "description"],
        hook_files=[".pre-commit-config.yaml"],
        trusted_packages=[
            "aiohttp", "anyio", "attrs", "black", "click",
            "django", "fastapi", "flask", "httpx", "jinja2",
            "mypy", "numpy", "pandas", "pydantic", "pytest",
            "pytest-asyncio", "pytest-benchmark", "pytest-cov", "python-dateutil", "pyyaml",
            "requests", "rich", "ruff", "scipy", "sqlalchemy",
            "structlog", "tomli", "typer", "typing-extensions", "uvicorn",
        ],
    )


class ScanConfig(BaseModel):
    """How the project tree is walked and probes are scheduled."""

    profile: str = "auto"
    max_files: int = Field(default=10_000, gt=0)
    ignore_dirs: list[str] = Field(
        default_factory=lambda: [
            "__pycache__", "node_modules", "build", "dist", "venv", "site-packages",
        ]
    )
    probe_timeout: float = Field(default=30.0, gt=0.0)
    probe_concurrency: int = Field(default=8, gt=0)


class RuleConfig(BaseModel):
    """A single custom pattern rule appended to a built-in rule table."""

    name: str
    pattern: str
    category: Literal["risk", "efficient", "anti", "cleanup"] = "risk"
    weight: float = 1.0


class RulesConfig(BaseModel):
    custom: list[RuleConfig] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class MaturityConfig(BaseModel):
    """Top-level configuration for maturity-scorecard."""

    scorecard: ScorecardConfig = Field(default_factory=ScorecardConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    profiles: dict[str, LanguageProfile] = Field(
        default_factory=lambda: {"julia": _julia_profile(), "python": _python_profile()}
    )
    rules: RulesConfig = Field(default_factory=RulesConfig)

    def profile_named(self, name: str) -> LanguageProfile:
        try:
            return self.profiles[name]
        except KeyError:
            known = ", ".join(sorted(self.profiles))
            raise ValueError(f"Unknown language profile '{name}'. Known: {known}") from None


# --- Config Loading ---


def _find_config_files(start_dir: Path | None = None) -> list[Path]:
    """Find config files in cascading order: user home (lowest) → start directory (highest).

    Returns paths in precedence order (lowest first, highest last) so that
    later entries override earlier ones when merged.
    """
    candidates: list[Path] = []

    home_config = Path.home() / CONFIG_FILENAME
    if home_config.is_file():
        candidates.append(home_config)

    search_dir = start_dir or Path.cwd()
    repo_config = search_dir / CONFIG_FILENAME
    if repo_config.is_file() and repo_config != home_config:
        candidates.append(repo_config)

    return candidates


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge override into base. Override values take precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> MaturityConfig:
    """Load maturity-scorecard configuration with cascading precedence.

    Priority (highest to lowest):
    1. Explicit config_path (if provided)
    2. start_dir .maturity-scorecard.yaml
    3. User home .maturity-scorecard.yaml
    4. Built-in defaults

    Files are merged onto the built-in defaults, so a partial profile
    override (e.g. just ``profiles.python.test_dirs``) keeps every other
    default field.

    Args:
        config_path: Explicit path to a config file (overrides discovery).
        start_dir: Directory to search for config files (defaults to cwd).

    Returns:
        Validated MaturityConfig.
    """
    merged: dict[str, Any] = MaturityConfig().model_dump()

    if config_path is not None:
        if config_path.is_file():
            merged = _deep_merge(merged, _load_yaml(config_path))
    else:
        for path in _find_config_files(start_dir):
            merged = _deep_merge(merged, _load_yaml(path))

    return MaturityConfig.model_validate(merged)


@functools.lru_cache(maxsize=32)
def get_config(start_dir: Path | None = None) -> MaturityConfig:
    """Get the cached configuration for a project root. Loaded once per root."""
    return load_config(start_dir=start_dir)


def clear_config_cache() -> None:
    """Clear the cached configuration. Useful for testing."""
    get_config.cache_clear()
