"""Declarative pattern tables used by the line-based probes.

Each language profile names a RuleSet. Rules are plain ``pattern → weight``
rows grouped by category, so the rule set can be tested and extended from
config without touching any scoring code.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from introspect.project import ProjectIntrospector
    from shared.config import RulesConfig

CATEGORIES = ("risk", "efficient", "anti", "cleanup")


@dataclass(frozen=True)
class PatternRule:
    """A single regex rule with its weight."""

    name: str
    pattern: re.Pattern[str]
    weight: float = 1.0

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def count(self, text: str) -> int:
        return sum(1 for _ in self.pattern.finditer(text))


def rule(name: str, pattern: str, weight: float = 1.0, flags: int = 0) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(pattern, flags), weight=weight)


@dataclass(frozen=True)
class RuleSet:
    """All pattern tables for one target language."""

    name: str
    comment_prefix: str
    risk: tuple[PatternRule, ...]
    efficient: tuple[PatternRule, ...]
    anti: tuple[PatternRule, ...]
    cleanup: tuple[PatternRule, ...]
    acquire: tuple[PatternRule, ...]
    release: tuple[PatternRule, ...]
    guard_open: re.Pattern[str]
    guard_close: re.Pattern[str]
    function_def: re.Pattern[str]
    assignment: re.Pattern[str]
    type_def: re.Pattern[str]
    good_function_name: re.Pattern[str]
    good_variable_name: re.Pattern[str]
    good_type_name: re.Pattern[str]
    docstring_markers: tuple[str, ...]
    docstring_before: bool
    block_end_keyword: str | None

    def is_comment(self, line: str) -> bool:
        return line.lstrip().startswith(self.comment_prefix)

    def first_risk(self, line: str) -> PatternRule | None:
        """The first risk rule matching a line, if any."""
        for r in self.risk:
            if r.matches(line):
                return r
        return None

    def weighted_hits(self, line: str, category: str) -> float:
        return sum(r.weight for r in getattr(self, category) if r.matches(line))

    def with_config(self, rules_config: RulesConfig) -> RuleSet:
        """Return a copy with custom rules appended and disabled rules dropped.

        Raises:
            ValueError: If a custom rule's regex does not compile.
        """
        disabled = set(rules_config.disabled)
        changes: dict[str, tuple[PatternRule, ...]] = {}
        for category in CATEGORIES:
            kept = [r for r in getattr(self, category) if r.name not in disabled]
            for custom in rules_config.custom:
                if custom.category != category or custom.name in disabled:
                    continue
                try:
                    kept.append(rule(f"custom:{custom.name}", custom.pattern, custom.weight))
                except re.error as e:
                    raise ValueError(f"Invalid regex pattern for '{custom.name}': {e}") from e
            changes[category] = tuple(kept)
        return dataclasses.replace(self, **changes)


# --- Julia ---

_SECRET_FLAGS = re.IGNORECASE

JULIA_RULES = RuleSet(
    name="julia",
    comment_prefix="#",
    risk=(
        rule("hardcoded_password", r"""password\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_secret", r"""secret\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_api_key", r"""api_key\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_token", r"""token\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("dynamic_eval", r"\beval\s*\("),
        rule("eval_macro", r"@eval\b"),
        rule("unsafe_call", r"\bunsafe_"),
        rule("ccall", r"\bccall\s*\("),
    ),
    efficient=(
        rule("inbounds", r"@inbounds"),
        rule("simd", r"@simd"),
        rule("views_macro", r"@views"),
        rule("view_call", r"\bview\s*\("),
        rule("static_arrays", r"StaticArrays"),
        rule("benchmark_macro", r"@benchmark"),
        rule("preallocated_vector", r"Vector\{[^}]+\}\(undef"),
        rule("zeros", r"\bzeros\s*\("),
        rule("ones", r"\bones\s*\("),
        rule("fastmath", r"@fastmath"),
        rule("threads", r"Threads\.@threads"),
        rule("similar", r"\bsimilar\("),
        rule("resize_inplace", r"\bresize!\("),
        rule("fill_inplace", r"\bfill!\("),
        rule("time_macro", r"@time\b"),
        rule("elapsed_macro", r"@elapsed\b"),
        rule("allocated_macro", r"@allocated\b"),
        rule("live_bytes", r"Base\.gc_live_bytes\(\)"),
        rule("chunking", r"\b(?:chunk|block)_size\b"),
        rule("inplace", r"\binplace\b"),
    ),
    anti=(
        rule("global_variable", r"\bglobal\s+[a-zA-Z_]", weight=2.0),
        rule("append_empty_literal", r"append!\s*\(\s*\[\s*\]", weight=2.0),
        rule("collect_generator", r"collect\s*\([^)]*generator[^)]*\)", weight=2.0),
        rule("loop_over_collect", r"\bfor\b.*\bin\b.*\bcollect\b", weight=2.0),
        rule("increment_operator", r"\+\+", weight=2.0),
        rule("broadcast_equality", r"\.==", weight=2.0),
    ),
    cleanup=(
        rule("do_block", r"\bdo\s+\w+\s*$", flags=re.MULTILINE),
        rule("finalizer", r"\bfinalizer\s*\("),
        rule("with_cleanup", r"@with_cleanup"),
        rule("safe_operation", r"\bsafe_operation\b"),
        rule("track_resource", r"\btrack_resource\b"),
        rule("cleanup_all", r"\bcleanup_all!"),
        rule("resource_pool", r"\bResourcePool\b"),
        rule("pooled_resource", r"\bwith_pooled_resource\b"),
    ),
    acquire=(rule("open", r"\bopen\s*\("),),
    release=(rule("close", r"\bclose\s*\("),),
    guard_open=re.compile(r"\btry\b"),
    guard_close=re.compile(r"\bfinally\b"),
    function_def=re.compile(r"^\s*function\s+([A-Za-z_][A-Za-z0-9_!]*)"),
    assignment=re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)"),
    type_def=re.compile(r"^\s*(?:mutable\s+)?struct\s+([A-Za-z_][A-Za-z0-9_]*)"),
    good_function_name=re.compile(r"^_*[a-z][a-z0-9_!]*$"),
    good_variable_name=re.compile(r"^(?:_*[a-z][a-z0-9_]*|[A-Z_][A-Z0-9_]*)$"),
    good_type_name=re.compile(r"^[A-Z][A-Za-z0-9]*$"),
    docstring_markers=('"""',),
    docstring_before=True,
    block_end_keyword="end",
)


# --- Python ---

PYTHON_RULES = RuleSet(
    name="python",
    comment_prefix="#",
    risk=(
        rule("hardcoded_password", r"""password\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_secret", r"""secret\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_api_key", r"""api_key\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("hardcoded_token", r"""token\s*=\s*["'][^"']+["']""", flags=_SECRET_FLAGS),
        rule("dynamic_eval", r"\beval\s*\("),
        rule("dynamic_exec", r"\bexec\s*\("),
        rule("dynamic_import", r"\b__import__\s*\("),
        rule("os_system", r"\bos\.system\s*\("),
        rule("shell_true", r"\bshell\s*=\s*True\b"),
        rule("pickle_load", r"\bpickle\.loads?\s*\("),
    ),
    efficient=(
        rule("list_comprehension", r"\[[^\]]+\bfor\b[^\]]+\bin\b[^\]]+\]"),
        rule("generator_yield", r"\byield\b"),
        rule("lru_cache", r"@(?:functools\.)?(?:lru_cache|cache)\b"),
        rule("cached_property", r"@(?:functools\.)?cached_property\b"),
        rule("slots", r"\b__slots__\b"),
        rule("itertools", r"\bitertools\."),
        rule("deque", r"\bdeque\s*\("),
        rule("str_join", r"""["']\s*["']\.join\s*\("""),
        rule("heapq", r"\bheapq\."),
        rule("bisect", r"\bbisect\."),
        rule("memoryview", r"\bmemoryview\s*\("),
        rule("gather", r"\basyncio\.gather\s*\("),
        rule("thread_pool", r"\b(?:ThreadPoolExecutor|ProcessPoolExecutor)\b"),
        rule("perf_counter", r"\btime\.perf_counter\s*\("),
        rule("tracemalloc", r"\btracemalloc\."),
        rule("chunking", r"\b(?:chunk|batch|block)_size\b"),
    ),
    anti=(
        rule("global_variable", r"^\s*global\s+[A-Za-z_]", weight=2.0),
        rule("range_len_loop", r"\bfor\b.+\bin\s+range\s*\(\s*len\s*\(", weight=2.0),
        rule("keys_membership", r"\bin\s+\w+\.keys\s*\(\s*\)", weight=2.0),
        rule("list_of_range", r"\blist\s*\(\s*range\s*\(", weight=2.0),
        rule("readlines", r"\.readlines\s*\(\s*\)", weight=2.0),
        rule("deepcopy", r"\bcopy\.deepcopy\s*\(", weight=2.0),
    ),
    cleanup=(
        rule("with_statement", r"^\s*(?:async\s+)?with\s+", flags=re.MULTILINE),
        rule("contextmanager", r"@(?:contextlib\.)?(?:async)?contextmanager\b"),
        rule("exit_stack", r"\b(?:Async)?ExitStack\b"),
        rule("dunder_exit", r"\bdef\s+__(?:a)?exit__\b"),
        rule("atexit", r"\batexit\.register\b"),
        rule("finalize", r"\bweakref\.finalize\b"),
        rule("temporary_directory", r"\bTemporaryDirectory\b"),
        rule("closing", r"\bclosing\s*\("),
    ),
    acquire=(rule("open", r"\bopen\s*\("),),
    release=(
        rule("close", r"\.close\s*\(\s*\)"),
        rule("with_open", r"\bwith\s+open\s*\("),
    ),
    guard_open=re.compile(r"^\s*try\s*:", re.MULTILINE),
    guard_close=re.compile(r"^\s*finally\s*:", re.MULTILINE),
    function_def=re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_][A-Za-z0-9_]*)"),
    assignment=re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?::[^=]+)?=(?!=)"),
    type_def=re.compile(r"^\s*class\s+([A-Za-z_][A-Za-z0-9_]*)"),
    good_function_name=re.compile(r"^(?:_*[a-z][a-z0-9_]*|__[a-z0-9_]+__)$"),
    good_variable_name=re.compile(r"^(?:_*[a-z][a-z0-9_]*|_*[A-Z][A-Z0-9_]*)$"),
    good_type_name=re.compile(r"^_*[A-Z][A-Za-z0-9]*$"),
    docstring_markers=('"""', "'''"),
    docstring_before=False,
    block_end_keyword=None,
)


RULESETS: dict[str, RuleSet] = {
    JULIA_RULES.name: JULIA_RULES,
    PYTHON_RULES.name: PYTHON_RULES,
}


def get_ruleset(name: str) -> RuleSet:
    try:
        return RULESETS[name]
    except KeyError:
        known = ", ".join(sorted(RULESETS))
        raise ValueError(f"Unknown rule set '{name}'. Known: {known}") from None


def rules_for(project: ProjectIntrospector) -> RuleSet:
    """Rule set attached to the project, or the profile's built-in one."""
    if project.rules is not None:
        return project.rules
    return get_ruleset(project.profile.ruleset)
