"""Region rule sets: ordered ``(region, patterns)`` pairs.

Rule order is significant. Classification walks regions in list order and,
within a region, patterns in list order; the first matching pattern wins. The
rule set is therefore an explicit tuple of :class:`RegionRule` rather than a
mapping.

On disk a rule set is plain JSON nested string lists::

    [["台北區", ["*004-002*"]], ["台中區", ["*004-005*", "20*"]]]
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

from pydantic import TypeAdapter

from .logging_setup import get_logger

_logger = get_logger("pl_analysis.regions")

_PAIRS_ADAPTER = TypeAdapter(list[tuple[str, list[str]]])


@dataclass(frozen=True, slots=True)
class RegionRule:
    """A named region and its wildcard patterns, in evaluation order."""

    name: str
    patterns: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("RegionRule.name must be non-empty")
        for p in self.patterns:
            if not p.strip():
                raise ValueError(f"Region {self.name!r} has an empty pattern")


@dataclass(frozen=True, slots=True)
class RegionRuleSet:
    rules: tuple[RegionRule, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.name in seen:
                raise ValueError(f"Duplicate region name in rule set: {rule.name!r}")
            seen.add(rule.name)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Sequence[str]]]) -> RegionRuleSet:
        return cls(tuple(RegionRule(name, tuple(patterns)) for name, patterns in pairs))

    def to_pairs(self) -> list[list[str | list[str]]]:
        return [[rule.name, list(rule.patterns)] for rule in self.rules]

    @property
    def region_names(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def with_pattern(self, region: str, pattern: str) -> RegionRuleSet:
        """Return a copy with ``pattern`` appended to ``region``.

        A new region is added at the end. A pattern already present in the
        region is not added twice.
        """

        pattern = pattern.strip()
        if not pattern:
            raise ValueError("pattern must be non-empty")
        out: list[RegionRule] = []
        found = False
        for rule in self.rules:
            if rule.name == region:
                found = True
                if pattern not in rule.patterns:
                    rule = RegionRule(rule.name, rule.patterns + (pattern,))
            out.append(rule)
        if not found:
            out.append(RegionRule(region, (pattern,)))
        return RegionRuleSet(tuple(out))

    def without_pattern(self, region: str, pattern: str) -> RegionRuleSet:
        """Return a copy without ``pattern``; a region left empty is dropped."""

        out: list[RegionRule] = []
        for rule in self.rules:
            if rule.name == region:
                remaining = tuple(p for p in rule.patterns if p != pattern)
                if not remaining:
                    continue
                rule = RegionRule(rule.name, remaining)
            out.append(rule)
        return RegionRuleSet(tuple(out))


DEFAULT_REGION_RULES = RegionRuleSet.from_pairs(
    [
        ("本部", ["*004-000"]),
        ("台南區", ["*004-001*"]),
        ("台北區", ["*004-002*"]),
        ("新竹區", ["*004-003*"]),
        ("澎湖區", ["*004-004*"]),
        ("台中區", ["*004-005*"]),
        ("高雄區", ["*004-006*"]),
    ]
)


def load_region_rules(path: str | PathLike[str]) -> RegionRuleSet:
    """Read a rule set from JSON nested string lists.

    Raises ``pydantic.ValidationError`` when the shape is wrong and
    ``ValueError`` for duplicate regions or empty patterns.
    """

    p = Path(path)
    pairs = _PAIRS_ADAPTER.validate_json(p.read_bytes())
    rules = RegionRuleSet.from_pairs(pairs)
    _logger.debug("Loaded %d region rules from %s", len(rules), p)
    return rules


def save_region_rules(rules: RegionRuleSet, path: str | PathLike[str]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(rules.to_pairs(), ensure_ascii=False, indent=2)
    p.write_text(text + "\n", encoding="utf-8")


__all__ = [
    "DEFAULT_REGION_RULES",
    "RegionRule",
    "RegionRuleSet",
    "load_region_rules",
    "save_region_rules",
]
