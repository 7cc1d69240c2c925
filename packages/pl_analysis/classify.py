"""Region and store-type classification of ledger records.

Region assignment walks the rule set in order and stops at the first pattern
that matches the department code (first match wins, not best match). Records
matching nothing land in :data:`~pl_analysis.models.OTHER_REGION`.

Store type is a text heuristic over the department name only and is
independent of the region.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import NamedTuple, TypeAlias

from .logging_setup import get_logger
from .models import OTHER_REGION, EnrichedRecord, LedgerRecord, StoreType
from .regions import RegionRuleSet
from .wildcard import compile_pattern

_DIRECT_SUFFIX = "營業處"  # Business Office
_DIRECT_MARKER = "社福本部"  # Social Welfare HQ

_logger = get_logger("pl_analysis.classify")

_CompiledRules: TypeAlias = Sequence[tuple[str, Sequence[re.Pattern[str]]]]


def _compile(rules: RegionRuleSet) -> _CompiledRules:
    return [(rule.name, [compile_pattern(p) for p in rule.patterns]) for rule in rules]


def _region_for(department_code: str, compiled: _CompiledRules) -> str:
    for region, patterns in compiled:
        for pattern in patterns:
            if pattern.fullmatch(department_code) is not None:
                return region
    return OTHER_REGION


def region_for(department_code: str, rules: RegionRuleSet) -> str:
    """Return the first region whose pattern matches ``department_code``."""

    return _region_for(department_code, _compile(rules))


def store_type_for(department_name: str) -> StoreType:
    if department_name.endswith(_DIRECT_SUFFIX) or _DIRECT_MARKER in department_name:
        return StoreType.DIRECT
    return StoreType.FRANCHISE


def _enrich(record: LedgerRecord, compiled: _CompiledRules) -> EnrichedRecord:
    data = record.model_dump()
    data.pop("region", None)
    data.pop("store_type", None)
    return EnrichedRecord(
        **data,
        region=_region_for(record.department_code, compiled),
        store_type=store_type_for(record.department_name),
    )


def classify(record: LedgerRecord, rules: RegionRuleSet) -> EnrichedRecord:
    """Return a new :class:`EnrichedRecord`; ``record`` is left untouched."""

    return _enrich(record, _compile(rules))


def classify_all(records: Iterable[LedgerRecord], rules: RegionRuleSet) -> list[EnrichedRecord]:
    compiled = _compile(rules)
    out = [_enrich(r, compiled) for r in records]
    _logger.debug(
        "Classified %d records; %d fell through to %r",
        len(out),
        sum(1 for r in out if r.region == OTHER_REGION),
        OTHER_REGION,
    )
    return out


class RegionPreview(NamedTuple):
    department_code: str
    department_name: str
    region: str


def preview_classification(
    records: Iterable[LedgerRecord], rules: RegionRuleSet, *, limit: int = 5
) -> list[RegionPreview]:
    """Show how the first ``limit`` records would be assigned to regions."""

    compiled = _compile(rules)
    out: list[RegionPreview] = []
    for record in records:
        if len(out) >= limit:
            break
        out.append(
            RegionPreview(
                record.department_code,
                record.department_name,
                _region_for(record.department_code, compiled),
            )
        )
    return out


__all__ = [
    "RegionPreview",
    "classify",
    "classify_all",
    "preview_classification",
    "region_for",
    "store_type_for",
]
