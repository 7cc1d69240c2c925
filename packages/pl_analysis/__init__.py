"""Public interface for the ``pl_analysis`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
The AI layer lives in :mod:`pl_analysis.insights` and is imported on demand.
"""

from .api import (
    aggregate,
    build_dashboard,
    build_statement,
    classify,
    classify_all,
    load_ledger,
)
from .filters import RecordFilter, SearchCondition, apply_filter
from .models import (
    Dashboard,
    EnrichedRecord,
    LedgerRecord,
    MetricsSummary,
    PLStatement,
    RawRow,
    StoreType,
)
from .regions import DEFAULT_REGION_RULES, RegionRule, RegionRuleSet
from .wildcard import matches

__all__ = [
    # API
    "load_ledger",
    "classify",
    "classify_all",
    "aggregate",
    "build_dashboard",
    "build_statement",
    "apply_filter",
    "matches",
    # Models / types
    "RawRow",
    "LedgerRecord",
    "EnrichedRecord",
    "StoreType",
    "MetricsSummary",
    "Dashboard",
    "PLStatement",
    "RecordFilter",
    "SearchCondition",
    "RegionRule",
    "RegionRuleSet",
    "DEFAULT_REGION_RULES",
]
