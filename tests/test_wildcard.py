# ruff: noqa: E402, I001
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `pl_analysis` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from pl_analysis.wildcard import compile_pattern, matches


@pytest.mark.parametrize(
    ("pattern", "code", "expected"),
    [
        ("*004-001*", "A004-001-07", True),
        ("*004-001*", "004-001", True),
        ("*004-000", "X004-000", True),
        ("*004-000", "X004-0001", False),
        ("10*", "105", True),
        ("10*", "A105", False),
        ("ABC", "ABC", True),
        ("ABC", "ABCD", False),
        ("*", "", True),
        ("*", "anything", True),
        ("", "", True),
        ("", "x", False),
    ],
)
def test_matches_is_anchored_with_star_wildcard(pattern: str, code: str, expected: bool) -> None:
    assert matches(pattern, code) is expected


@pytest.mark.parametrize(
    ("pattern", "code"),
    [
        ("A.B", "A.B"),
        ("(1)+", "(1)+"),
        ("a?c", "a?c"),
        ("[x]", "[x]"),
        ("$1^", "$1^"),
    ],
)
def test_regex_metacharacters_are_literal(pattern: str, code: str) -> None:
    assert matches(pattern, code)


def test_dot_does_not_act_as_regex_wildcard() -> None:
    assert not matches("A.B", "AxB")
    assert not matches("a?c", "ac")


def test_match_is_case_sensitive() -> None:
    assert not matches("abc*", "ABCD")


def test_star_spans_newlines() -> None:
    assert matches("a*b", "a\nb")


def test_compile_pattern_is_cached() -> None:
    assert compile_pattern("*004-002*") is compile_pattern("*004-002*")
