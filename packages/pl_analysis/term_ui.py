"""Tiny terminal UI helpers (prompt_toolkit-based) for column mapping.

Kept apart from the mapping logic so the prompts are easy to test in isolation
with a pipe input.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .mapping import CANONICAL_FIELDS

SKIP_SENTINEL = "- skip -"


class _PrefixSuggest(AutoSuggest):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        for w in self._vocab:
            if w.lower() == lower:
                return None
        for w in self._vocab:
            if w.lower().startswith(lower):
                remainder = w[len(text) :]
                return Suggestion(remainder) if remainder else None
        return None


def _best_prefix_match(words: Sequence[str], text: str) -> str | None:
    if not text:
        return None
    lower = text.lower()
    for w in words:
        wl = w.lower()
        if wl == lower:
            return None
        if wl.startswith(lower):
            return w
    return None


def select_header(
    headers: Sequence[str],
    *,
    field_label: str,
    default: str | None = None,
    required: bool = True,
    session: PromptSession | None = None,
) -> str | None:
    """Prompt for the workbook header that feeds ``field_label``.

    The guessed header is pre-filled; Enter accepts it. Tab completes the
    greyed-out suggestion or opens the completion menu. Optional fields accept
    an empty answer (or the skip entry) and return ``None``.
    """

    words = list(headers)
    if not required:
        words.append(SKIP_SENTINEL)
    canonical = {w.lower(): w for w in words}

    kb = KeyBindings()

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        s = getattr(b, "suggestion", None)
        suggestion_text = getattr(s, "text", None)
        if not suggestion_text:
            cand = _best_prefix_match(words, b.document.text)
            if cand:
                suggestion_text = cand[len(b.document.text) :]
        if suggestion_text:
            b.insert_text(suggestion_text)
        elif b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            cand = _best_prefix_match(words, b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    class _HeaderValidator(Validator):
        def validate(self, document) -> None:
            text = document.text.strip()
            if not text:
                if required:
                    raise ValidationError(message=f"{field_label} is required.")
                return
            if text.lower() not in canonical:
                raise ValidationError(message="Choose a column from the list.")

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    marker = "*" if required else ""
    result = sess.prompt(
        f"{field_label}{marker}: ",
        default=default or "",
        completer=WordCompleter(words, ignore_case=True, match_middle=True, sentence=True),
        auto_suggest=_PrefixSuggest(words),
        validator=_HeaderValidator(),
        validate_while_typing=False,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    ).strip()

    if not result:
        return None
    chosen = canonical.get(result.lower(), result)
    return None if chosen == SKIP_SENTINEL else chosen


def prompt_column_mapping(
    headers: Sequence[str],
    *,
    initial: Mapping[str, str] | None = None,
    session: PromptSession | None = None,
) -> dict[str, str]:
    """Walk every canonical field and collect a complete column mapping."""

    initial = initial or {}
    mapping: dict[str, str] = {}
    for field in CANONICAL_FIELDS:
        chosen = select_header(
            headers,
            field_label=field.label,
            default=initial.get(field.key),
            required=field.required,
            session=session,
        )
        if chosen is not None:
            mapping[field.key] = chosen
    return mapping


__all__ = ["SKIP_SENTINEL", "prompt_column_mapping", "select_header"]
