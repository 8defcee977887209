"""Tiny terminal UI helpers (prompt_toolkit-based) for the preview review.

Kept apart from the pipeline so the prompts are easy to test in isolation
with a pipe input and ``DummyOutput``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .models import PreviewBatch


def _session_like(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Category (Enter to accept, Esc to keep): ",
    session: PromptSession | None = None,
) -> str | None:
    """Prompt for one label from a closed category set.

    Input is matched case-insensitively and a unique-enough prefix is
    completed on Enter (``"tra"`` → ``"Transport"``). Values outside the set
    are rejected inline. Returns the canonical label, or ``None`` when the
    user cancels with Esc.
    """

    words = list(categories)
    canonical = {w.lower(): w for w in words}

    def _best_prefix_match(text: str) -> str | None:
        lower = text.lower()
        if not lower or lower in canonical:
            return None
        for w in words:
            if w.lower().startswith(lower):
                return w
        return None

    class _PrefixSuggest(AutoSuggest):
        def get_suggestion(self, buffer, document):
            cand = _best_prefix_match(document.text)
            if cand:
                return Suggestion(cand[len(document.text) :])
            return None

    class _ClosedSetValidator(Validator):
        def validate(self, document) -> None:
            if document.text.strip().lower() not in canonical:
                raise ValidationError(message="Pick one of the listed categories.")

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cand = _best_prefix_match(b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
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
            cand = _best_prefix_match(b.document.text.strip())
            if cand:
                b.text = cand
        b.validate_and_handle()

    sess = _session_like(session, kb)
    value = sess.prompt(
        message,
        default=default,
        completer=WordCompleter(words, ignore_case=True, match_middle=True, sentence=True),
        auto_suggest=_PrefixSuggest(),
        validator=_ClosedSetValidator(),
        validate_while_typing=False,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )
    if value is None:
        return None
    return canonical.get(value.strip().lower(), value)


def format_preview_line(position: int, batch: PreviewBatch) -> str:
    tx = batch.effective()[position]
    return "\t".join(
        [str(position + 1), tx.date, tx.description, tx.amount_str, tx.direction.value, tx.category]
    )


def review_batch(
    batch: PreviewBatch,
    *,
    session: PromptSession | None = None,
    on_line: Callable[[str], None] = print,
) -> int:
    """Walk the preview row by row, letting the user override categories.

    Returns the number of rows whose category differs from the proposal
    after the review.
    """

    for pos in range(len(batch)):
        on_line(format_preview_line(pos, batch))
        current = batch.effective()[pos].category
        choice = select_category(batch.options_for(pos), default=current, session=session)
        if choice is not None and choice != current:
            batch.set_category(pos, choice)
    return len(batch.overrides)


__all__ = ["select_category", "review_batch", "format_preview_line"]
