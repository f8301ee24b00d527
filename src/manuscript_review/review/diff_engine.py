"""Word-level diff between an original and a revised text."""

from __future__ import annotations

import difflib
import re
from enum import Enum

from manuscript_review.models.diff import (
    ChangeType,
    DiffChange,
    DiffResult,
    DiffSpan,
    SpanKind,
)

_TOKEN_RE = re.compile(r"\s+|\S+")


class DiffStrategy(str, Enum):
    HEURISTIC = "heuristic"  # word membership, not minimal
    EXACT = "exact"  # longest-common-subsequence via difflib


def tokenize(text: str) -> list[str]:
    """Split into alternating word and whitespace tokens; joining restores ``text``."""
    return _TOKEN_RE.findall(text or "")


def _generated_flags(tokens: list[str], other_text: str) -> list[bool]:
    """Mark bracketed runs (``[ ... ]``) that do not appear verbatim in ``other_text``."""
    flags = [False] * len(tokens)
    i = 0
    while i < len(tokens):
        if not tokens[i].startswith("["):
            i += 1
            continue
        j = i
        while j < len(tokens) and not tokens[j].endswith("]"):
            j += 1
        if j == len(tokens):
            break
        if "".join(tokens[i : j + 1]) not in other_text:
            for k in range(i, j + 1):
                flags[k] = True
        i = j + 1
    return flags


def _append(spans: list[DiffSpan], kind: SpanKind, text: str, sources: list[str]) -> None:
    if not text:
        return
    if spans and spans[-1].kind == kind:
        spans[-1].text += text
        return
    spans.append(
        DiffSpan(kind=kind, text=text, sources=list(sources) if kind != SpanKind.UNCHANGED else [])
    )


def _highlight(outer: str, reference: str, kind: SpanKind, sources: list[str]) -> list[DiffSpan]:
    """Walk ``outer`` and mark runs of words that ``reference`` lacks.

    A word found anywhere in ``reference`` counts as unchanged, in sequence
    or not, so the result depends only on word membership and the
    generated-content markers.
    """
    tokens = tokenize(outer)
    ref_set = {t for t in tokenize(reference) if not t.isspace()}
    generated = _generated_flags(tokens, reference)

    spans: list[DiffSpan] = []
    buffer: list[str] = []
    pending_ws: list[str] = []

    def flush() -> None:
        _append(spans, kind, "".join(buffer), sources)
        buffer.clear()
        _append(spans, SpanKind.UNCHANGED, "".join(pending_ws), sources)
        pending_ws.clear()

    for index, token in enumerate(tokens):
        if token.isspace():
            if buffer:
                pending_ws.append(token)
            else:
                _append(spans, SpanKind.UNCHANGED, token, sources)
            continue

        if generated[index] or token not in ref_set:
            buffer.extend(pending_ws)
            pending_ws.clear()
            buffer.append(token)
            continue

        flush()
        _append(spans, SpanKind.UNCHANGED, token, sources)

    flush()
    return spans


def _exact(outer: str, reference: str, kind: SpanKind, sources: list[str]) -> list[DiffSpan]:
    outer_tokens = tokenize(outer)
    matcher = difflib.SequenceMatcher(a=tokenize(reference), b=outer_tokens, autojunk=False)
    spans: list[DiffSpan] = []
    for tag, _i1, _i2, j1, j2 in matcher.get_opcodes():
        span_kind = SpanKind.UNCHANGED if tag == "equal" else kind
        _append(spans, span_kind, "".join(outer_tokens[j1:j2]), sources)
    return spans


def _offsets(tokens: list[str]) -> list[int]:
    offsets = [0]
    for token in tokens:
        offsets.append(offsets[-1] + len(token))
    return offsets


def locate_ranges(
    original: str,
    revised: str,
    ranges: list[tuple[int, int]],
) -> list[int | None]:
    """Where each ``original[start:end]`` sits in ``revised``, or None.

    A range is found only when one unchanged run of tokens in the alignment
    of the two texts covers all of it, so an identical phrase elsewhere in
    ``revised`` does not count.
    """
    a_tokens, b_tokens = tokenize(original), tokenize(revised)
    a_offsets, b_offsets = _offsets(a_tokens), _offsets(b_tokens)
    blocks = [
        (a_offsets[i], a_offsets[i + size], b_offsets[j])
        for i, j, size in difflib.SequenceMatcher(
            a=a_tokens, b=b_tokens, autojunk=False
        ).get_matching_blocks()
        if size
    ]

    found: list[int | None] = []
    for start, end in ranges:
        position = None
        for block_start, block_end, target in blocks:
            if block_start <= start and end <= block_end:
                position = target + (start - block_start)
                break
        found.append(position)
    return found


def highlight_insertions(
    original: str,
    revised: str,
    sources: list[str] | None = None,
    strategy: DiffStrategy = DiffStrategy.HEURISTIC,
) -> list[DiffSpan]:
    """Spans over ``revised``; joining their text gives back ``revised``."""
    sources = sources or []
    if not revised:
        return []
    if not original:
        return [DiffSpan(kind=SpanKind.INSERTION, text=revised, sources=list(sources))]
    walk = _exact if strategy == DiffStrategy.EXACT else _highlight
    return walk(revised, original, SpanKind.INSERTION, sources)


def highlight_deletions(
    original: str,
    revised: str,
    sources: list[str] | None = None,
    strategy: DiffStrategy = DiffStrategy.HEURISTIC,
) -> list[DiffSpan]:
    """Spans over ``original``; joining their text gives back ``original``."""
    sources = sources or []
    if not original:
        return []
    if not revised:
        return [DiffSpan(kind=SpanKind.DELETION, text=original, sources=list(sources))]
    walk = _exact if strategy == DiffStrategy.EXACT else _highlight
    return walk(original, revised, SpanKind.DELETION, sources)


def extract_changes(
    original: str,
    revised: str,
    sources: list[str] | None = None,
    strategy: DiffStrategy = DiffStrategy.HEURISTIC,
) -> list[DiffChange]:
    """One pending insertion change per inserted run, in text order."""
    spans = highlight_insertions(original, revised, sources, strategy)
    inserted = [s for s in spans if s.kind == SpanKind.INSERTION]
    return [
        DiffChange(
            id=f"change-{n}",
            type=ChangeType.INSERTION,
            content=span.text,
            suggestion_source=list(span.sources),
        )
        for n, span in enumerate(inserted, start=1)
    ]


def build_diff(
    subject_id: str,
    original: str,
    revised: str,
    applied_suggestions: list[str] | None = None,
    strategy: DiffStrategy = DiffStrategy.HEURISTIC,
) -> DiffResult:
    sources = list(applied_suggestions or [])
    return DiffResult(
        subject_id=subject_id,
        original_content=original,
        revised_content=revised,
        applied_suggestions=sources,
        changes=extract_changes(original, revised, sources, strategy),
        insertions=highlight_insertions(original, revised, sources, strategy),
        deletions=highlight_deletions(original, revised, sources, strategy),
    )


def apply_decisions(diff: DiffResult) -> str:
    """Revised text with every rejected insertion removed.

    Pending and accepted insertions are kept. Insertion spans and
    ``diff.changes`` correspond one to one, in order.
    """
    decisions = iter(diff.changes)
    parts: list[str] = []
    dropped = False
    for span in diff.insertions:
        if span.kind == SpanKind.INSERTION:
            change = next(decisions, None)
            if change is not None and change.accepted is False:
                dropped = True
                continue
            parts.append(span.text)
        else:
            text = span.text
            if dropped and (not parts or parts[-1][-1:].isspace()):
                text = text.lstrip()
            parts.append(text)
        dropped = False
    result = "".join(parts)
    return result.rstrip() if dropped else result
