"""Prompt builders for each generation action tag."""

from __future__ import annotations

from typing import Callable

EDITOR_SYSTEM = """\
You are a world-class literary editor who has edited bestselling novels.
Be honest but constructive: your goal is to help the author improve."""

WRITER_SYSTEM = """\
You are a world-class fiction writer. You revise chapters without changing
their point of view, tense or voice, and you never alter locked passages."""

TONE_GUIDANCE = {
    "gentle-mentor": "Phrase feedback encouragingly, as a supportive mentor.",
    "balanced": "Give a fair mix of praise and criticism.",
    "brutal-honesty": "Be direct and unfiltered; do not soften criticism.",
}


def _locked_block(ctx: dict, empty: str = "None") -> str:
    passages = ctx.get("locked_passages") or []
    if not passages:
        return empty
    return "\n".join(f'- "{text}"' for text in passages)


def _critique(ctx: dict) -> str:
    dimensions = "\n".join(
        f"{i}. {d['alias']} ({d['weight']}% weight): {d['description']}"
        for i, d in enumerate(ctx.get("dimensions", []), start=1)
    )
    tone = TONE_GUIDANCE.get(ctx.get("harshness", "balanced"), TONE_GUIDANCE["balanced"])
    return f"""Provide an expert critique of this chapter.

CHAPTER: {ctx.get("chapter_title", "Untitled")}
---
{ctx.get("chapter_content", "")}
---

Score each dimension from 1-10 (7 is good, 8 is very good, 9+ is exceptional).
{tone}

DIMENSIONS:
{dimensions}

RESPOND WITH THIS EXACT JSON STRUCTURE:
{{
  "dimensions": {{
    "<DIMENSION_ALIAS>": {{"score": <1-10>, "feedback": "...", "suggestions": ["..."]}}
  }},
  "summary": "...",
  "overallStrengths": ["..."],
  "criticalIssues": ["..."],
  "marketComparison": "..."
}}

Provide ONLY the JSON, no other text."""


def _implement(ctx: dict) -> str:
    suggestions = "\n\n".join(
        f"{i}. [{s['dimension']}] {s['suggestion']}\n"
        f"   Target passage: \"{s.get('target_passage') or 'General improvement'}\""
        for i, s in enumerate(ctx.get("approved_suggestions", []), start=1)
    )
    return f"""Rewrite this chapter implementing the approved improvement suggestions while preserving everything that works well.

ORIGINAL CHAPTER:
---
{ctx.get("chapter_content", "")}
---

APPROVED SUGGESTIONS TO IMPLEMENT:
{suggestions}

LOCKED PASSAGES (DO NOT MODIFY THESE):
{_locked_block(ctx, "None - you may modify any passage")}

Keep locked passages exactly as written and keep approximately the same length.
Write the COMPLETE revised chapter. Output ONLY the chapter text, no commentary."""


def _auto_improve(ctx: dict) -> str:
    scores = "\n".join(
        f"- {dim}: {score}/10" for dim, score in (ctx.get("dimension_scores") or {}).items()
    )
    return f"""Improve this chapter by focusing on its weakest dimension.

CURRENT CHAPTER (Score: {ctx.get("current_score", "N/A")}/10):
---
{ctx.get("chapter_content", "")}
---

CURRENT CRITIQUE SCORES:
{scores}

WEAKEST DIMENSION TO FOCUS ON: {ctx.get("weakest_dimension") or "Overall quality"}
SPECIFIC ISSUES: {ctx.get("weakest_dimension_issues") or "Improve overall prose quality"}

LOCKED PASSAGES (DO NOT MODIFY):
{_locked_block(ctx)}

IMPROVEMENT ITERATION {ctx.get("iteration", 1)}/{ctx.get("max_iterations", 5)}

Output ONLY the complete improved chapter text, no commentary."""


def _suggest(ctx: dict) -> str:
    return f"""List {ctx.get("count", 3)} specific, actionable suggestions to improve the {ctx.get("dimension_name", "quality")} of this chapter.

---
{ctx.get("chapter_content", "")}
---

Respond with a JSON array of strings only."""


PROMPT_BUILDERS: dict[str, tuple[str, Callable[[dict], str]]] = {
    "critique-chapter": (EDITOR_SYSTEM, _critique),
    "implement-suggestions": (WRITER_SYSTEM, _implement),
    "auto-improve": (WRITER_SYSTEM, _auto_improve),
    "suggest-improvements": (EDITOR_SYSTEM, _suggest),
}


def build_prompt(action: str, context: dict) -> tuple[str, str]:
    """Return ``(system, prompt)`` for ``action``; unknown actions raise KeyError."""
    system, builder = PROMPT_BUILDERS[action]
    return system, builder(context)
