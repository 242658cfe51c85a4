"""Utilities for working with proposal document text."""
from __future__ import annotations

import re


_TITLE_RE = re.compile(r"^# (.+)$")
_SUMMARY_HEADINGS = ("## Summary", "## Abstract", "## Objective", "## Overview")

SUMMARY_LINE_LIMIT = 20
INTRO_LINE_LIMIT = 10
SUMMARY_TRUNCATED_NOTE = "\n_[Summary truncated - see full proposal for details]_"
INTRO_EXCERPT_NOTE = "_[This is an excerpt - see full proposal for complete details]_"
GENERIC_SUMMARY = "See the full proposal document for details."


def extract_title(content: str) -> str | None:
    """Return the text of the first ``# Title`` line, or ``None`` when absent."""

    for line in content.split("\n"):
        match = _TITLE_RE.match(line)
        if match:
            title = match.group(1).strip()
            if title:
                return title
    return None


def extract_summary(content: str) -> str:
    """Return a deterministic summary of a proposal document.

    The first recognised summary-style section wins; its non-heading lines are
    collected until the next ``##`` heading, capped at :data:`SUMMARY_LINE_LIMIT`
    lines. Without such a section the first paragraph lines after the title are
    used instead. A generic sentence is returned when neither is available.
    """

    lines = [line.strip() for line in content.split("\n")]

    summary: list[str] = []
    in_summary = False
    for line in lines:
        if line.startswith(_SUMMARY_HEADINGS):
            in_summary = True
            continue
        if not in_summary:
            continue
        if line.startswith("##"):
            break
        if line:
            summary.append(line)

    if summary:
        if len(summary) > SUMMARY_LINE_LIMIT:
            summary = summary[:SUMMARY_LINE_LIMIT]
            summary.append(SUMMARY_TRUNCATED_NOTE)
        return "\n".join(summary)

    intro: list[str] = []
    found_title = False
    for line in lines:
        if line.startswith("# "):
            found_title = True
            continue
        if not found_title:
            continue
        if line.startswith("##"):
            break
        if line:
            intro.append(line)
            if len(intro) >= INTRO_LINE_LIMIT:
                break

    if intro:
        return "\n\n".join(intro) + "\n\n" + INTRO_EXCERPT_NOTE

    return GENERIC_SUMMARY


def preview(text: str, limit: int) -> str:
    """Return at most ``limit`` characters of ``text``, marking the cut with an ellipsis."""

    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def strip_code_fence(text: str) -> str | None:
    """Return the content of a fenced block wrapping the whole of ``text``."""

    if not text.startswith("```"):
        return None

    closing_index = text.rfind("```")
    if closing_index <= 0:
        return None

    first_linebreak = text.find("\n")
    if first_linebreak == -1 or first_linebreak > closing_index:
        content = text[3:closing_index]
    else:
        content = text[first_linebreak + 1 : closing_index]

    cleaned = content.strip()
    return cleaned or None


__all__ = [
    "GENERIC_SUMMARY",
    "extract_summary",
    "extract_title",
    "preview",
    "strip_code_fence",
]
