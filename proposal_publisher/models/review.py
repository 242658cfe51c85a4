"""Data structures describing code review submission outcomes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ReviewSubmission:
    """Outcome returned by the review submitter."""

    review_id: str
    review_url: str
    existing: bool = False


@dataclass(slots=True)
class BuildTrigger:
    """Outcome of asking the build verification tool to test a commit."""

    started: bool
    commit_hash: str = ""
    output: str = ""
    warning: str | None = None
