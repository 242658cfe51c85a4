"""Data structures describing a single proposal publication run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from proposal_publisher.models.errors import SessionStateError


class LifecycleClass(str, Enum):
    """Lifecycle stage derived from the proposal filename."""

    DRAFT = "draft"
    NUMBERED = "numbered"


@dataclass(slots=True)
class FileChange:
    """One entry of ``git diff-tree --name-status`` output."""

    status: str
    path: str
    old_path: str | None = None

    @property
    def is_rename(self) -> bool:
        return self.status.startswith("R")


@dataclass(slots=True)
class PublicationSession:
    """Mutable record populated stage by stage during one invocation."""

    commit_ref: str = "HEAD"
    dry_run: bool = False
    use_ai: bool = False
    resolved_commit_hash: str = ""
    proposal_path: str = ""
    proposal_basename: str = ""
    lifecycle: LifecycleClass | None = None
    renamed_from: str | None = None
    discussion_id: str = ""
    discussion_url: str = ""
    renamed_path: str = ""
    link_deferred: bool = False
    review_id: str = ""
    review_url: str = ""

    @property
    def short_hash(self) -> str:
        return self.resolved_commit_hash[:8]

    @property
    def is_draft(self) -> bool:
        return self.lifecycle is LifecycleClass.DRAFT

    @property
    def is_numbered(self) -> bool:
        return self.lifecycle is LifecycleClass.NUMBERED

    def classify(self, lifecycle: LifecycleClass) -> None:
        """Record the lifecycle stage, which may only be set once per session."""

        if self.lifecycle is not None and self.lifecycle is not lifecycle:
            raise SessionStateError(
                f"lifecycle already classified as {self.lifecycle.value}, refusing to change it to {lifecycle.value}"
            )
        self.lifecycle = lifecycle

    def require_proposal(self) -> None:
        if not self.proposal_path or self.lifecycle is None or not self.resolved_commit_hash:
            raise SessionStateError("the commit has not been inspected yet")

    def require_discussion(self) -> None:
        self.require_proposal()
        if not self.discussion_id:
            raise SessionStateError("no discussion identifier has been assigned yet")

    def require_renamed_path(self) -> None:
        self.require_discussion()
        if not self.renamed_path:
            raise SessionStateError("the proposal file has not been renamed yet")
