"""Rename a draft proposal to embed its discussion number, rewriting history when needed."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import posixpath
import secrets
import time

from proposal_publisher.models.document import LinkUpdate
from proposal_publisher.models.errors import GitCommandError, HistoryRewriteError, PublishError
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.git import SupportsGit
from proposal_publisher.services.settings import PublishSettings
from proposal_publisher.services.synchronizer import DocumentSynchronizer


STASH_MESSAGE = "proposal-rename: auto-stash"
BRANCH_PREFIX = "proposal-rename-"


@dataclass(slots=True)
class RewriteOutcome:
    """What the rewriter changed in the repository."""

    renamed_path: str
    amended_hash: str | None = None
    replayed: list[str] = field(default_factory=list)
    link: LinkUpdate | None = None


@dataclass(slots=True)
class _RewriteState:
    stashed: bool = False
    original_branch: str | None = None
    temporary_branch: str | None = None
    cherry_picking: bool = False
    link: LinkUpdate | None = None


def renamed_proposal_path(proposal_path: str, discussion_id: str, *, draft_prefix: str = "xxxx-") -> str:
    """Return ``proposal_path`` with the draft prefix replaced by ``<discussion_id>-``."""

    directory, basename = posixpath.split(proposal_path)
    if basename.startswith(draft_prefix):
        basename = f"{discussion_id}-{basename[len(draft_prefix):]}"
    return posixpath.join(directory, basename) if directory else basename


@dataclass(slots=True)
class HistoryRewriter:
    """Apply the rename and link update to the inspected commit."""

    git: SupportsGit
    synchronizer: DocumentSynchronizer
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    clock: Callable[[], float] = time.time

    def rewrite(self, session: PublicationSession) -> RewriteOutcome:
        """Rename or link the proposal and return what was changed."""

        session.require_discussion()
        if session.is_numbered:
            return self._link_numbered(session)

        session.renamed_path = renamed_proposal_path(
            session.proposal_path, session.discussion_id, draft_prefix=self.settings.draft_prefix
        )
        at_tip = self._is_tip(session)

        if session.dry_run:
            self.logger.info("[DRY RUN] Would rename %s to %s", session.proposal_path, session.renamed_path)
            if not at_tip and not self.git.is_ancestor(session.resolved_commit_hash, "HEAD"):
                self.logger.warning(
                    "[DRY RUN] Commit %s is not an ancestor of HEAD; the rename would be refused",
                    session.short_hash,
                )
            elif not at_tip:
                descendants = self.git.commits_between(session.resolved_commit_hash, "HEAD")
                self.logger.info(
                    "[DRY RUN] Would rewrite history at %s and replay %d descendant commit(s)",
                    session.short_hash,
                    len(descendants),
                )
            self.synchronizer.sync_working_tree(session, session.renamed_path)
            return RewriteOutcome(renamed_path=session.renamed_path)

        self.logger.info("Renaming %s to %s...", session.proposal_path, session.renamed_path)
        if at_tip:
            return self._rename_at_tip(session)
        return self._rename_in_history(session)

    def _link_numbered(self, session: PublicationSession) -> RewriteOutcome:
        session.renamed_path = session.proposal_path
        if session.dry_run or not self._is_tip(session):
            update = self.synchronizer.sync_commit(session, write=False)
            if update is not None and update.changed:
                session.link_deferred = True
            return RewriteOutcome(renamed_path=session.renamed_path, link=update)

        with self._preserved_worktree():
            update = self.synchronizer.sync_commit(session, write=True)
            outcome = RewriteOutcome(renamed_path=session.renamed_path, link=update)
            if update is not None and update.changed:
                outcome.amended_hash = self._amend(session)
        return outcome

    def _rename_at_tip(self, session: PublicationSession) -> RewriteOutcome:
        with self._preserved_worktree() as state:
            self._rename_and_link(session, state)
            amended = self._amend(session)
        self.logger.info("Renamed proposal in commit %s", session.short_hash)
        return RewriteOutcome(renamed_path=session.renamed_path, amended_hash=amended, link=state.link)

    def _rename_in_history(self, session: PublicationSession) -> RewriteOutcome:
        target = session.resolved_commit_hash
        self.logger.info("Commit %s is not HEAD; rewriting history through a temporary branch", session.short_hash)

        with self._temporary_branch(target) as state:
            original_branch = state.original_branch or ""
            descendants = self.git.commits_between(target, original_branch)

            self._rename_and_link(session, state)
            try:
                amended = self.git.amend()
            except GitCommandError as exc:
                raise HistoryRewriteError(f"failed to amend commit {session.short_hash}: {exc}") from exc

            if descendants:
                self.logger.info("Replaying %d descendant commit(s)...", len(descendants))
            for commit in descendants:
                state.cherry_picking = True
                try:
                    self.git.cherry_pick(commit)
                except GitCommandError as exc:
                    raise HistoryRewriteError(
                        f"failed to cherry-pick commit {commit[:8]}: {exc}", failing_commit=commit
                    ) from exc
                state.cherry_picking = False

            new_tip = self.git.resolve("HEAD")
            self.git.checkout(original_branch)
            self.git.reset_hard(new_tip)

        session.resolved_commit_hash = amended
        session.commit_ref = amended
        self.logger.info("Rewrote history: proposal renamed in commit %s", session.short_hash)
        return RewriteOutcome(
            renamed_path=session.renamed_path,
            amended_hash=amended,
            replayed=descendants,
            link=state.link,
        )

    def _rename_and_link(self, session: PublicationSession, state: _RewriteState) -> None:
        try:
            self.git.move(session.proposal_path, session.renamed_path)
        except GitCommandError as exc:
            raise HistoryRewriteError(
                f"failed to rename {session.proposal_path} to {session.renamed_path}: {exc}"
            ) from exc
        state.link = self.synchronizer.sync_working_tree(session, session.renamed_path)

    def _amend(self, session: PublicationSession) -> str:
        try:
            amended = self.git.amend()
        except GitCommandError as exc:
            raise HistoryRewriteError(f"failed to amend commit {session.short_hash}: {exc}") from exc
        session.resolved_commit_hash = amended
        session.commit_ref = amended
        return amended

    def _is_tip(self, session: PublicationSession) -> bool:
        return self.git.resolve("HEAD") == session.resolved_commit_hash

    @contextmanager
    def _preserved_worktree(self) -> Iterator[_RewriteState]:
        holder = _RewriteState()
        self._stash_changes(holder)
        try:
            yield holder
        finally:
            if holder.stashed:
                self._cleanup_step("restore stashed changes", self.git.stash_pop)

    @contextmanager
    def _temporary_branch(self, target: str) -> Iterator[_RewriteState]:
        holder = _RewriteState()
        try:
            self._stash_changes(holder)

            holder.original_branch = self.git.current_branch()
            if holder.original_branch == "HEAD":
                raise HistoryRewriteError("cannot rewrite history from a detached HEAD; check out a branch first")
            if not self.git.is_ancestor(target, holder.original_branch):
                raise HistoryRewriteError(
                    f"commit {target[:8]} is not an ancestor of branch {holder.original_branch}; "
                    "check out the branch that contains it first"
                )

            branch = f"{BRANCH_PREFIX}{int(self.clock())}-{secrets.token_hex(3)}"
            self.git.create_branch(branch, target)
            holder.temporary_branch = branch
            yield holder
        finally:
            self._cleanup(holder)

    def _stash_changes(self, state: _RewriteState) -> None:
        if not self.git.is_dirty():
            return
        self.logger.info("Stashing uncommitted changes...")
        state.stashed = self.git.stash_push(STASH_MESSAGE)

    def _cleanup(self, state: _RewriteState) -> None:
        if state.cherry_picking:
            self._cleanup_step("abort cherry-pick", self.git.abort_cherry_pick)
        if state.temporary_branch:
            if state.original_branch:
                self._cleanup_step(
                    f"switch back to {state.original_branch}",
                    lambda: self.git.checkout(state.original_branch or ""),
                )
            self._cleanup_step(
                f"delete temporary branch {state.temporary_branch}",
                lambda: self.git.delete_branch(state.temporary_branch or ""),
            )
        if state.stashed:
            self._cleanup_step("restore stashed changes", self.git.stash_pop)

    def _cleanup_step(self, description: str, action: Callable[[], None]) -> None:
        try:
            action()
        except PublishError as exc:
            self.logger.error("Cleanup failed to %s: %s", description, exc)
