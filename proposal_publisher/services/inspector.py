"""Locate and classify the proposal document touched by a commit."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re

from proposal_publisher.models.errors import (
    GitCommandError,
    InvalidNamingConvention,
    InvalidReference,
    MultipleProposalsFound,
    NoProposalFound,
)
from proposal_publisher.models.session import FileChange, LifecycleClass, PublicationSession
from proposal_publisher.services.git import SupportsGit
from proposal_publisher.services.settings import PublishSettings


_NUMBERED_PATTERN = re.compile(r"^(\d+)-.+$")


@dataclass(slots=True)
class ProposalCandidates:
    """Proposal paths found in a commit plus the rename that produced one, if any."""

    paths: list[str] = field(default_factory=list)
    renamed_from: str | None = None
    renamed_to: str | None = None


def classify_proposal_name(
    basename: str,
    *,
    draft_prefix: str = "xxxx-",
    extension: str = ".md",
) -> tuple[LifecycleClass, str | None]:
    """Return the lifecycle stage and embedded discussion id for a proposal filename."""

    if basename.endswith(extension):
        stem = basename[: -len(extension)]
        if basename.startswith(draft_prefix) and len(stem) > len(draft_prefix):
            return LifecycleClass.DRAFT, None
        match = _NUMBERED_PATTERN.match(stem)
        if match:
            return LifecycleClass.NUMBERED, match.group(1)

    raise InvalidNamingConvention(
        f"proposal file must follow naming convention: {draft_prefix}*{extension} (draft) "
        f"or NNNN-*{extension} (numbered), got: {basename}"
    )


@dataclass(slots=True)
class CommitInspector:
    """Resolve the commit and find the single proposal document it governs."""

    git: SupportsGit
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def inspect(self, session: PublicationSession) -> PublicationSession:
        """Populate the session's commit hash, proposal path and lifecycle stage."""

        self.logger.info("Finding proposal files in commit %s...", session.commit_ref)
        try:
            session.resolved_commit_hash = self.git.resolve(session.commit_ref)
        except GitCommandError as exc:
            raise InvalidReference(f"invalid commit reference: {session.commit_ref}") from exc
        if not session.resolved_commit_hash:
            raise InvalidReference(f"invalid commit reference: {session.commit_ref}")

        try:
            changes = self.git.changed_files(session.resolved_commit_hash)
        except GitCommandError as exc:
            raise InvalidReference(f"failed to get files from commit {session.commit_ref}: {exc}") from exc

        found = self.find_candidates(changes)
        if not found.paths:
            raise NoProposalFound(
                f"no proposal files ({self.settings.proposal_directory}*{self.settings.proposal_extension}) "
                f"found in commit {session.commit_ref}"
            )
        if len(found.paths) > 1:
            self.logger.error("Multiple proposal files found in commit %s: %s", session.commit_ref, ", ".join(found.paths))
            raise MultipleProposalsFound(
                session.commit_ref,
                found.paths,
                renamed_from=found.renamed_from,
                renamed_to=found.renamed_to,
            )

        session.proposal_path = found.paths[0]
        session.proposal_basename = session.proposal_path.rsplit("/", 1)[-1]
        session.renamed_from = found.renamed_from
        self.logger.info("Found proposal file: %s", session.proposal_path)

        lifecycle, number = classify_proposal_name(
            session.proposal_basename,
            draft_prefix=self.settings.draft_prefix,
            extension=self.settings.proposal_extension,
        )
        session.classify(lifecycle)
        if lifecycle is LifecycleClass.DRAFT:
            self.logger.info("Detected draft proposal: %s", session.proposal_basename)
        else:
            session.discussion_id = number or ""
            self.logger.info(
                "Detected numbered proposal: %s (Discussion #%s)", session.proposal_basename, session.discussion_id
            )
        return session

    def find_candidates(self, changes: list[FileChange]) -> ProposalCandidates:
        """Return proposal paths added, modified or renamed by the given changes."""

        found = ProposalCandidates()
        for change in changes:
            if change.is_rename:
                if change.old_path and self.is_proposal_path(change.old_path) and self.is_proposal_path(change.path):
                    found.renamed_from = change.old_path
                    found.renamed_to = change.path
                    found.paths.append(change.path)
                    self.logger.info("Detected proposal file rename: %s -> %s", change.old_path, change.path)
            elif change.status in {"A", "M"} and self.is_proposal_path(change.path):
                found.paths.append(change.path)
        return found

    def is_proposal_path(self, path: str) -> bool:
        return path.startswith(self.settings.proposal_directory) and path.endswith(self.settings.proposal_extension)
