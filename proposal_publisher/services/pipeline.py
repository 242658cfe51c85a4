"""Orchestration layer that walks one proposal commit through publication."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from proposal_publisher.models.discussion import DiscussionUpdate
from proposal_publisher.models.document import LinkAction
from proposal_publisher.models.errors import PublishError
from proposal_publisher.models.review import BuildTrigger, ReviewSubmission
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.rewriter import RewriteOutcome


class SupportsPreflight(Protocol):
    def run(self) -> list[str]:
        """Return warnings for failing pre-checks."""


class SupportsInspection(Protocol):
    def inspect(self, session: PublicationSession) -> PublicationSession:
        """Locate and classify the proposal in the session's commit."""


class SupportsDiscussions(Protocol):
    def ensure_discussion(self, session: PublicationSession) -> PublicationSession:
        """Create or verify the discussion for the proposal."""


class SupportsRewriting(Protocol):
    def rewrite(self, session: PublicationSession) -> RewriteOutcome:
        """Rename the proposal and update its discussion link."""


class SupportsContentPublishing(Protocol):
    def publish(self, session: PublicationSession) -> DiscussionUpdate:
        """Push the proposal summary to the discussion."""


class SupportsReview(Protocol):
    def submit(self, session: PublicationSession) -> ReviewSubmission:
        """Submit the commit for code review."""

    def trigger_build(self, session: PublicationSession) -> BuildTrigger:
        """Start build verification for the submitted commit."""


@dataclass(slots=True)
class PipelineResult:
    """Structured summary of a publication run."""

    session: PublicationSession
    rewrite: RewriteOutcome | None = None
    discussion_update: DiscussionUpdate | None = None
    review: ReviewSubmission | None = None
    build: BuildTrigger | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when no stage failed fatally."""

        return not self.errors


@dataclass(slots=True)
class PublicationPipeline:
    """Coordinate the stages from commit inspection through build verification.

    Stages run strictly in order. A :class:`PublishError` from any stage stops the
    run and is recorded on the result; earlier stages are not rolled back, so a
    created discussion or a rewritten commit stays in place.
    """

    inspector: SupportsInspection
    discussions: SupportsDiscussions
    rewriter: SupportsRewriting
    content: SupportsContentPublishing
    review: SupportsReview
    preflight: SupportsPreflight | None = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def run(self, session: PublicationSession, *, skip_checks: bool = False) -> PipelineResult:
        """Execute every stage against ``session`` and return the collected outcome."""

        result = PipelineResult(session=session)
        if session.dry_run:
            self.logger.info("Running in DRY RUN mode - no changes will be made")

        if self.preflight is not None and not skip_checks:
            result.warnings.extend(self.preflight.run())

        try:
            self._run_stages(session, result)
        except PublishError as exc:
            self.logger.error("%s", exc)
            result.errors.append(str(exc))
            return result

        self.logger.info("Proposal publication complete")
        self.logger.info("Discussion: %s", session.discussion_url)
        if session.review_url:
            self.logger.info("Review: %s", session.review_url)
        return result

    def _run_stages(self, session: PublicationSession, result: PipelineResult) -> None:
        self.logger.info("Step 1: Inspecting commit %s...", session.commit_ref)
        self.inspector.inspect(session)

        self.logger.info("Step 2: Preparing discussion...")
        self.discussions.ensure_discussion(session)

        self.logger.info("Step 3: Renaming proposal and updating links...")
        result.rewrite = self.rewriter.rewrite(session)
        link = result.rewrite.link
        if link is not None and link.action is LinkAction.NO_ANCHOR:
            result.warnings.append(f"no Discussion Channel field or author line found in {session.renamed_path}")
        if session.link_deferred:
            result.warnings.append(
                f"discussion link not written to historical commit {session.short_hash}; added to the discussion body"
            )

        self.logger.info("Step 4: Publishing proposal content to discussion...")
        result.discussion_update = self.content.publish(session)
        self._collect(result, result.discussion_update.warning)

        self.logger.info("Step 5: Submitting for review...")
        result.review = self.review.submit(session)
        if not session.review_id:
            result.warnings.append("review number could not be determined")

        self.logger.info("Step 6: Starting build verification...")
        result.build = self.review.trigger_build(session)
        self._collect(result, result.build.warning)

        if session.review_id and not session.dry_run:
            self.logger.info("Refreshing discussion with review link...")
            result.discussion_update = self.content.publish(session)
            self._collect(result, result.discussion_update.warning)

    @staticmethod
    def _collect(result: PipelineResult, warning: str | None) -> None:
        if warning:
            result.warnings.append(warning)
