"""Publish the proposal title and summary to its GitHub discussion."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from proposal_publisher.models.discussion import DiscussionUpdate
from proposal_publisher.models.errors import PublishError
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.git import SupportsGit
from proposal_publisher.services.github import SupportsDiscussionsApi
from proposal_publisher.services.settings import PublishSettings
from proposal_publisher.services.summarizer import ProposalSummarizer
from proposal_publisher.utils.text import extract_title, preview


DEFAULT_TITLE = "Proposal"
STATUS_UNDER_REVIEW = "Under Review ✅"
STATUS_DRAFT = "Draft"
REVIEW_PENDING_PHRASE = "Comment on the Gerrit CL (link will be added when available)"
BODY_PREVIEW_LIMIT = 500

BODY_TEMPLATE = """**📋 Proposal Details:**
- **File**: [{path}]({blob_url})
- **Status**: {status}

---

# {title}

{summary}

---

## Full Proposal

The complete proposal with all technical details, examples, and implementation notes can be found in the [proposal document]({blob_url}).

## How to Comment

Please provide feedback on this proposal:
- **For general discussion**: Comment in this GitHub discussion
- **For detailed code review**: {review_phrase}

*Last updated: {timestamp}*"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ContentPublisher:
    """Replace the holding body of a discussion with the proposal summary."""

    git: SupportsGit
    api: SupportsDiscussionsApi
    summarizer: ProposalSummarizer = field(default_factory=ProposalSummarizer)
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    clock: Callable[[], datetime] = _utcnow

    def publish(self, session: PublicationSession) -> DiscussionUpdate:
        """Build the discussion body and push it; failures become a warning."""

        session.require_renamed_path()
        self.logger.info("Updating discussion #%s with proposal content...", session.discussion_id)

        # A dry run never renames, so the commit still holds the draft path.
        source_path = session.proposal_path if session.dry_run else session.renamed_path
        try:
            content = self.git.show_file(session.resolved_commit_hash, source_path)
        except PublishError as exc:
            return self._failed(session, "", "", f"failed to read proposal content: {exc}")

        title = extract_title(content) or DEFAULT_TITLE
        summary = self.summarizer.summarize(content, use_ai=session.use_ai)
        body = self.build_body(session, title, summary.text)

        if session.dry_run:
            self.logger.info("[DRY RUN] Would update discussion #%s with:", session.discussion_id)
            self.logger.info("Title: %s", title)
            self.logger.info("Body preview:\n%s", preview(body, BODY_PREVIEW_LIMIT))
            return DiscussionUpdate(title=title, body=body, updated=False)

        try:
            node = self.api.get_discussion(int(session.discussion_id))
            if node is None or not node.id:
                raise PublishError(f"discussion #{session.discussion_id} not found")
            self.api.update_discussion(node.id, body)
        except (PublishError, ValueError) as exc:
            return self._failed(session, title, body, f"failed to update discussion content: {exc}")

        self.logger.info("Updated discussion #%s with proposal content", session.discussion_id)
        return DiscussionUpdate(title=title, body=body, updated=True)

    def build_body(self, session: PublicationSession, title: str, summary: str) -> str:
        """Render the discussion body for the current session state."""

        path = session.renamed_path
        status = STATUS_UNDER_REVIEW if session.review_id else STATUS_DRAFT
        details = [f"- **Status**: {status}"]
        review_phrase = REVIEW_PENDING_PHRASE

        if session.review_id:
            review_url = f"{self.settings.review_change_base}{session.review_id}"
            details.insert(0, f"- **Gerrit CL**: [CL {session.review_id}]({review_url})")
            review_phrase = f"Comment on the [Gerrit CL]({review_url})"
        if session.link_deferred:
            details.insert(0, f"- **Discussion Channel**: {session.discussion_url}")

        body = BODY_TEMPLATE.format(
            path=path,
            blob_url=f"{self.settings.proposal_blob_base}{path}",
            status=status,
            title=title,
            summary=summary,
            review_phrase=review_phrase,
            timestamp=self.clock().strftime("%Y-%m-%d %H:%M:%S UTC"),
        )
        return body.replace(f"- **Status**: {status}", "\n".join(details), 1)

    def _failed(self, session: PublicationSession, title: str, body: str, message: str) -> DiscussionUpdate:
        self.logger.warning("Failed to update discussion content: %s", message)
        self.logger.info("Please update manually at: %s", session.discussion_url)
        return DiscussionUpdate(title=title, body=body, updated=False, warning=message)
