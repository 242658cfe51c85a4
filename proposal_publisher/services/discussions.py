"""Create or verify the GitHub discussion that tracks a proposal."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from proposal_publisher.models.discussion import DiscussionCategory
from proposal_publisher.models.errors import (
    DiscussionCategoryError,
    DiscussionMismatch,
    DiscussionNotFound,
    GitCommandError,
    GraphQLError,
    MissingTitle,
    PublishError,
    SessionStateError,
)
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.git import SupportsGit
from proposal_publisher.services.github import SupportsDiscussionsApi
from proposal_publisher.services.settings import PublishSettings
from proposal_publisher.utils.text import extract_title


PREFERRED_CATEGORIES = ("Proposals", "Proposal")

# Phrases placed in holding bodies by this tool and by earlier manual workflows.
PLACEHOLDER_PHRASES = ("coming soon", "being prepared for review", "draft under review")

HOLDING_BODY_TEMPLATE = """This proposal is currently under review.

**Proposal**: {name}
**Status**: Draft under review
**Category**: Proposal

The full proposal content will be published to this discussion once the review process completes.

---
*This discussion was created automatically by the proposal publication workflow.*"""

BODY_PREVIEW_LIMIT = 200


def holding_body(proposal_basename: str, *, draft_prefix: str = "xxxx-", extension: str = ".md") -> str:
    """Return the placeholder body posted when a draft discussion is created."""

    name = proposal_basename
    if name.startswith(draft_prefix):
        name = name[len(draft_prefix) :]
    if name.endswith(extension):
        name = name[: -len(extension)]
    return HOLDING_BODY_TEMPLATE.format(name=name)


def discussion_belongs_to(body: str, proposal_path: str) -> bool:
    """Return ``True`` when ``body`` mentions the proposal path or a placeholder phrase."""

    lowered = body.lower()
    if proposal_path.lower() in lowered:
        return True
    return any(phrase in lowered for phrase in PLACEHOLDER_PHRASES)


@dataclass(slots=True)
class DiscussionManager:
    """Create discussions for draft proposals and verify them for numbered ones."""

    git: SupportsGit
    api: SupportsDiscussionsApi
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def ensure_discussion(self, session: PublicationSession) -> PublicationSession:
        """Dispatch to creation or verification based on the lifecycle stage."""

        session.require_proposal()
        if session.is_draft:
            return self.create_discussion(session)
        return self.verify_discussion(session)

    def create_discussion(self, session: PublicationSession) -> PublicationSession:
        """Open a discussion for a draft proposal and record its number and URL."""

        session.require_proposal()
        if not session.is_draft:
            raise SessionStateError("discussions are only created for draft proposals")

        self.logger.info("Creating GitHub discussion for draft proposal...")
        try:
            content = self.git.show_file(session.resolved_commit_hash, session.proposal_path)
        except GitCommandError as exc:
            raise PublishError(f"failed to read proposal file from commit: {exc}") from exc

        title = extract_title(content)
        if not title:
            raise MissingTitle("could not extract title from proposal file (no '# Title' found)")

        body = holding_body(
            session.proposal_basename,
            draft_prefix=self.settings.draft_prefix,
            extension=self.settings.proposal_extension,
        )

        if session.dry_run:
            self.logger.info("[DRY RUN] Would create discussion with title: %s", title)
            session.discussion_id = self.settings.dry_run_discussion_id
            session.discussion_url = self.settings.discussion_url(session.discussion_id)
            return session

        category = self._select_category()
        self.logger.info("Creating discussion with title: %s", title)
        repository_id = self.api.repository_id()
        created = self.api.create_discussion(
            repository_id=repository_id,
            category_id=category.id,
            title=title,
            body=body,
        )
        session.discussion_id = created.number
        session.discussion_url = created.url
        self.logger.info("Created discussion #%s: %s", session.discussion_id, session.discussion_url)
        return session

    def verify_discussion(self, session: PublicationSession) -> PublicationSession:
        """Confirm the discussion named by a numbered proposal belongs to it."""

        session.require_proposal()
        if not session.is_numbered:
            raise SessionStateError("only numbered proposals reference an existing discussion")

        self.logger.info("Verifying discussion #%s belongs to this proposal...", session.discussion_id)
        try:
            number = int(session.discussion_id)
        except ValueError as exc:
            raise DiscussionNotFound(f"invalid discussion number: {session.discussion_id!r}") from exc

        try:
            discussion = self.api.get_discussion(number)
        except GraphQLError as exc:
            self.logger.error("Failed to get discussion #%s", session.discussion_id)
            raise DiscussionNotFound(f"discussion verification failed: {exc}") from exc

        if discussion is None or not discussion.body:
            self.logger.error("Discussion #%s not found", session.discussion_id)
            raise DiscussionNotFound(f"discussion #{session.discussion_id} not found")

        if not discussion_belongs_to(discussion.body, session.proposal_path):
            self.logger.error(
                "Discussion #%s does not mention %s or a placeholder phrase. Body preview:\n%s",
                session.discussion_id,
                session.proposal_path,
                discussion.body[:BODY_PREVIEW_LIMIT],
            )
            raise DiscussionMismatch(
                f"discussion #{session.discussion_id} does not appear to belong to {session.proposal_path}"
            )

        session.discussion_url = discussion.url or self.settings.discussion_url(session.discussion_id)
        self.logger.info("Verified discussion #%s belongs to this proposal", session.discussion_id)
        return session

    def _select_category(self) -> DiscussionCategory:
        self.logger.info("Getting discussion categories...")
        categories = self.api.discussion_categories()
        if not categories:
            raise DiscussionCategoryError("no discussion categories found")

        for category in categories:
            if category.name in PREFERRED_CATEGORIES:
                return category

        fallback = categories[0]
        self.logger.warning("Could not find 'Proposals' category, using: %s", fallback.name)
        return fallback
