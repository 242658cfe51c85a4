"""Keep the discussion link inside a proposal document in sync with its discussion."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re

from proposal_publisher.models.document import LinkAction, LinkUpdate
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.git import SupportsGit


# Accepts "*   **Discussion Channel**: v", "**Discussion Channel**: v" and
# "**Discussion Channel** GitHub: v".
_LINK_FIELD_RE = re.compile(
    r"^(\*\s+\*\*Discussion Channel\*\*:\s*|\*\*Discussion Channel\*\*\s*:?\s*(?:GitHub:?\s*)?)(.*)$"
)
_AUTHOR_FIELD_RE = re.compile(r"^\*\s+\*\*Author\(s\)\*\*:")
LINK_PLACEHOLDERS = ("{link}", "TBD", "TODO")
# Whole value only, optionally bracketed.
_PLACEHOLDER_VALUE_RE = re.compile(r"^\[?(?:" + "|".join(map(re.escape, LINK_PLACEHOLDERS)) + r")\]?(?![\w/])")

_REFERENCE_PATTERNS = (
    re.compile(r"(?i)\b(?:discussion|github discussion|gh discussion):[ \t]*(?:TBD|TODO|xxxx|\[TBD\]|\[TODO\])"),
    re.compile(r"(?i)\b(?:discussion|github discussion|gh discussion):[ \t]*#?[ \t]*xxxx"),
)
_BARE_PLACEHOLDER_RE = re.compile(r"(?i)\bxxxx\b")


def synchronize_link(content: str, url: str) -> LinkUpdate:
    """Return ``content`` with its discussion link field pointing at ``url``.

    A field holding a placeholder is rewritten in place. A field holding any other
    value is left alone so hand-curated links survive reruns. Without a field, one
    is inserted after the author list; without that anchor nothing changes.
    """

    lines = content.split("\n")
    for index, line in enumerate(lines):
        match = _LINK_FIELD_RE.match(line)
        if not match:
            continue
        if _PLACEHOLDER_VALUE_RE.match(match.group(2).strip()):
            lines[index] = f"{match.group(1)}{url}"
            return LinkUpdate(content="\n".join(lines), action=LinkAction.REPLACED)
        return LinkUpdate(content=content, action=LinkAction.UNCHANGED)

    for index, line in enumerate(lines):
        if _AUTHOR_FIELD_RE.match(line):
            lines.insert(index + 1, f"*   **Discussion Channel**: {url}")
            return LinkUpdate(content="\n".join(lines), action=LinkAction.INSERTED)

    return LinkUpdate(content=content, action=LinkAction.NO_ANCHOR)


def update_references(content: str, number: str, url: str) -> str:
    """Replace leftover draft placeholders that refer to the discussion number."""

    updated = content
    for pattern in _REFERENCE_PATTERNS:
        updated = pattern.sub(f"Discussion: {url}", updated)

    # Filename examples such as "xxxx-name.md" must keep their placeholder.
    if "xxxx-" not in content:
        updated = _BARE_PLACEHOLDER_RE.sub(number, updated)
    return updated


@dataclass(slots=True)
class DocumentSynchronizer:
    """Apply :func:`synchronize_link` to the proposal and stage the result."""

    git: SupportsGit
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def sync_working_tree(self, session: PublicationSession, path: str) -> LinkUpdate | None:
        """Update the renamed draft in the working tree and stage it."""

        session.require_discussion()
        if session.dry_run:
            self.logger.info("[DRY RUN] Would update Discussion Channel link in %s to %s", path, session.discussion_url)
            return None

        target = self.git.root / path
        original = target.read_text(encoding="utf-8")
        update = synchronize_link(original, session.discussion_url)
        content = update_references(update.content, session.discussion_id, session.discussion_url)
        self._report(update, path, session.discussion_url)

        if content != original:
            target.write_text(content, encoding="utf-8")
            self.git.add(path)
            if not update.changed:
                self.logger.info("Updated document references to discussion #%s", session.discussion_id)
        return LinkUpdate(content=content, action=update.action)

    def sync_commit(self, session: PublicationSession, *, write: bool) -> LinkUpdate | None:
        """Update a numbered proposal read from the inspected commit.

        The result is written to the working tree and staged only when ``write``
        is set, which callers do when the commit is checked out at HEAD.
        """

        session.require_discussion()
        path = session.proposal_path
        if session.dry_run:
            self.logger.info("[DRY RUN] Would update Discussion Channel link in %s to %s", path, session.discussion_url)
            return None

        original = self.git.show_file(session.resolved_commit_hash, path)
        update = synchronize_link(original, session.discussion_url)
        if not update.changed:
            self._report(update, path, session.discussion_url)
            return update

        if not write:
            self.logger.warning("Cannot update discussion link in historical commit %s", session.short_hash)
            self.logger.info("The discussion link update will be included in the discussion content instead")
            return update

        (self.git.root / path).write_text(update.content, encoding="utf-8")
        self.git.add(path)
        self._report(update, path, session.discussion_url)
        return update

    def _report(self, update: LinkUpdate, path: str, url: str) -> None:
        if update.changed:
            self.logger.info("Updated Discussion Channel link in %s to %s", path, url)
        elif update.action is LinkAction.UNCHANGED:
            self.logger.info("Discussion Channel link in %s already set; leaving it untouched", path)
        else:
            self.logger.warning("Could not find or add Discussion Channel field in %s", path)
