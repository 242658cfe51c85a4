"""Submit the proposal commit for code review and start build verification."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re

from proposal_publisher.models.errors import (
    BuildTriggerError,
    GitCommandError,
    ReviewSubmissionError,
    ToolNotFoundError,
)
from proposal_publisher.models.review import BuildTrigger, ReviewSubmission
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.commands import CommandResult, SupportsCommands, looks_like_missing_tool
from proposal_publisher.services.git import SupportsGit
from proposal_publisher.services.settings import PublishSettings


REVIEW_URL_RE = re.compile(r"https://[^\s]+/(\d+)")
CHANGE_ID_RE = re.compile(r"Change-Id: (I[a-f0-9]{40})")
NO_NEW_CHANGES = "no new changes"
REVIEW_INSTALL_HINT = "go install golang.org/x/review/git-codereview@latest"


def parse_review_url(*outputs: str) -> tuple[str, str] | None:
    """Return ``(review_id, review_url)`` from the first output containing a review link."""

    for output in outputs:
        match = REVIEW_URL_RE.search(output or "")
        if match:
            return match.group(1), match.group(0)
    return None


@dataclass(slots=True)
class ReviewSubmitter:
    """Drive the review submission tool and the build verification trigger."""

    git: SupportsGit
    runner: SupportsCommands
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def submit(self, session: PublicationSession) -> ReviewSubmission:
        """Mail the commit for review and record the review id and URL on the session."""

        session.require_proposal()
        command = (*self.settings.review_command, session.commit_ref)
        self.logger.info("Submitting for review via %s...", " ".join(self.settings.review_command))

        if session.dry_run:
            self.logger.info("[DRY RUN] Would submit for review via %s", " ".join(command))
            session.review_id = self.settings.dry_run_review_id
            session.review_url = self.settings.dry_run_review_url
            return ReviewSubmission(review_id=session.review_id, review_url=session.review_url)

        try:
            result = self.runner.run(command)
        except ToolNotFoundError as exc:
            raise ReviewSubmissionError(f"{exc}; install it with: {REVIEW_INSTALL_HINT}") from exc

        if not result.ok:
            if NO_NEW_CHANGES in result.stdout or NO_NEW_CHANGES in result.stderr:
                self.logger.info("No new changes to submit (review may already exist)")
                submission = self.recover_existing_review(session)
                submission.existing = True
                return submission
            if looks_like_missing_tool(result):
                raise ReviewSubmissionError(
                    f"review tool unavailable: {result.stderr.strip()}; install it with: {REVIEW_INSTALL_HINT}"
                )
            raise ReviewSubmissionError(self._describe_failure(result))

        parsed = parse_review_url(result.stdout, result.stderr)
        if parsed is None:
            self.logger.warning("Could not extract review number from %s output", " ".join(self.settings.review_command))
            return self.recover_existing_review(session)

        session.review_id, session.review_url = parsed
        self.logger.info("Submitted review %s: %s", session.review_id, session.review_url)
        return ReviewSubmission(review_id=session.review_id, review_url=session.review_url)

    def recover_existing_review(self, session: PublicationSession) -> ReviewSubmission:
        """Derive a review URL from the commit's ``Change-Id`` trailer when possible."""

        try:
            message = self.git.commit_message(session.commit_ref)
        except GitCommandError as exc:
            raise ReviewSubmissionError(f"failed to get existing review: {exc}") from exc

        match = CHANGE_ID_RE.search(message)
        if not match:
            self.logger.warning("No Change-Id found in commit %s; review link unknown", session.short_hash)
            return ReviewSubmission(review_id=session.review_id, review_url=session.review_url)

        change_id = match.group(1)
        remote = self.git.config_get("remote.origin.url") or ""
        if self.settings.review_host_marker in remote:
            session.review_url = f"{self.settings.review_query_base}{change_id}"
            self.logger.info("Review may be at: %s", session.review_url)
        else:
            self.logger.warning("Remote %r is not a known review host; review link unknown", remote)
        return ReviewSubmission(review_id=session.review_id, review_url=session.review_url)

    def trigger_build(self, session: PublicationSession) -> BuildTrigger:
        """Ask the build verification tool to test the submitted commit."""

        session.require_proposal()
        tool = " ".join(self.settings.build_command)
        self.logger.info("Starting build verification via %s...", tool)

        if session.dry_run:
            self.logger.info("[DRY RUN] Would run: %s <new-commit-hash>", tool)
            self.logger.info("[DRY RUN] (commit hash will change after file rename and amendments)")
            return BuildTrigger(started=False)

        if not session.review_id and not session.review_url:
            warning = "No review available, skipping build verification"
            self.logger.warning(warning)
            return BuildTrigger(started=False, warning=warning)

        commit_hash = session.resolved_commit_hash
        command = (*self.settings.build_command, commit_hash)
        try:
            result = self.runner.run(command)
        except ToolNotFoundError:
            return self._tool_missing(commit_hash)

        if not result.ok:
            if looks_like_missing_tool(result):
                return self._tool_missing(commit_hash)
            raise BuildTriggerError(self._describe_failure(result))

        output = result.stdout.strip()
        self.logger.info("Started build verification for commit %s", commit_hash[:8])
        if output:
            self.logger.info("Build trigger output: %s", output)
        if session.review_url:
            self.logger.info("Monitor build status at: %s", session.review_url)
        return BuildTrigger(started=True, commit_hash=commit_hash, output=output)

    def _tool_missing(self, commit_hash: str) -> BuildTrigger:
        warning = f"{self.settings.build_command[0]} not installed, skipping build verification"
        self.logger.warning(warning)
        self.logger.info("To install %s: %s", self.settings.build_command[0], self.settings.build_install_hint)
        return BuildTrigger(started=False, commit_hash=commit_hash, warning=warning)

    @staticmethod
    def _describe_failure(result: CommandResult) -> str:
        detail = result.stderr.strip() or result.stdout.strip() or "no output"
        return f"{' '.join(result.args)} exited with status {result.returncode}: {detail}"
