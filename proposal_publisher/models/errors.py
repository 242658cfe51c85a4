"""Exception hierarchy raised by the publication workflow."""

from __future__ import annotations

from typing import Sequence


class PublishError(RuntimeError):
    """Base class for every failure surfaced by the publication workflow."""


class ConfigurationError(PublishError):
    """Raised when the settings file or environment cannot be interpreted."""


class SessionStateError(PublishError):
    """Raised when a stage runs before the session holds the data it needs."""


class GitCommandError(PublishError):
    """Raised when a git invocation exits with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(f"git {' '.join(self.command)} failed: {self.stderr or f'exit status {returncode}'}")


class ToolNotFoundError(PublishError):
    """Raised when an external executable is not installed."""

    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(f"{executable}: command not found")


class GraphQLError(PublishError):
    """Raised when the GitHub GraphQL API rejects a request."""

    def __init__(self, message: str, *, errors: Sequence[object] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message)


class InvalidReference(PublishError):
    """Raised when the commit reference does not resolve to a commit."""


class NoProposalFound(PublishError):
    """Raised when the commit does not touch any proposal document."""


class MultipleProposalsFound(PublishError):
    """Raised when the commit touches more than one proposal document."""

    def __init__(
        self,
        commit_ref: str,
        candidates: Sequence[str],
        *,
        renamed_from: str | None = None,
        renamed_to: str | None = None,
    ) -> None:
        self.candidates = list(candidates)
        self.renamed_from = renamed_from
        self.renamed_to = renamed_to
        lines = [f"multiple proposal files found in commit {commit_ref}:"]
        lines.extend(f"  {candidate}" for candidate in self.candidates)
        if renamed_from and renamed_to:
            lines.append(f"note: detected rename from {renamed_from} to {renamed_to}")
        lines.append("each proposal should be in its own commit")
        super().__init__("\n".join(lines))


class InvalidNamingConvention(PublishError):
    """Raised when the proposal filename is neither a draft nor a numbered name."""


class MissingTitle(PublishError):
    """Raised when the proposal document has no ``# Title`` heading."""


class DiscussionNotFound(PublishError):
    """Raised when a numbered proposal points at a discussion that does not exist."""


class DiscussionMismatch(PublishError):
    """Raised when the referenced discussion does not appear to belong to the proposal."""


class DiscussionCategoryError(PublishError):
    """Raised when the repository exposes no discussion categories."""


class HistoryRewriteError(PublishError):
    """Raised when renaming the proposal inside a historical commit fails."""

    def __init__(self, message: str, *, failing_commit: str | None = None) -> None:
        self.failing_commit = failing_commit
        super().__init__(message)


class ReviewSubmissionError(PublishError):
    """Raised when the code review tool rejects the submission."""


class BuildTriggerError(PublishError):
    """Raised when the build verification tool fails for reasons other than being absent."""


class SummaryGenerationError(PublishError):
    """Raised by the generative summary path; always recovered by the heuristic extractor."""
