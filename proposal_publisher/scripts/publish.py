"""Publish a design proposal commit: discussion, rename, review and build verification."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler

from proposal_publisher.models.errors import PublishError
from proposal_publisher.models.session import PublicationSession
from proposal_publisher.services.commands import CommandRunner
from proposal_publisher.services.content_publisher import ContentPublisher
from proposal_publisher.services.discussions import DiscussionManager
from proposal_publisher.services.git import GitRepository
from proposal_publisher.services.github import CommandTokenProvider, GitHubDiscussionsClient
from proposal_publisher.services.inspector import CommitInspector
from proposal_publisher.services.pipeline import PipelineResult, PublicationPipeline
from proposal_publisher.services.preflight import PreflightChecker
from proposal_publisher.services.review import ReviewSubmitter
from proposal_publisher.services.rewriter import HistoryRewriter
from proposal_publisher.services.settings import PublishSettings
from proposal_publisher.services.summarizer import ProposalSummarizer, create_summary_llm
from proposal_publisher.services.synchronizer import DocumentSynchronizer

LOGGER = logging.getLogger("proposal_publisher.publish")

err_console = Console(stderr=True)


def _configure_logging() -> None:
    """Configure root logging based on ``PUBLISH_LOG_LEVEL``."""
    level_name = os.getenv("PUBLISH_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
    )


def _env_bool(variable: str, default: bool = False) -> bool:
    value = os.getenv(variable)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="publish",
        description="Publish a design proposal: create or verify its discussion, rename it, and submit it for review",
    )
    parser.add_argument(
        "commit_ref",
        nargs="?",
        default="HEAD",
        help="Commit containing the proposal (default: HEAD)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=_env_bool("PUBLISH_DRY_RUN"),
        help="Show what would be done without changing the repository or GitHub",
    )
    parser.add_argument(
        "--use-ai",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("PUBLISH_USE_AI"),
        help="Summarise the proposal with the configured language model (default: env or off)",
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        default=_env_bool("PUBLISH_SKIP_CHECKS"),
        help="Skip the repository pre-checks",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file (default: .proposal-publish.yaml in the repository)",
    )
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Path inside the repository to operate on (default: current directory)",
    )
    return parser.parse_args(argv)


def _build_pipeline(
    settings: PublishSettings,
    git: GitRepository,
    *,
    use_ai: bool,
) -> tuple[PublicationPipeline, GitHubDiscussionsClient]:
    runner = CommandRunner(git.root)
    client = GitHubDiscussionsClient(
        owner=settings.github_owner,
        repository=settings.discussion_repository,
        token_provider=CommandTokenProvider(settings.credential_command, runner),
        endpoint=settings.graphql_url,
        timeout=settings.http_timeout,
    )
    llm = None
    if use_ai:
        try:
            llm = create_summary_llm(settings, runner)
        except PublishError as exc:
            LOGGER.warning("AI summaries unavailable (%s); falling back to text extraction", exc)

    pipeline = PublicationPipeline(
        inspector=CommitInspector(git, settings),
        discussions=DiscussionManager(git, client, settings),
        rewriter=HistoryRewriter(git, DocumentSynchronizer(git), settings),
        content=ContentPublisher(git, client, ProposalSummarizer(llm=llm), settings),
        review=ReviewSubmitter(git, runner, settings),
        preflight=PreflightChecker(runner, settings),
    )
    return pipeline, client


def _report(result: PipelineResult) -> None:
    for warning in result.warnings:
        LOGGER.warning("PUBLISH_WARNING %s", warning)
    for error in result.errors:
        LOGGER.error("PUBLISH_ERROR %s", error)

    session = result.session
    LOGGER.debug(
        "PUBLISH_RESULT commit=%s proposal=%s renamed=%s discussion=%s review=%s succeeded=%s",
        session.resolved_commit_hash,
        session.proposal_path,
        session.renamed_path,
        session.discussion_id,
        session.review_id,
        result.succeeded,
    )


def main(argv: Sequence[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)

    try:
        git = GitRepository.discover(args.repo.resolve(), os.getenv("PUBLISH_GIT_EXECUTABLE", "git"))
        settings = PublishSettings.load(git.root, config_path=args.config)
        if settings.git_executable != git.git_executable:
            git = GitRepository(git.root, settings.git_executable)
        pipeline, client = _build_pipeline(settings, git, use_ai=args.use_ai)
    except PublishError as exc:
        LOGGER.error("Failed to initialise publication workflow: %s", exc)
        return 1

    session = PublicationSession(commit_ref=args.commit_ref, dry_run=args.dry_run, use_ai=args.use_ai)
    LOGGER.info("PUBLISH_START commit=%s dry_run=%s use_ai=%s", session.commit_ref, session.dry_run, session.use_ai)
    try:
        result = pipeline.run(session, skip_checks=args.skip_checks)
    finally:
        client.close()

    _report(result)
    if not result.succeeded:
        LOGGER.error("Proposal publication failed")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
