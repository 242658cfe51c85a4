from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from proposal_publisher.models.errors import (
    InvalidNamingConvention,
    InvalidReference,
    MultipleProposalsFound,
    NoProposalFound,
)
from proposal_publisher.models.session import FileChange, LifecycleClass, PublicationSession
from proposal_publisher.services.git import GitRepository
from proposal_publisher.services.inspector import CommitInspector, classify_proposal_name


def _inspect(repo_path: Path, commit_ref: str = "HEAD") -> PublicationSession:
    inspector = CommitInspector(GitRepository(repo_path))
    return inspector.inspect(PublicationSession(commit_ref=commit_ref))


@pytest.mark.parametrize(
    ("basename", "expected"),
    [
        ("xxxx-demo.md", (LifecycleClass.DRAFT, None)),
        ("4014-demo.md", (LifecycleClass.NUMBERED, "4014")),
        ("7-x.md", (LifecycleClass.NUMBERED, "7")),
    ],
)
def test_classify_proposal_name_accepts_conventions(basename: str, expected: tuple[LifecycleClass, str | None]) -> None:
    assert classify_proposal_name(basename) == expected


@pytest.mark.parametrize("basename", ["demo.md", "xxxx-.md", "1234-demo.txt", "abc-1234.md", "1234.md"])
def test_classify_proposal_name_rejects_other_names(basename: str) -> None:
    with pytest.raises(InvalidNamingConvention) as excinfo:
        classify_proposal_name(basename)

    assert basename in str(excinfo.value)


def test_inspect_detects_draft_proposal(git_repo: Any, demo_proposal: str) -> None:
    commit = git_repo.commit_file("designs/language/xxxx-demo.md", demo_proposal)

    session = _inspect(git_repo.path)

    assert session.resolved_commit_hash == commit
    assert session.proposal_path == "designs/language/xxxx-demo.md"
    assert session.proposal_basename == "xxxx-demo.md"
    assert session.lifecycle is LifecycleClass.DRAFT
    assert session.discussion_id == ""


def test_inspect_detects_numbered_proposal_by_hash(git_repo: Any, demo_proposal: str) -> None:
    commit = git_repo.commit_file("designs/4014-demo.md", demo_proposal)
    git_repo.commit_file("notes.txt", "later\n")

    session = _inspect(git_repo.path, commit[:12])

    assert session.resolved_commit_hash == commit
    assert session.is_numbered
    assert session.discussion_id == "4014"


def test_inspect_handles_root_commit(make_repo: Any, demo_proposal: str) -> None:
    repo = make_repo("fresh")
    repo.commit_file("designs/xxxx-first.md", demo_proposal)

    session = _inspect(repo.path)

    assert session.proposal_path == "designs/xxxx-first.md"


def test_inspect_uses_rename_target(git_repo: Any, demo_proposal: str) -> None:
    git_repo.commit_file("designs/xxxx-demo.md", demo_proposal)
    git_repo.git("mv", "designs/xxxx-demo.md", "designs/0042-demo.md")
    git_repo.commit("Rename proposal")

    session = _inspect(git_repo.path)

    assert session.proposal_path == "designs/0042-demo.md"
    assert session.renamed_from == "designs/xxxx-demo.md"
    assert session.discussion_id == "0042"


def test_inspect_modified_proposal_is_candidate(git_repo: Any, demo_proposal: str) -> None:
    git_repo.commit_file("designs/4014-demo.md", demo_proposal)
    git_repo.commit_file("designs/4014-demo.md", demo_proposal + "\nMore.\n", "Edit proposal")

    session = _inspect(git_repo.path)

    assert session.proposal_path == "designs/4014-demo.md"


def test_inspect_without_proposal_raises(git_repo: Any) -> None:
    git_repo.commit_file("designs/notes.txt", "not markdown\n")

    with pytest.raises(NoProposalFound):
        _inspect(git_repo.path)


def test_inspect_ignores_markdown_outside_proposal_directory(git_repo: Any, demo_proposal: str) -> None:
    git_repo.commit_file("docs/xxxx-demo.md", demo_proposal)

    with pytest.raises(NoProposalFound):
        _inspect(git_repo.path)


def test_inspect_rejects_multiple_proposals(git_repo: Any, demo_proposal: str) -> None:
    git_repo.write("designs/xxxx-one.md", demo_proposal)
    git_repo.write("designs/xxxx-two.md", demo_proposal.replace("Demo", "Other"))
    git_repo.commit("Add two proposals")

    with pytest.raises(MultipleProposalsFound) as excinfo:
        _inspect(git_repo.path)

    assert excinfo.value.candidates == ["designs/xxxx-one.md", "designs/xxxx-two.md"]
    assert "each proposal should be in its own commit" in str(excinfo.value)


def test_inspect_rejects_bad_reference(git_repo: Any) -> None:
    with pytest.raises(InvalidReference):
        _inspect(git_repo.path, "does-not-exist")


def test_inspect_rejects_badly_named_proposal(git_repo: Any, demo_proposal: str) -> None:
    git_repo.commit_file("designs/demo.md", demo_proposal)

    with pytest.raises(InvalidNamingConvention):
        _inspect(git_repo.path)


def test_find_candidates_reports_rename_in_multiple_error() -> None:
    inspector = CommitInspector(GitRepository(Path(".")))
    changes = [
        FileChange(status="R100", path="designs/0042-a.md", old_path="designs/xxxx-a.md"),
        FileChange(status="A", path="designs/xxxx-b.md"),
        FileChange(status="D", path="designs/xxxx-c.md"),
    ]

    found = inspector.find_candidates(changes)

    assert found.paths == ["designs/0042-a.md", "designs/xxxx-b.md"]
    assert found.renamed_from == "designs/xxxx-a.md"
    assert found.renamed_to == "designs/0042-a.md"

    message = str(MultipleProposalsFound("HEAD", found.paths, renamed_from=found.renamed_from, renamed_to=found.renamed_to))
    assert "rename from designs/xxxx-a.md to designs/0042-a.md" in message
