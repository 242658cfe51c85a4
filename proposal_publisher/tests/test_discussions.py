from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from proposal_publisher.models.discussion import CreatedDiscussion, DiscussionCategory, DiscussionNode
from proposal_publisher.models.errors import (
    DiscussionCategoryError,
    DiscussionMismatch,
    DiscussionNotFound,
    GraphQLError,
    MissingTitle,
    SessionStateError,
)
from proposal_publisher.models.session import LifecycleClass, PublicationSession
from proposal_publisher.services.discussions import DiscussionManager, discussion_belongs_to, holding_body


@dataclass(slots=True)
class StubGit:
    files: dict[str, str]
    root: Path = Path(".")

    def show_file(self, commit: str, path: str) -> str:
        return self.files[path]


@dataclass(slots=True)
class StubDiscussionsApi:
    categories: list[DiscussionCategory] = field(
        default_factory=lambda: [
            DiscussionCategory(id="CAT_GENERAL", name="General"),
            DiscussionCategory(id="CAT_PROPOSALS", name="Proposals"),
        ]
    )
    discussion: DiscussionNode | None = None
    error: Exception | None = None
    created: list[dict[str, str]] = field(default_factory=list)
    lookups: list[int] = field(default_factory=list)

    def repository_id(self) -> str:
        return "REPO_ID"

    def discussion_categories(self) -> list[DiscussionCategory]:
        return list(self.categories)

    def create_discussion(self, *, repository_id: str, category_id: str, title: str, body: str) -> CreatedDiscussion:
        self.created.append({"repository_id": repository_id, "category_id": category_id, "title": title, "body": body})
        return CreatedDiscussion(number="4100", url="https://github.com/cue-lang/cue/discussions/4100")

    def get_discussion(self, number: int) -> DiscussionNode | None:
        self.lookups.append(number)
        if self.error is not None:
            raise self.error
        return self.discussion

    def update_discussion(self, discussion_id: str, body: str) -> DiscussionNode | None:
        raise AssertionError("not expected")


def _draft_session(path: str = "designs/language/xxxx-demo.md", *, dry_run: bool = False) -> PublicationSession:
    return PublicationSession(
        dry_run=dry_run,
        resolved_commit_hash="a" * 40,
        proposal_path=path,
        proposal_basename=path.rsplit("/", 1)[-1],
        lifecycle=LifecycleClass.DRAFT,
    )


def _numbered_session(path: str = "designs/4014-demo.md", *, dry_run: bool = False) -> PublicationSession:
    return PublicationSession(
        dry_run=dry_run,
        resolved_commit_hash="b" * 40,
        proposal_path=path,
        proposal_basename=path.rsplit("/", 1)[-1],
        lifecycle=LifecycleClass.NUMBERED,
        discussion_id="4014",
    )


def test_holding_body_names_the_proposal() -> None:
    body = holding_body("xxxx-demo.md")

    assert "**Proposal**: demo" in body
    assert "Draft under review" in body
    assert discussion_belongs_to(body, "designs/4014-demo.md")


def test_create_discussion_dry_run_uses_placeholder(demo_proposal: str) -> None:
    api = StubDiscussionsApi()
    manager = DiscussionManager(StubGit({"designs/language/xxxx-demo.md": demo_proposal}), api)
    session = _draft_session(dry_run=True)

    manager.ensure_discussion(session)

    assert session.discussion_id == "1234"
    assert session.discussion_url == "https://github.com/cue-lang/cue/discussions/1234"
    assert api.created == []


def test_create_discussion_prefers_proposals_category(demo_proposal: str) -> None:
    api = StubDiscussionsApi()
    manager = DiscussionManager(StubGit({"designs/language/xxxx-demo.md": demo_proposal}), api)
    session = _draft_session()

    manager.create_discussion(session)

    assert session.discussion_id == "4100"
    assert session.discussion_url.endswith("/discussions/4100")
    [created] = api.created
    assert created["category_id"] == "CAT_PROPOSALS"
    assert created["repository_id"] == "REPO_ID"
    assert created["title"] == "Demo Feature"
    assert "This proposal is currently under review." in created["body"]


def test_create_discussion_falls_back_to_first_category(
    demo_proposal: str, caplog: pytest.LogCaptureFixture
) -> None:
    api = StubDiscussionsApi(categories=[DiscussionCategory(id="CAT_IDEAS", name="Ideas")])
    manager = DiscussionManager(StubGit({"designs/language/xxxx-demo.md": demo_proposal}), api)

    manager.create_discussion(_draft_session())

    assert api.created[0]["category_id"] == "CAT_IDEAS"
    assert "using: Ideas" in caplog.text


def test_create_discussion_without_categories_fails(demo_proposal: str) -> None:
    api = StubDiscussionsApi(categories=[])
    manager = DiscussionManager(StubGit({"designs/language/xxxx-demo.md": demo_proposal}), api)

    with pytest.raises(DiscussionCategoryError):
        manager.create_discussion(_draft_session())


def test_create_discussion_requires_title() -> None:
    api = StubDiscussionsApi()
    path = "designs/xxxx-notitle.md"
    manager = DiscussionManager(StubGit({path: "No heading here.\n\n## Summary\n\nText.\n"}), api)

    with pytest.raises(MissingTitle) as excinfo:
        manager.create_discussion(_draft_session(path))

    assert "no '# Title' found" in str(excinfo.value)
    assert api.created == []


def test_create_discussion_rejects_numbered_session() -> None:
    manager = DiscussionManager(StubGit({}), StubDiscussionsApi())

    with pytest.raises(SessionStateError):
        manager.create_discussion(_numbered_session())


def test_verify_discussion_accepts_body_with_path() -> None:
    api = StubDiscussionsApi(
        discussion=DiscussionNode(
            id="D_1",
            number=4014,
            url="https://github.com/cue-lang/cue/discussions/4014",
            body="Please see designs/4014-demo.md for the proposal.",
        )
    )
    manager = DiscussionManager(StubGit({}), api)
    session = _numbered_session(dry_run=True)

    manager.ensure_discussion(session)

    assert api.lookups == [4014]
    assert session.discussion_url == "https://github.com/cue-lang/cue/discussions/4014"


def test_verify_discussion_accepts_placeholder_phrase_case_insensitively() -> None:
    api = StubDiscussionsApi(discussion=DiscussionNode(id="D_1", number=4014, body="Full text COMING SOON."))
    manager = DiscussionManager(StubGit({}), api)
    session = _numbered_session()

    manager.verify_discussion(session)

    assert session.discussion_url == "https://github.com/cue-lang/cue/discussions/4014"


def test_verify_discussion_rejects_unrelated_body(caplog: pytest.LogCaptureFixture) -> None:
    body = "An unrelated discussion about something else entirely. " * 10
    api = StubDiscussionsApi(discussion=DiscussionNode(id="D_1", number=4014, body=body))
    manager = DiscussionManager(StubGit({}), api)

    with pytest.raises(DiscussionMismatch):
        manager.verify_discussion(_numbered_session())

    assert body[:200] in caplog.text
    assert body[:201] not in caplog.text


@pytest.mark.parametrize(
    "api",
    [
        StubDiscussionsApi(discussion=None),
        StubDiscussionsApi(discussion=DiscussionNode(id="D_1", number=4014, body="")),
        StubDiscussionsApi(error=GraphQLError("boom")),
    ],
)
def test_verify_discussion_reports_missing_discussion(api: StubDiscussionsApi) -> None:
    manager = DiscussionManager(StubGit({}), api)

    with pytest.raises(DiscussionNotFound):
        manager.verify_discussion(_numbered_session())
