"""Typed payloads exchanged with the GitHub discussions GraphQL API."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DiscussionCategory(_Payload):
    """A discussion category available in the target repository."""

    id: str
    name: str


class _CategoryConnection(_Payload):
    nodes: list[DiscussionCategory] = Field(default_factory=list)


class _RepositoryCategories(_Payload):
    discussion_categories: _CategoryConnection = Field(
        default_factory=_CategoryConnection, alias="discussionCategories"
    )


class _CategoriesData(_Payload):
    repository: _RepositoryCategories | None = None


class CategoriesResponse(_Payload):
    """Response to the discussion category listing query."""

    data: _CategoriesData = Field(default_factory=_CategoriesData)

    @property
    def categories(self) -> list[DiscussionCategory]:
        if self.data.repository is None:
            return []
        return list(self.data.repository.discussion_categories.nodes)


class _RepositoryId(_Payload):
    id: str


class _RepositoryIdData(_Payload):
    repository: _RepositoryId | None = None


class RepositoryIdResponse(_Payload):
    """Response to the repository node id lookup."""

    data: _RepositoryIdData = Field(default_factory=_RepositoryIdData)

    @property
    def repository_id(self) -> str | None:
        return self.data.repository.id if self.data.repository else None


class DiscussionNode(_Payload):
    """Subset of discussion fields selected by our queries."""

    id: str | None = None
    number: int | None = None
    url: str | None = None
    body: str | None = None


class _DiscussionEnvelope(_Payload):
    discussion: DiscussionNode | None = None


class _CreateDiscussionData(_Payload):
    create_discussion: _DiscussionEnvelope | None = Field(default=None, alias="createDiscussion")


class CreateDiscussionResponse(_Payload):
    """Response to the ``createDiscussion`` mutation."""

    data: _CreateDiscussionData = Field(default_factory=_CreateDiscussionData)

    @property
    def discussion(self) -> DiscussionNode | None:
        envelope = self.data.create_discussion
        return envelope.discussion if envelope else None


class _DiscussionData(_Payload):
    repository: _DiscussionEnvelope | None = None


class DiscussionResponse(_Payload):
    """Response to the discussion-by-number query."""

    data: _DiscussionData = Field(default_factory=_DiscussionData)

    @property
    def discussion(self) -> DiscussionNode | None:
        return self.data.repository.discussion if self.data.repository else None


class _UpdateDiscussionData(_Payload):
    update_discussion: _DiscussionEnvelope | None = Field(default=None, alias="updateDiscussion")


class UpdateDiscussionResponse(_Payload):
    """Response to the ``updateDiscussion`` mutation."""

    data: _UpdateDiscussionData = Field(default_factory=_UpdateDiscussionData)

    @property
    def discussion(self) -> DiscussionNode | None:
        envelope = self.data.update_discussion
        return envelope.discussion if envelope else None


@dataclass(slots=True)
class CreatedDiscussion:
    """Identifier and location of a newly created discussion."""

    number: str
    url: str


@dataclass(slots=True)
class DiscussionUpdate:
    """Outcome of pushing a refreshed body to the discussion."""

    title: str
    body: str
    updated: bool
    warning: str | None = None
