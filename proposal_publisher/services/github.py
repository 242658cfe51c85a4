"""Client for the GitHub discussions GraphQL API."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
import os
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from proposal_publisher.models.discussion import (
    CategoriesResponse,
    CreateDiscussionResponse,
    CreatedDiscussion,
    DiscussionCategory,
    DiscussionNode,
    DiscussionResponse,
    RepositoryIdResponse,
    UpdateDiscussionResponse,
)
from proposal_publisher.models.errors import GraphQLError, PublishError
from proposal_publisher.services.commands import SupportsCommands

LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], str]
_ResponseT = TypeVar("_ResponseT", bound=BaseModel)

_TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN")

REPOSITORY_ID_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
  }
}
""".strip()

CATEGORIES_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    discussionCategories(first: 10) {
      nodes {
        id
        name
      }
    }
  }
}
""".strip()

CREATE_DISCUSSION_MUTATION = """
mutation($repositoryId: ID!, $categoryId: ID!, $title: String!, $body: String!) {
  createDiscussion(input: {repositoryId: $repositoryId, categoryId: $categoryId, title: $title, body: $body}) {
    discussion {
      number
      url
    }
  }
}
""".strip()

DISCUSSION_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    discussion(number: $number) {
      id
      number
      body
      url
    }
  }
}
""".strip()

UPDATE_DISCUSSION_MUTATION = """
mutation($discussionId: ID!, $body: String!) {
  updateDiscussion(input: {discussionId: $discussionId, body: $body}) {
    discussion {
      url
    }
  }
}
""".strip()


class SupportsDiscussionsApi(Protocol):
    """Discussion operations used by the discussion manager and content publisher."""

    def repository_id(self) -> str:
        """Return the GraphQL node id of the discussions repository."""

    def discussion_categories(self) -> list[DiscussionCategory]:
        """Return the discussion categories configured for the repository."""

    def create_discussion(self, *, repository_id: str, category_id: str, title: str, body: str) -> CreatedDiscussion:
        """Create a discussion and return its number and URL."""

    def get_discussion(self, number: int) -> DiscussionNode | None:
        """Return the discussion with ``number`` or ``None`` when it does not exist."""

    def update_discussion(self, discussion_id: str, body: str) -> DiscussionNode | None:
        """Replace the body of the discussion with node id ``discussion_id``."""


class CommandTokenProvider:
    """Resolve a GitHub token from the environment or a credential helper command."""

    def __init__(
        self,
        command: tuple[str, ...],
        runner: SupportsCommands,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._command = command
        self._runner = runner
        self._environ = os.environ if environ is None else environ

    def __call__(self) -> str:
        for variable in _TOKEN_ENV_VARS:
            token = (self._environ.get(variable) or "").strip()
            if token:
                return token

        try:
            result = self._runner.run(self._command)
        except PublishError as exc:
            raise GraphQLError(f"unable to resolve GitHub credentials: {exc}") from exc
        token = result.stdout.strip()
        if not result.ok or not token:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise GraphQLError(f"unable to resolve GitHub credentials via {' '.join(self._command)}: {detail}")
        return token


class GitHubDiscussionsClient:
    """Issue discussion queries and mutations against the GitHub GraphQL endpoint."""

    def __init__(
        self,
        *,
        owner: str,
        repository: str,
        token_provider: TokenProvider,
        endpoint: str = "https://api.github.com/graphql",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._owner = owner
        self._repository = repository
        self._token_provider = token_provider
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout)
        self._token: str | None = None

    def repository_id(self) -> str:
        response = self._query(RepositoryIdResponse, REPOSITORY_ID_QUERY, self._repository_variables())
        if not response.repository_id:
            raise GraphQLError(f"repository {self._owner}/{self._repository} not found")
        return response.repository_id

    def discussion_categories(self) -> list[DiscussionCategory]:
        response = self._query(CategoriesResponse, CATEGORIES_QUERY, self._repository_variables())
        return response.categories

    def create_discussion(self, *, repository_id: str, category_id: str, title: str, body: str) -> CreatedDiscussion:
        variables = {
            "repositoryId": repository_id,
            "categoryId": category_id,
            "title": title,
            "body": body,
        }
        response = self._query(CreateDiscussionResponse, CREATE_DISCUSSION_MUTATION, variables)
        discussion = response.discussion
        if discussion is None or discussion.number is None or not discussion.url:
            raise GraphQLError("createDiscussion returned no discussion")
        return CreatedDiscussion(number=str(discussion.number), url=discussion.url)

    def get_discussion(self, number: int) -> DiscussionNode | None:
        variables = {**self._repository_variables(), "number": number}
        try:
            response = self._query(DiscussionResponse, DISCUSSION_QUERY, variables)
        except GraphQLError as exc:
            if any(_error_type(error) == "NOT_FOUND" for error in exc.errors):
                return None
            raise
        return response.discussion

    def update_discussion(self, discussion_id: str, body: str) -> DiscussionNode | None:
        variables = {"discussionId": discussion_id, "body": body}
        response = self._query(UpdateDiscussionResponse, UPDATE_DISCUSSION_MUTATION, variables)
        return response.discussion

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """POST a GraphQL document and return the decoded JSON payload."""

        headers = {
            "Authorization": f"Bearer {self._resolve_token()}",
            "Accept": "application/vnd.github+json",
        }
        payload = {"query": query, "variables": dict(variables or {})}
        try:
            response = self._client.post(self._endpoint, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise GraphQLError(f"GitHub API call failed: {exc}") from exc
        except ValueError as exc:
            raise GraphQLError(f"GitHub API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise GraphQLError("GitHub API returned a non-object payload")
        errors = data.get("errors") or []
        if errors:
            messages = "; ".join(_error_message(error) for error in errors)
            raise GraphQLError(f"GraphQL errors: {messages}", errors=errors)
        return data

    def close(self) -> None:
        self._client.close()

    def _query(self, model: type[_ResponseT], query: str, variables: Mapping[str, Any]) -> _ResponseT:
        data = self.execute(query, variables)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise GraphQLError(f"unexpected GraphQL response shape: {exc}") from exc

    def _repository_variables(self) -> dict[str, Any]:
        return {"owner": self._owner, "name": self._repository}

    def _resolve_token(self) -> str:
        if self._token is None:
            self._token = self._token_provider()
        return self._token


def _error_type(error: object) -> str | None:
    if isinstance(error, Mapping):
        value = error.get("type")
        return str(value) if value is not None else None
    return None


def _error_message(error: object) -> str:
    if isinstance(error, Mapping):
        return str(error.get("message") or error)
    return str(error)
