"""Configuration for the publication workflow.

Settings are assembled from three layers, later layers winning:

1. the defaults declared on :class:`PublishSettings`;
2. an optional YAML file (``.proposal-publish.yaml`` at the repository root,
   or the path passed on the command line);
3. ``PUBLISH_<FIELD>`` environment variables.

Command settings accept either a list of arguments or a shell-style string.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
import logging
import os
from pathlib import Path
import shlex
from typing import Any

import yaml

from proposal_publisher.models.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".proposal-publish.yaml"
ENV_PREFIX = "PUBLISH_"

Command = tuple[str, ...]


def _default_prechecks() -> tuple[Command, ...]:
    return (
        ("go", "test", "./..."),
        ("sh", "-c", "cd internal/ci && go generate"),
    )


@dataclass(slots=True, frozen=True)
class PublishSettings:
    """Resolved configuration shared by every workflow component."""

    github_owner: str = "cue-lang"
    discussion_repository: str = "cue"
    graphql_url: str = "https://api.github.com/graphql"
    http_timeout: float = 30.0
    proposal_directory: str = "designs/"
    proposal_extension: str = ".md"
    draft_prefix: str = "xxxx-"
    proposal_blob_base: str = "https://github.com/cue-lang/proposal/blob/main/"
    review_change_base: str = "https://cue-review.googlesource.com/c/cue-lang/proposal/+/"
    review_query_base: str = "https://review.gerrithub.io/q/"
    review_host_marker: str = "gerrithub.io"
    dry_run_discussion_id: str = "1234"
    dry_run_review_id: str = "12345"
    dry_run_review_url: str = "https://review.gerrithub.io/c/cue-lang/proposal/+/12345"
    git_executable: str = "git"
    credential_command: Command = ("gh", "auth", "token")
    review_command: Command = ("git", "codereview", "mail")
    build_command: Command = ("cueckoo", "runtrybot")
    build_install_hint: str = "go install github.com/cue-lang/cueckoo/cmd/cueckoo@latest"
    summary_command: Command = ("claude",)
    summary_provider: str = "command"
    summary_model: str = ""
    precheck_commands: tuple[Command, ...] = field(default_factory=_default_prechecks)

    @property
    def discussions_base(self) -> str:
        return f"https://github.com/{self.github_owner}/{self.discussion_repository}/discussions"

    def discussion_url(self, number: str) -> str:
        return f"{self.discussions_base}/{number}"

    @classmethod
    def load(
        cls,
        repo_root: Path | None = None,
        *,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "PublishSettings":
        """Return settings merged from defaults, the YAML file and the environment."""

        settings = cls()
        path = config_path
        if path is None and repo_root is not None:
            candidate = repo_root / DEFAULT_CONFIG_FILENAME
            if candidate.exists():
                path = candidate
        if path is not None:
            settings = settings.merged(load_settings_file(path))
        return settings.merged(_overrides_from_env(os.environ if environ is None else environ))

    def merged(self, overrides: Mapping[str, Any]) -> "PublishSettings":
        """Return a copy with ``overrides`` coerced onto the declared field types."""

        known = {item.name for item in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                LOGGER.warning("Ignoring unknown setting %r", key)
                continue
            changes[key] = _coerce(key, getattr(self, key), value)
        return replace(self, **changes) if changes else self


def load_settings_file(path: Path) -> dict[str, Any]:
    """Parse the YAML settings file at ``path`` into a mapping."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read settings file {path}: {exc}") from exc

    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"settings file {path} is not valid YAML: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigurationError(f"settings file {path} must contain a mapping")
    return {str(key).replace("-", "_"): value for key, value in payload.items()}


def _overrides_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for item in fields(PublishSettings):
        raw_value = environ.get(f"{ENV_PREFIX}{item.name.upper()}")
        if raw_value is None or not raw_value.strip():
            continue
        if item.name == "http_timeout":
            try:
                timeout = float(raw_value)
            except ValueError:
                LOGGER.warning("Ignoring invalid timeout value in %s%s", ENV_PREFIX, item.name.upper())
                continue
            if timeout <= 0:
                LOGGER.warning("Ignoring non-positive timeout value in %s%s", ENV_PREFIX, item.name.upper())
                continue
        overrides[item.name] = raw_value
    return overrides


def _coerce(name: str, current: Any, value: Any) -> Any:
    if name == "precheck_commands":
        if isinstance(value, str):
            value = [line for line in value.split(";") if line.strip()]
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError("precheck_commands must be a list of commands")
        return tuple(_as_command(name, entry) for entry in value)
    if isinstance(current, tuple):
        return _as_command(name, value)
    if isinstance(current, float):
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if value is None:
        return ""
    return str(value)


def _as_command(name: str, value: Any) -> Command:
    if isinstance(value, str):
        parts = shlex.split(value)
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        raise ConfigurationError(f"{name} must be a command string or list, got {value!r}")
    if not parts:
        raise ConfigurationError(f"{name} must not be empty")
    return tuple(parts)


__all__ = ["DEFAULT_CONFIG_FILENAME", "PublishSettings", "load_settings_file"]
