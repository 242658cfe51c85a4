from __future__ import annotations

from pathlib import Path

import pytest

from proposal_publisher.models.errors import ConfigurationError
from proposal_publisher.services.settings import DEFAULT_CONFIG_FILENAME, PublishSettings, load_settings_file


def test_defaults_target_cue_repositories() -> None:
    settings = PublishSettings.load(environ={})

    assert settings.discussion_url("1234") == "https://github.com/cue-lang/cue/discussions/1234"
    assert settings.review_command == ("git", "codereview", "mail")
    assert settings.build_command == ("cueckoo", "runtrybot")
    assert settings.precheck_commands[0] == ("go", "test", "./...")


def test_yaml_file_in_repository_is_applied(tmp_path: Path) -> None:
    (tmp_path / DEFAULT_CONFIG_FILENAME).write_text(
        "github-owner: example\n"
        "discussion_repository: ideas\n"
        "http_timeout: 5\n"
        "build_command: ./run-ci --fast\n"
        "precheck_commands:\n"
        "  - [make, test]\n"
        "  - make lint\n",
        encoding="utf-8",
    )

    settings = PublishSettings.load(tmp_path, environ={})

    assert settings.discussions_base == "https://github.com/example/ideas/discussions"
    assert settings.http_timeout == 5.0
    assert settings.build_command == ("./run-ci", "--fast")
    assert settings.precheck_commands == (("make", "test"), ("make", "lint"))


def test_environment_overrides_file(tmp_path: Path) -> None:
    config = tmp_path / "custom.yaml"
    config.write_text("github_owner: from-file\nsummary_provider: openai\n", encoding="utf-8")

    settings = PublishSettings.load(
        config_path=config,
        environ={"PUBLISH_GITHUB_OWNER": "from-env", "PUBLISH_SUMMARY_COMMAND": "llm -m small"},
    )

    assert settings.github_owner == "from-env"
    assert settings.summary_provider == "openai"
    assert settings.summary_command == ("llm", "-m", "small")


@pytest.mark.parametrize("value", ["soon", "-1", "0"])
def test_invalid_timeout_environment_is_ignored(value: str, caplog: pytest.LogCaptureFixture) -> None:
    settings = PublishSettings.load(environ={"PUBLISH_HTTP_TIMEOUT": value})

    assert settings.http_timeout == 30.0
    assert "timeout" in caplog.text


def test_unknown_keys_are_ignored(caplog: pytest.LogCaptureFixture) -> None:
    settings = PublishSettings().merged({"colour": "blue"})

    assert settings == PublishSettings()
    assert "Ignoring unknown setting 'colour'" in caplog.text


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("github_owner: [unterminated\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings_file(path)


def test_non_mapping_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings_file(path)


def test_empty_command_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        PublishSettings().merged({"review_command": ""})
