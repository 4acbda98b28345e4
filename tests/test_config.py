from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from study_tutor import config as config_mod


def _write(path: Path, content: str) -> Path:
    path.write_text(content.strip() + "\n", encoding="utf-8")
    return path


def test_defaults_when_file_missing(tmp_path):
    cfg = config_mod.load_config(explicit_path=tmp_path / "absent.toml")

    assert cfg.model.api_base == "https://api.groq.com/openai/v1"
    assert cfg.model.api_key_env == "GROQ_API_KEY"
    assert cfg.model.chat_model == "llama-3.1-70b-versatile"
    assert cfg.model.quiz_model == "llama3-8b-8192"
    assert cfg.quiz.show_explanations is True
    assert cfg.progress.recent_attempts == 10
    assert cfg.logging.level == "INFO"
    assert cfg.data_home_override is None


def test_require_file_reports_missing(tmp_path):
    with pytest.raises(config_mod.ConfigError):
        config_mod.load_config(
            explicit_path=tmp_path / "absent.toml", require_file=True
        )


def test_overrides_merge_onto_defaults(tmp_path):
    path = _write(
        tmp_path / "tutor.toml",
        """
        [model]
        chat_model = "mixtral"
        temperature = 0.1

        [logging]
        level = "debug"
        """,
    )

    cfg = config_mod.load_config(explicit_path=path)

    assert cfg.model.chat_model == "mixtral"
    assert cfg.model.temperature == 0.1
    assert cfg.model.quiz_model == "llama3-8b-8192"
    assert cfg.logging.level == "DEBUG"


@pytest.mark.parametrize(
    "content",
    [
        "[model]\nunknown_key = 1",
        "[nonsense]\nvalue = true",
        "[model]\ntemperature = 3.5",
        "[model]\nmax_output_tokens = 0",
        "[quiz]\nshow_explanations = \"yes\"",
        "[logging]\nlevel = \"LOUD\"",
        "[chat]\nsession_list_limit = true",
        "not = [valid",
    ],
)
def test_invalid_config_is_rejected(tmp_path, content):
    path = _write(tmp_path / "tutor.toml", content)
    with pytest.raises(config_mod.ConfigError):
        config_mod.load_config(explicit_path=path)


def test_env_override_selects_config_path(tmp_path):
    target = tmp_path / "elsewhere.toml"
    resolved = config_mod.resolve_config_path(
        env={config_mod.CONFIG_PATH_ENV: str(target)}
    )
    assert resolved == target.resolve()


def test_default_path_lives_in_workspace_config(tmp_path):
    env = {"STUDY_TUTOR_DATA_HOME": str(tmp_path / "data")}
    resolved = config_mod.resolve_config_path(env=env)
    assert resolved == (tmp_path / "data").resolve() / "config" / "tutor.toml"


def test_data_home_override_drives_layout(tmp_path):
    path = _write(
        tmp_path / "tutor.toml",
        f'[paths]\ndata_home = "{(tmp_path / "custom").as_posix()}"',
    )
    cfg = config_mod.load_config(explicit_path=path)

    layout = cfg.layout(env={})

    assert layout.home == (tmp_path / "custom").resolve()
    assert layout.path_for("store").is_dir()


def test_template_parses_and_matches_defaults():
    data = tomllib.loads(config_mod.config_template())
    defaults = config_mod.default_tree()
    assert data["model"] == defaults["model"]
    assert data["quiz"] == defaults["quiz"]


def test_write_template_honours_overwrite(tmp_path):
    target = tmp_path / "tutor.toml"
    config_mod.write_template(target)
    with pytest.raises(config_mod.ConfigError):
        config_mod.write_template(target)
    config_mod.write_template(target, overwrite=True)
    assert config_mod.load_config(explicit_path=target, require_file=True)


def test_all_unknown_keys_reported_together(tmp_path):
    path = _write(
        tmp_path / "tutor.toml",
        """
        typo = 1

        [model]
        chat_modle = "x"
        """,
    )
    with pytest.raises(config_mod.ConfigError) as exc:
        config_mod.load_config(explicit_path=path)
    assert "'typo'" in str(exc.value)
    assert "'model.chat_modle'" in str(exc.value)


def test_scalar_in_place_of_table_is_rejected(tmp_path):
    path = _write(tmp_path / "tutor.toml", 'model = "fast"')
    with pytest.raises(config_mod.ConfigError, match="must be a table"):
        config_mod.load_config(explicit_path=path)


def test_written_template_is_private(tmp_path):
    target = config_mod.write_template(tmp_path / "nested" / "tutor.toml")
    assert target.stat().st_mode & 0o777 == 0o600
    assert [p.name for p in target.parent.iterdir()] == ["tutor.toml"]
