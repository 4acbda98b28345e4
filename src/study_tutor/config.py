"""Configuration management for the tutor commands.

Settings live in ``tutor.toml`` inside the workspace ``config`` directory.
The file only needs to contain overrides; every key has a default and unknown
keys are rejected so typos surface early.
"""

from __future__ import annotations

import copy
import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from study_tutor.core import workspace

__all__ = [
    "CONFIG_PATH_ENV",
    "CONFIG_FILENAME",
    "ConfigError",
    "ModelConfig",
    "QuizConfig",
    "ChatConfig",
    "ProgressConfig",
    "LoggingConfig",
    "TutorConfig",
    "config_template",
    "default_tree",
    "load_config",
    "resolve_config_path",
    "write_template",
]


CONFIG_PATH_ENV = "STUDY_TUTOR_CONFIG"
CONFIG_FILENAME = "tutor.toml"


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ModelConfig:
    api_base: Optional[str]
    api_key_env: str
    chat_model: str
    quiz_model: str
    temperature: float
    max_output_tokens: int
    request_timeout_seconds: int


@dataclass(frozen=True)
class QuizConfig:
    show_explanations: bool


@dataclass(frozen=True)
class ChatConfig:
    session_list_limit: int


@dataclass(frozen=True)
class ProgressConfig:
    recent_attempts: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class TutorConfig:
    data_home_override: Optional[Path]
    model: ModelConfig
    quiz: QuizConfig
    chat: ChatConfig
    progress: ProgressConfig
    logging: LoggingConfig

    def layout(
        self, *, env: Mapping[str, str] | None = None
    ) -> workspace.WorkspaceLayout:
        """Return the workspace layout, honouring ``paths.data_home``."""

        try:
            return workspace.ensure_workspace(
                env=env, path=self.data_home_override
            )
        except workspace.WorkspaceError as exc:
            raise ConfigError(str(exc)) from exc


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Return the config path honouring explicit and env overrides."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if override:
        return Path(override).expanduser().resolve()
    try:
        layout = workspace.ensure_workspace(env=env_map)
    except workspace.WorkspaceError as exc:
        raise ConfigError(str(exc)) from exc
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    require_file: bool = False,
) -> TutorConfig:
    """Load the TOML config, applying defaults and validation.

    A missing file means "all defaults" unless ``require_file`` is set.
    """

    path = resolve_config_path(explicit_path=explicit_path, env=env)
    tree = default_tree()
    overrides = _read_toml(path, required=require_file)
    unknown = _apply_overrides(tree, overrides)
    if unknown:
        keys = ", ".join(f"'{key}'" for key in unknown)
        raise ConfigError(f"Unknown configuration key(s) in {path}: {keys}.")
    return _build_config(tree)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    """Write the commented template to ``path`` with owner-only access."""

    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=".tutor-", suffix=".toml"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(config_template())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except OSError as exc:
        raise ConfigError(f"Cannot write config {path}: {exc}") from exc
    return path


def _read_toml(path: Path, *, required: bool) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if not required:
            return {}
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc


def _apply_overrides(
    tree: Dict[str, Any], overrides: Mapping[str, Any], prefix: str = ""
) -> List[str]:
    """Copy ``overrides`` onto ``tree``; return the dotted unknown keys."""

    unknown: List[str] = []
    for key, value in overrides.items():
        dotted = prefix + key
        if key not in tree:
            unknown.append(dotted)
            continue
        if isinstance(tree[key], dict):
            if not isinstance(value, Mapping):
                raise ConfigError(f"'{dotted}' must be a table.")
            unknown.extend(_apply_overrides(tree[key], value, f"{dotted}."))
            continue
        tree[key] = value
    return unknown


def _build_config(tree: Mapping[str, Any]) -> TutorConfig:
    paths = tree["paths"]
    model = tree["model"]
    quiz = tree["quiz"]
    chat = tree["chat"]
    progress = tree["progress"]
    logging_section = tree["logging"]
    level = _require_string(logging_section["level"], field="logging.level")
    if level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(f"'logging.level' has unknown level '{level}'.")
    return TutorConfig(
        data_home_override=_optional_path(
            paths["data_home"], field="paths.data_home"
        ),
        model=ModelConfig(
            api_base=_optional_string(
                model["api_base"], field="model.api_base"
            ),
            api_key_env=_require_string(
                model["api_key_env"], field="model.api_key_env"
            ),
            chat_model=_require_string(
                model["chat_model"], field="model.chat_model"
            ),
            quiz_model=_require_string(
                model["quiz_model"], field="model.quiz_model"
            ),
            temperature=_require_float_range(
                model["temperature"],
                field="model.temperature",
                min_value=0.0,
                max_value=2.0,
            ),
            max_output_tokens=_require_positive_int(
                model["max_output_tokens"], field="model.max_output_tokens"
            ),
            request_timeout_seconds=_require_positive_int(
                model["request_timeout_seconds"],
                field="model.request_timeout_seconds",
            ),
        ),
        quiz=QuizConfig(
            show_explanations=_require_bool(
                quiz["show_explanations"], field="quiz.show_explanations"
            ),
        ),
        chat=ChatConfig(
            session_list_limit=_require_positive_int(
                chat["session_list_limit"], field="chat.session_list_limit"
            ),
        ),
        progress=ProgressConfig(
            recent_attempts=_require_positive_int(
                progress["recent_attempts"], field="progress.recent_attempts"
            ),
        ),
        logging=LoggingConfig(
            level=level.upper(),
            verbose=_require_bool(
                logging_section["verbose"], field="logging.verbose"
            ),
        ),
    )


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise ConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _optional_string(value: Any, *, field: str) -> Optional[str]:
    if value is None:
        return None
    return _require_string(value, field=field)


def _optional_path(value: Any, *, field: str) -> Optional[Path]:
    if value is None:
        return None
    return Path(_require_string(value, field=field)).expanduser().resolve()


_DEFAULTS: Dict[str, Any] = {
    "paths": {
        "data_home": None,
    },
    "model": {
        "api_base": "https://api.groq.com/openai/v1",
        "api_key_env": "GROQ_API_KEY",
        "chat_model": "llama-3.1-70b-versatile",
        "quiz_model": "llama3-8b-8192",
        "temperature": 0.7,
        "max_output_tokens": 1500,
        "request_timeout_seconds": 60,
    },
    "quiz": {
        "show_explanations": True,
    },
    "chat": {
        "session_list_limit": 20,
    },
    "progress": {
        "recent_attempts": 10,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# Study tutor configuration

[paths]
# Override the workspace root (~/.study-tutor-data)
# data_home = "~/my-tutor-data"

[model]
# Any OpenAI-compatible endpoint works; Groq is the default provider.
api_base = "https://api.groq.com/openai/v1"
# Environment variable (or .env entry) holding the API key
api_key_env = "GROQ_API_KEY"
# Model answering chat questions
chat_model = "llama-3.1-70b-versatile"
# Model producing quizzes
quiz_model = "llama3-8b-8192"
# Sampling temperature (0.0-2.0)
temperature = 0.7
max_output_tokens = 1500
request_timeout_seconds = 60

[quiz]
# Show explanations on the results screen
show_explanations = true

[chat]
# Number of sessions shown by `tutor chat --list`
session_list_limit = 20

[progress]
# Attempts listed by `tutor progress`
recent_attempts = 10

[logging]
level = "INFO"
verbose = false
"""
