"""Application configuration management.

Handles loading, validating and persisting configuration:
    - TOML/JSON config files
    - Environment variables (DAILYMAIL_* prefix)
    - Default values (never containing hosts or credentials)

Key components:
    - AppConfig: Main configuration model
    - MailSettings: The flat mail record (host, port, credentials, recipients)
    - load_config(): Safe config loading with fallback
    - save_config() / update_setting(): One-field edits persisted immediately
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_ENV_VAR = "DAILYMAIL_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "dailymail" / "config.json"
DEFAULT_SUBJECT_FORMAT = "Daily report ${YYYYMMDD}"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded, validated or saved."""


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class MailSettings(BaseModel):
    """Mail server, credentials and recipients.

    Recipient fields are kept as the comma-delimited strings the user typed;
    they are parsed at dispatch time.
    """

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(default="", description="SMTP server host name.")
    port: int = Field(default=0, description="SMTP server port.")
    secure: bool = Field(
        default=False,
        validation_alias=AliasChoices("ssl", "secure"),
        description="Use implicit TLS. When false, STARTTLS is used if offered.",
    )
    password: SecretStr = Field(default=SecretStr(""), description="SMTP password.")
    from_address: str = Field(
        default="", alias="from", description="Sender address, also the SMTP login."
    )
    to: str = Field(default="", description="Comma-delimited recipients.")
    cc: str = Field(default="", description="Comma-delimited carbon-copy recipients.")
    bcc: str = Field(default="", description="Comma-delimited blind-copy recipients.")
    subject_format: str = Field(
        default=DEFAULT_SUBJECT_FORMAT,
        alias="subjectFormat",
        description="Subject template; ${YYYYMMDD} is replaced with the report date.",
    )
    timeout: float = Field(default=30.0, gt=0, description="Socket timeout in seconds.")


class ScheduleConfig(BaseModel):
    """When the scheduler sends the report."""

    send_hour: int = Field(default=22, ge=0, le=23, description="Local hour to send at.")
    poll_interval_seconds: float = Field(
        default=60.0, gt=0, description="How often the scheduler checks the clock."
    )
    catch_up: bool = Field(
        default=False,
        description="Send later the same day if the target hour was missed.",
    )


class UserConfig(BaseModel):
    """Vault location and local state."""

    notes_dir: Path = Field(default_factory=lambda: Path.home() / "Notes" / "daily")
    work_marker: str = Field(default="## Work", description="Heading that starts the report.")
    state_file: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "dailymail" / "sent.json",
        description="Where the days already reported are recorded.",
    )
    log_level: str = Field(default="INFO", description="Log level for dailymail output.")

    @field_validator("work_marker")
    @classmethod
    def marker_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("work_marker must not be blank")
        return v


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="DAILYMAIL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    mail: MailSettings = Field(default_factory=MailSettings)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    user: UserConfig = Field(default_factory=UserConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


_GROUPS: dict[str, type[BaseModel]] = {
    "mail": MailSettings,
    "schedule": ScheduleConfig,
    "user": UserConfig,
}


def _accepted_names(field_name: str, info: FieldInfo) -> set[str]:
    names = {field_name}
    if info.alias:
        names.add(info.alias)
    if isinstance(info.validation_alias, AliasChoices):
        names.update(c for c in info.validation_alias.choices if isinstance(c, str))
    return names


def _env_names(field_name: str, info: FieldInfo) -> set[str]:
    # Env keys are matched lowercased, so camelCase aliases never match.
    return {name for name in _accepted_names(field_name, info) if name == name.lower()}


def _normalize_file_data(data: dict[str, Any]) -> dict[str, Any]:
    """Rename aliased keys (`from`, `subjectFormat`, `ssl`) to field names.

    Environment values arrive under field names and must not lose to a
    file entry spelled with the alias.
    """
    normalized = dict(data)
    for group, model_cls in _GROUPS.items():
        values = data.get(group)
        if not isinstance(values, dict):
            continue
        normalized[group] = {
            _resolve_field(model_cls, key) or key: value for key, value in values.items()
        }
    return normalized


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    For nested models, detects vars like DAILYMAIL_MAIL__PASSWORD, and the
    lowercase aliases such as DAILYMAIL_MAIL__FROM.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    overrides: set[str] = set()

    for group_name, model_cls in _GROUPS.items():
        for field_name, info in model_cls.model_fields.items():
            for name in _env_names(field_name, info):
                if f"{prefix}{group_name}{delimiter}{name}".upper() in env_vars:
                    overrides.add(f"{group_name}.{field_name}")

    return overrides


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _normalize_file_data(_read_config_file(resolved_path))
        file_loaded = resolved_path.exists()
    except ConfigError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = AppConfig()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result


# -----------------------------------------------------------------------------
# Persistence
# -----------------------------------------------------------------------------


def config_to_dict(config: AppConfig, *, reveal_secrets: bool = True) -> dict[str, Any]:
    """Serialize config using the persisted key names (`from`, `subjectFormat`)."""
    data = config.model_dump(mode="json", by_alias=True)
    if reveal_secrets:
        data["mail"]["password"] = config.mail.password.get_secret_value()
    return data


def save_config(config: AppConfig, path: Path) -> Path:
    """Write the full configuration to `path` as JSON, replacing the previous file.

    TOML config files are read but never rewritten. The file holds the SMTP
    password verbatim and is created owner-readable only.
    """
    target = path.expanduser()
    if target.suffix.lower() == ".toml":
        raise ConfigError(
            f"Cannot save settings to {target}: TOML config files are read-only. "
            "Point --config at a .json file to edit settings."
        )
    content = json.dumps(config_to_dict(config), indent=2, ensure_ascii=False) + "\n"

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_text(content, encoding="utf-8")
        tmp.chmod(0o600)
        tmp.replace(target)
    except OSError as exc:
        raise ConfigError(f"Cannot write config {target}: {exc}") from exc
    return target


def _resolve_field(model_cls: type[BaseModel], name: str) -> str | None:
    for field_name, info in model_cls.model_fields.items():
        if name in _accepted_names(field_name, info):
            return field_name
    return None


def setting_keys() -> list[str]:
    """Every dotted key accepted by update_setting, in declaration order."""
    return [f"{group}.{field}" for group, cls in _GROUPS.items() for field in cls.model_fields]


def update_setting(config: AppConfig, key: str, value: str) -> AppConfig:
    """Return a copy of `config` with one field changed.

    `key` is dotted (`mail.port`, `schedule.send_hour`); a bare key refers to
    the mail record, so `port` and `from` work as well.
    """
    group, _, name = key.partition(".")
    if not name:
        group, name = "mail", group

    model_cls = _GROUPS.get(group)
    field_name = _resolve_field(model_cls, name) if model_cls else None
    if model_cls is None or field_name is None:
        raise ConfigError(f"Unknown setting '{key}'. Known settings: {', '.join(setting_keys())}")

    data = getattr(config, group).model_dump()
    data[field_name] = value
    try:
        updated = model_cls.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for {group}.{field_name}: {exc}") from exc

    return config.model_copy(update={group: updated})
