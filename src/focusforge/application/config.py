from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from focusforge.domain.constants import (
    DATA_FILE_NAME,
    DEFAULT_TIMEZONE,
    FIRESTORE_URL,
    REQUEST_TIMEOUT,
)


def config_file() -> Path:
    return Path.home() / ".config/focusforge/config.toml"


class AppConfig(BaseSettings):
    """
    Configuration model for focusforge.
    Supports loading from:
    1. Config file (~/.config/focusforge/config.toml)
    2. Environment variables (FOCUSFORGE_*)
    3. Manual overrides (CLI / HTTP)
    """

    model_config = SettingsConfigDict(
        env_prefix="FOCUSFORGE_",
        extra="ignore",
    )

    # Storage
    backend: Literal["local", "firestore"] = "local"
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".config/focusforge" / DATA_FILE_NAME
    )

    # Firestore (hosted document store)
    firestore_url: str = FIRESTORE_URL
    firestore_project: str | None = None
    firestore_app_id: str = "default-app-id"
    firestore_user_id: str | None = None
    firestore_api_key: str | None = None
    firestore_token: str | None = None
    request_timeout: float = REQUEST_TIMEOUT

    # Calendar zone used for "today"
    timezone: str = DEFAULT_TIMEZONE

    # Logging: 1 = warnings, 2 = info, 3+ = debug
    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Earlier sources win: overrides, then env, then the TOML file
        toml_file = config_file()
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", mode="before")
    @classmethod
    def resolve_data_file(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/focusforge/config.toml (if exists)
    3. Environment variables (FOCUSFORGE_*)
    4. cli_overrides (non-None values only)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
