from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cadence.domain.constants import (
    DEFAULT_FORECAST_DAYS,
    DEFAULT_SESSION_LIMIT,
    RETENTION_SAMPLE_SIZE,
    STATS_WINDOW_HOURS,
)

CONFIG_FILES = [
    Path.home() / ".config/cadence/config.toml",
    Path.home() / ".cadence.toml",
]


class CadenceConfig(BaseSettings):
    """
    Configuration model for cadence.
    Supports loading from:
    1. Environment variables (CADENCE_*)
    2. Config file (~/.config/cadence/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        extra="ignore",
    )

    # Storage
    ledger_path: Path | None = None

    # Sessions
    session_limit: int = Field(default=DEFAULT_SESSION_LIMIT, ge=0)

    # Analytics
    forecast_days: int = Field(default=DEFAULT_FORECAST_DAYS, ge=1)
    stats_window_hours: float = Field(default=STATS_WINDOW_HOURS, gt=0)
    retention_sample_size: int = Field(default=RETENTION_SAMPLE_SIZE, ge=1)

    # 0 = warnings only, 1 = info, 2+ = debug
    verbose: int = Field(default=0, ge=0)

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

        # First existing file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("ledger_path", mode="before")
    @classmethod
    def resolve_ledger_path(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> CadenceConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in CadenceConfig
    2. ~/.config/cadence/config.toml (if exists)
    3. Environment variables (CADENCE_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return CadenceConfig(**overrides)
