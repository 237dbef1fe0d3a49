from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/prepigo/config.toml",
        Path.home() / ".prepigo.toml",
    ]


class AppConfig(BaseSettings):
    """
    Runtime configuration for prepigo.
    Supports loading from:
    1. Environment variables (PREPIGO_*)
    2. Config file (~/.config/prepigo/config.toml or ~/.prepigo.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="PREPIGO_",
        extra="ignore",
    )

    # Paths
    collection_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/prepigo/logs")

    # Session
    seed: int | None = None  # Fixed shuffle seed for reproducible queues
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

        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources win: CLI overrides, then env, then the TOML file
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

    @field_validator("collection_path", mode="before")
    @classmethod
    def resolve_collection_path(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/prepigo/config.toml (if exists)
    3. Environment variables (PREPIGO_*)
    4. cli_overrides (passed from Typer, None values already dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.collection_path is None:
        config.collection_path = (Path.cwd() / "collection.yaml").resolve()

    return config
