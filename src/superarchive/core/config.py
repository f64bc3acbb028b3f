# superarchive/src/superarchive/core/config.py

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Temporary storage root, honouring the usual TMPDIR override.
    tmpdir: Path = Field(default=Path("/tmp"), validation_alias=AliasChoices("TMPDIR", "tmpdir"))
    git_executable: str = Field(
        default="git", validation_alias=AliasChoices("SUPERARCHIVE_GIT", "git_executable")
    )
    log_level: str = Field(
        default="WARNING", validation_alias=AliasChoices("SUPERARCHIVE_LOG_LEVEL", "log_level")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )


# Instantiate settings
settings = Settings()
