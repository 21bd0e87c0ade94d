"""Bingo server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from bingo.logic.settings import CARD_SIZE, GameSettings
from shared.auth.operator_token import DEFAULT_TOKEN_TTL_SECONDS
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class BingoServerSettings(BaseSettings):
    model_config = {"env_prefix": "BINGO_", "populate_by_name": True}

    # Shared operator secret -- required, no default.
    # The application fails to start if BINGO_OPERATOR_PASSWORD is not set.
    operator_password: str = Field(min_length=1)
    operator_token_ttl_seconds: int = Field(default=DEFAULT_TOKEN_TTL_SECONDS, ge=60)

    log_dir: str = Field(default="backend/logs/bingo", min_length=1)
    cors_origins: list[str] = ["http://localhost:8080"]

    # Terms loaded into the registry at startup (JSON array or comma-separated).
    # BINGO_TERMS is accepted as a shorter alias.
    initial_terms: list[str] = Field(
        default=[],
        validation_alias=AliasChoices("BINGO_INITIAL_TERMS", "BINGO_TERMS", "initial_terms"),
    )

    card_size: int = Field(default=CARD_SIZE, ge=1)
    spam_threshold: int = Field(default=4, ge=1)
    spam_window_seconds: float = Field(default=4.0, gt=0)
    provisional_fade_seconds: float = Field(default=10.0, gt=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @field_validator("initial_terms", mode="before")
    @classmethod
    def validate_initial_terms(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    def game_settings(self) -> GameSettings:
        return GameSettings(
            card_size=self.card_size,
            spam_threshold=self.spam_threshold,
            spam_window_seconds=self.spam_window_seconds,
            provisional_fade_seconds=self.provisional_fade_seconds,
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
