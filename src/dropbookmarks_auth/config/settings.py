"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, SecretStr, StringConstraints, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
BcryptRounds = Annotated[int, Field(ge=4, le=31)]

DEFAULT_AUTH_REALM = "dropbookmarks"


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    auth_realm: NonEmptyStr = Field(default=DEFAULT_AUTH_REALM, validation_alias="AUTH_REALM")
    bcrypt_rounds: BcryptRounds = Field(default=12, validation_alias="BCRYPT_ROUNDS")
    bootstrap_username: TrimmedStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_USERNAME",
    )
    bootstrap_password: SecretStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_PASSWORD",
    )
    bootstrap_password_file: Path | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_PASSWORD_FILE",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _resolve_bootstrap_password(self) -> "Settings":
        """Pair the bootstrap username with exactly one non-blank password source.

        A password file is read once here and replaces it as `bootstrap_password`.
        """

        has_password = self.bootstrap_password is not None
        has_file = self.bootstrap_password_file is not None
        if self.bootstrap_username is None:
            if has_password or has_file:
                raise ValueError("BOOTSTRAP_USERNAME is required with a bootstrap password")
            return self
        if has_password and has_file:
            raise ValueError("set only one of BOOTSTRAP_PASSWORD or BOOTSTRAP_PASSWORD_FILE")

        if self.bootstrap_password_file is not None:
            try:
                secret = self.bootstrap_password_file.read_text(encoding="utf-8")
            except OSError as exc:
                raise ValueError("failed to read BOOTSTRAP_PASSWORD_FILE") from exc
        elif self.bootstrap_password is not None:
            secret = self.bootstrap_password.get_secret_value()
        else:
            raise ValueError("BOOTSTRAP_USERNAME requires a bootstrap password")

        if not secret.strip():
            raise ValueError("bootstrap password cannot be blank")
        self.bootstrap_password = SecretStr(secret.strip())
        return self


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
