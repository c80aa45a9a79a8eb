"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
Each entry point builds its own ``Settings`` via ``load_settings()`` and
passes it explicitly to the components that need it.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from yieldledger.config.business_constants import (
    MINIMUM_DEPOSIT_AMOUNT,
    SIGNUP_BALANCE,
)


PAYOUT_DISPATCH_MODES = ("inline", "queue")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    # Static principals (token issuance lives outside this service)
    admin_api_token: SecretStr
    system_api_token: SecretStr

    # Payout schedule
    payout_timezone: str = "Africa/Luanda"
    payout_cron_hour: int = Field(default=0, ge=0, le=23)
    payout_cron_minute: int = Field(default=0, ge=0, le=59)
    payout_misfire_grace_seconds: int = Field(default=3600, gt=0)
    payout_dispatch: str = Field(
        default="inline",
        description="inline: run engine in the scheduler process; queue: enqueue dramatiq actor",
    )

    # Redis (dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Atomic unit bounds
    transaction_max_wait_seconds: float = Field(
        default=10.0, gt=0, description="Maximum wait for row locks inside a unit"
    )
    transaction_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Overall timeout for one atomic unit"
    )

    # Business limits
    signup_balance: int = Field(default=SIGNUP_BALANCE, ge=0)
    minimum_deposit_amount: int = Field(default=MINIMUM_DEPOSIT_AMOUNT, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("payout_dispatch")
    @classmethod
    def validate_payout_dispatch(cls, v: str) -> str:
        """Restrict dispatch mode to known values."""
        v = v.strip().lower()
        if v not in PAYOUT_DISPATCH_MODES:
            raise ValueError(
                f"PAYOUT_DISPATCH must be one of {', '.join(PAYOUT_DISPATCH_MODES)}"
            )
        return v

    @field_validator("payout_timezone")
    @classmethod
    def validate_payout_timezone(cls, v: str) -> str:
        """Validate IANA timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown PAYOUT_TIMEZONE: {v}") from e
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )

            for name in ("admin_api_token", "system_api_token"):
                secret: SecretStr = getattr(self, name)
                if len(secret.get_secret_value()) < 32:
                    raise ValueError(
                        f"{name.upper()} must be at least 32 characters in "
                        "production. Generate one with: openssl rand -hex 32"
                    )

            if (
                self.admin_api_token.get_secret_value()
                == self.system_api_token.get_secret_value()
            ):
                raise ValueError(
                    "ADMIN_API_TOKEN and SYSTEM_API_TOKEN must differ"
                )
        return self

    @property
    def tz(self) -> ZoneInfo:
        """Payout timezone as ZoneInfo."""
        return ZoneInfo(self.payout_timezone)

    @property
    def is_postgres(self) -> bool:
        """True when the database URL targets PostgreSQL."""
        return self.database_url.startswith("postgresql")


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment.

    Args:
        **overrides: Explicit values taking precedence over the environment

    Returns:
        Settings instance
    """
    return Settings(**overrides)
