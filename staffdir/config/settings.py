"""Application configuration settings."""

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass
class PaginationSettings:
    """Pagination configuration for employee listings."""

    default_page_size: int = 20
    max_page_size: int = 100


@dataclass
class OnboardingSettings:
    """Settings applied when a new hire's login is created."""

    # Initial password for new users; they must change it at first login
    default_password: str = "securepassword123"

    # bcrypt work factor (minimum 4)
    bcrypt_rounds: int = 12


@dataclass
class Settings:
    """Main application settings."""

    # Application info
    app_name: str = "Staff Directory API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = ""
    create_tables: bool = False

    pagination: PaginationSettings = field(default_factory=PaginationSettings)
    onboarding: OnboardingSettings = field(default_factory=OnboardingSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "Staff Directory API"),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            database_url=os.getenv(
                "DATABASE_URL",
                f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', '')}@"
                f"{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}/"
                f"{os.getenv('DB_NAME', 'staffdir')}"
            ),
            create_tables=os.getenv("DB_CREATE_TABLES", "false").lower() == "true",
            pagination=PaginationSettings(
                default_page_size=int(os.getenv("PAGINATION_DEFAULT_SIZE", "20")),
                max_page_size=int(os.getenv("PAGINATION_MAX_SIZE", "100")),
            ),
            onboarding=OnboardingSettings(
                default_password=os.getenv("DEFAULT_EMPLOYEE_PASSWORD", "securepassword123"),
                bcrypt_rounds=max(4, int(os.getenv("BCRYPT_ROUNDS", "12"))),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings.from_env()


def reset_settings() -> None:
    """Reset settings (for testing)."""
    get_settings.cache_clear()
