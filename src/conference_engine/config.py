import logging
from datetime import time

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings"""

    model_config = SettingsConfigDict(
        env_prefix="CONFERENCE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    database_url: str = Field(
        default="sqlite:///conference_engine.db",
        description="SQLAlchemy URL used by the SQL-backed repository",
    )
    debug: bool = False
    log_level: str = Field(
        default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )

    # Program generation
    max_submissions_per_session: int = Field(default=6, ge=1)
    max_sessions_per_day: int = Field(default=2, ge=1, le=2)
    morning_slot_start: time = time(9, 0)
    morning_slot_end: time = time(12, 0)
    afternoon_slot_start: time = time(14, 0)
    afternoon_slot_end: time = time(17, 0)
    break_start: time = time(12, 0)
    break_end: time = time(14, 0)
    morning_room: str = "Room A"
    afternoon_room: str = "Room B"
    break_title: str = "Lunch"
    untopiced_title: str = "General Session"
    topic_title_template: str = "Session: {topic_name}"

    # Notification links
    review_link: str = "/review"
    program_link: str = "/program"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment"""
        return v.upper() if isinstance(v, str) else v

    @property
    def slot_plan(self) -> list[tuple[time, time, str]]:
        """Ordered (start, end, room) slots available on each program day"""
        slots = [
            (self.morning_slot_start, self.morning_slot_end, self.morning_room),
            (self.afternoon_slot_start, self.afternoon_slot_end, self.afternoon_room),
        ]
        return slots[: self.max_sessions_per_day]


def configure_logging(config: Settings | None = None) -> None:
    """Configure root logging from settings"""
    config = config or settings
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Global settings instance
settings = Settings()
