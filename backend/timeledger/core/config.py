import re

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from timeledger.schemas.ledger import LedgerConfig, Position

_DURATION_HM_RE = re.compile(r"^(\d+)\s*h(?:\s*(\d+)\s*m?)?$", re.IGNORECASE)
_DURATION_COLON_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_WINDOW_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})$")


def parse_work_duration(value: str) -> int:
    """
    Parse a daily work duration into minutes.

    Accepts "8h", "7h 36m", "7h36m", "7h36", "07:36" and a bare hour count "8".
    """
    text = value.strip()
    match = _DURATION_HM_RE.match(text)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2) or 0)
    match = _DURATION_COLON_RE.match(text)
    if match:
        minutes = int(match.group(2))
        if minutes >= 60:
            raise ValueError(f"Invalid work duration '{value}'")
        return int(match.group(1)) * 60 + minutes
    if text.isdigit():
        return int(text) * 60
    raise ValueError(f"Invalid work duration '{value}'")


def parse_lunch_window(value: str) -> tuple[int, int]:
    """Parse "HH:MM-HH:MM" into (start, end) minutes from midnight."""
    match = _WINDOW_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid lunch window '{value}'")
    sh, sm, eh, em = (int(part) for part in match.groups())
    if sh > 23 or eh > 23 or sm > 59 or em > 59:
        raise ValueError(f"Invalid lunch window '{value}'")
    start, end = sh * 60 + sm, eh * 60 + em
    if end <= start:
        raise ValueError(f"Lunch window '{value}' must end after it starts")
    return start, end


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite+aiosqlite:///./timeledger.sqlite"

    DEFAULT_POSITION: str = "O"
    MIN_WORK_DURATION: str = "8h"
    LUNCH_WINDOW: str = "12:30-14:00"
    MIN_LUNCH_MINUTES: int = Field(default=30, ge=0)
    MAX_LUNCH_MINUTES: int = Field(default=90, ge=0)

    # Deduct MIN_LUNCH_MINUTES from pairs spanning the whole lunch window with no lunch recorded
    AUTO_LUNCH: bool = True
    # Reject writes whose lunch falls outside the bounds instead of only warning
    ENFORCE_LUNCH_BOUNDS: bool = False

    @field_validator("DEFAULT_POSITION")
    @classmethod
    def valid_position(cls, v: str) -> str:
        return Position.from_code(v).value

    @field_validator("MIN_WORK_DURATION")
    @classmethod
    def valid_duration(cls, v: str) -> str:
        parse_work_duration(v)
        return v.strip()

    @field_validator("LUNCH_WINDOW")
    @classmethod
    def valid_window(cls, v: str) -> str:
        parse_lunch_window(v)
        return v.strip()

    @model_validator(mode="after")
    def lunch_bounds_ordered(self) -> "Settings":
        if self.MAX_LUNCH_MINUTES < self.MIN_LUNCH_MINUTES:
            raise ValueError("MAX_LUNCH_MINUTES must not be lower than MIN_LUNCH_MINUTES")
        return self


def ledger_config(source: Settings | None = None) -> LedgerConfig:
    """Build the engine configuration from settings."""
    cfg = source or settings
    window_start, window_end = parse_lunch_window(cfg.LUNCH_WINDOW)
    return LedgerConfig(
        default_position=Position.from_code(cfg.DEFAULT_POSITION),
        work_duration_minutes=parse_work_duration(cfg.MIN_WORK_DURATION),
        min_lunch_minutes=cfg.MIN_LUNCH_MINUTES,
        max_lunch_minutes=cfg.MAX_LUNCH_MINUTES,
        lunch_window_start=window_start,
        lunch_window_end=window_end,
        auto_lunch=cfg.AUTO_LUNCH,
    )


settings = Settings()
