"""Pydantic models for vocabulary items and study records."""

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ItemStatus(StrEnum):
    """Review status of an item."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"
    LEECH = "leech"

    @classmethod
    def _missing_(cls, value):
        # Older exports wrote "Review", "MASTERED" and friends.
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class Level(StrEnum):
    """Proficiency level a vocabulary item belongs to."""

    N5 = "N5"
    N4 = "N4"
    N3 = "N3"
    N2 = "N2"
    N1 = "N1"
    ELEMENTARY = "Elementary"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            cleaned = value.strip()
            for member in cls:
                if member.value.lower() == cleaned.lower():
                    return member
        return None


class FluxModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class Item(FluxModel):
    """A learnable vocabulary entry and its scheduling state."""

    id: int | None = None

    # Natural key is (word, level)
    word: str = Field(validation_alias=AliasChoices("word", "kanji"), min_length=1)
    reading: str = Field(default="", validation_alias=AliasChoices("reading", "kana"))
    meaning: str = ""
    pos: str = Field(default="", validation_alias=AliasChoices("pos", "partOfSpeech"))
    level: Level = Level.N5

    # Rich content, never touched by the scheduler
    sentence: str | None = None
    sentence_meaning: str | None = None
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    mnemonic: str | None = None

    # Scheduling state
    status: ItemStatus = ItemStatus.NEW
    interval: int = Field(default=0, ge=0)
    due_date: datetime = Field(default_factory=utcnow)
    review_count: int = Field(default=0, ge=0)
    leech_count: int = Field(default=0, ge=0)
    ease_factor: float = 2.5  # legacy, kept so old backups round-trip

    @field_validator("due_date", mode="before")
    @classmethod
    def _coerce_due_date(cls, value: Any) -> Any:
        # Legacy exports store epoch milliseconds
        if isinstance(value, int | float) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000, UTC)
        return value

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> Any:
        # Legacy mastered items carry -1 ("infinite")
        if isinstance(value, int | float) and value < 0:
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def key(self) -> tuple[str, Level]:
        """Natural key used to match items across snapshots."""
        return (self.word, self.level)

    def is_due(self, now: datetime) -> bool:
        """Whether the item's due date has passed at ``now``."""
        return self.due_date <= now


class DailyStat(FluxModel):
    """Aggregate counters for one calendar day."""

    date: str
    review_count: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    new_items_learned: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("new_items_learned", "newItemsLearned", "newWordsLearned"),
    )
    study_minutes: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("study_minutes", "studyMinutes", "studyTimeMinutes"),
    )

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            return date.fromisoformat(value.strip()[:10]).isoformat()
        return value

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)


class Favorite(FluxModel):
    """A user-curated pointer to an item with a display snapshot."""

    id: int | None = None
    item_id: int | None = Field(default=None, validation_alias=AliasChoices("item_id", "itemId", "wordId"))
    word: str = Field(min_length=1)
    reading: str = ""
    meaning: str = ""
    added_at: datetime = Field(default_factory=utcnow)

    @field_validator("added_at", mode="before")
    @classmethod
    def _coerce_added_at(cls, value: Any) -> Any:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000, UTC)
        return value

    @property
    def key(self) -> tuple[str, str]:
        return (self.word, self.reading)


class Settings(FluxModel):
    """Per-user study preferences."""

    daily_new_limit: int = Field(default=20, ge=0)
    auto_audio: bool = False
    audio_speed: float = Field(default=1.0, ge=0.5, le=1.5)
    theme: Literal["light", "dark"] = "light"
    selected_book: Level | None = None
