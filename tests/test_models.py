"""Tests for data models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from fluxjp.core.models import DailyStat, Favorite, Item, ItemStatus, Level, Settings, ensure_utc


class TestItem:
    """Tests for the Item model."""

    def test_defaults(self):
        item = Item(word="水", meaning="water")

        assert item.status == ItemStatus.NEW
        assert item.interval == 0
        assert item.review_count == 0
        assert item.level == Level.N5
        assert item.due_date.tzinfo is not None

    def test_word_required(self):
        with pytest.raises(ValidationError):
            Item(word="", meaning="nothing")

    def test_legacy_field_names(self):
        item = Item.model_validate(
            {"kanji": "火", "kana": "ひ", "meaning": "fire", "partOfSpeech": "noun"}
        )

        assert item.word == "火"
        assert item.reading == "ひ"
        assert item.pos == "noun"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Review", ItemStatus.REVIEW),
            ("MASTERED", ItemStatus.MASTERED),
            (" leech ", ItemStatus.LEECH),
            ("new", ItemStatus.NEW),
        ],
    )
    def test_status_case_insensitive(self, raw, expected):
        assert Item(word="木", status=raw).status == expected

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            Item(word="木", status="forgotten-ish")

    def test_level_case_insensitive(self):
        assert Item(word="木", level="n3").level == Level.N3
        assert Item(word="木", level="elementary").level == Level.ELEMENTARY

    def test_epoch_millis_due_date(self):
        item = Item(word="金", dueDate=1_700_000_000_000)
        assert item.due_date == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_naive_due_date_is_utc(self):
        item = Item(word="金", due_date=datetime(2025, 1, 1, 9, 0))
        assert item.due_date == datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def test_offset_due_date_normalized(self):
        tokyo = timezone(timedelta(hours=9))
        item = Item(word="金", due_date=datetime(2025, 1, 1, 9, 0, tzinfo=tokyo))
        assert item.due_date.tzinfo == UTC
        assert item.due_date.hour == 0

    def test_legacy_infinite_interval(self):
        item = Item(word="土", status="mastered", interval=-1)
        assert item.interval == 0

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            Item(word="土", review_count=-2)

    def test_camel_case_dump(self):
        data = Item(word="月", sentence_meaning="moon").model_dump(by_alias=True)

        assert "sentenceMeaning" in data
        assert "dueDate" in data
        assert "reviewCount" in data

    def test_is_due(self):
        now = datetime(2025, 1, 1, tzinfo=UTC)
        assert Item(word="日", due_date=now).is_due(now)
        assert not Item(word="日", due_date=now + timedelta(seconds=1)).is_due(now)

    def test_key(self):
        assert Item(word="本", level=Level.N4).key == ("本", Level.N4)


class TestDailyStat:
    def test_legacy_counter_names(self):
        stat = DailyStat.model_validate(
            {"date": "2025-03-01", "newWordsLearned": 4, "studyTimeMinutes": 20}
        )

        assert stat.new_items_learned == 4
        assert stat.study_minutes == 20

    def test_date_normalized(self):
        assert DailyStat(date="2025-03-01T10:00:00Z").date == "2025-03-01"
        assert DailyStat(date=datetime(2025, 3, 1, 23, 0)).date == "2025-03-01"

    def test_bad_date_rejected(self):
        with pytest.raises(ValidationError):
            DailyStat(date="yesterday")

    def test_day(self):
        assert DailyStat(date="2025-03-01").day.isoformat() == "2025-03-01"


class TestFavorite:
    def test_legacy_word_id(self):
        favorite = Favorite.model_validate({"wordId": 12, "word": "花", "reading": "はな"})
        assert favorite.item_id == 12
        assert favorite.key == ("花", "はな")

    def test_epoch_millis_added_at(self):
        favorite = Favorite.model_validate({"word": "花", "addedAt": 0})
        assert favorite.added_at == datetime(1970, 1, 1, tzinfo=UTC)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.daily_new_limit == 20
        assert settings.theme == "light"

    def test_audio_speed_bounds(self):
        with pytest.raises(ValidationError):
            Settings(audio_speed=2.0)

    def test_unknown_theme(self):
        with pytest.raises(ValidationError):
            Settings(theme="sepia")


def test_ensure_utc_naive():
    assert ensure_utc(datetime(2025, 1, 1)).tzinfo == UTC
