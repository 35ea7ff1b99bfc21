"""Tests for bulk word-list import."""

import asyncio
import tempfile
from pathlib import Path

import pytest

from fluxjp.core.importer import import_items, normalize_record
from fluxjp.core.models import Item, ItemStatus, Level
from fluxjp.core.storage import VocabDatabase


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db(temp_dir):
    return VocabDatabase(temp_dir / "fluxjp.db")


def _import(db, records, **kwargs):
    return asyncio.run(import_items(db, records, **kwargs))


class TestNormalize:
    def test_simple_shape(self):
        fields = normalize_record(
            {"kanji": "学校", "kana": "がっこう", "meaning": "school", "level": "N4"}
        )

        assert fields["word"] == "学校"
        assert fields["reading"] == "がっこう"
        assert fields["meaning"] == "school"
        assert fields["level"] == "N4"

    def test_jmdict_shape(self):
        record = {
            "kanji": [{"text": "医者"}],
            "kana": [{"text": "いしゃ"}],
            "sense": [{"gloss": [{"text": "doctor"}, {"text": "physician"}]}],
        }

        fields = normalize_record(record, default_level=Level.N5)

        assert fields["word"] == "医者"
        assert fields["reading"] == "いしゃ"
        assert fields["meaning"] == "doctor; physician"
        assert fields["level"] == Level.N5

    def test_jmdict_kana_only(self):
        record = {"kanji": [], "kana": [{"text": "これ"}], "sense": [{"gloss": ["this"]}]}

        fields = normalize_record(record)

        assert fields["word"] == "これ"
        assert fields["meaning"] == "this"

    def test_term_shape(self):
        fields = normalize_record({"term": "駅", "reading": "えき", "meaning": "station"})
        assert fields["word"] == "駅"

    @pytest.mark.parametrize("record", [None, "text", 42, {}, {"term": ""}])
    def test_unrecognized(self, record):
        assert normalize_record(record) is None


class TestImport:
    def test_adds_new_items(self, db):
        records = [
            {"kanji": "山", "kana": "やま", "meaning": "mountain"},
            {"kanji": "川", "kana": "かわ", "meaning": "river", "level": "N4"},
        ]

        report = _import(db, records)

        assert report.added == 2
        items = db.list_items()
        assert {i.word for i in items} == {"山", "川"}
        assert all(i.status == ItemStatus.NEW for i in items)
        assert db.find_by_key("川", Level.N4) is not None

    def test_default_level(self, db):
        _import(db, [{"kanji": "海", "meaning": "sea"}], default_level=Level.N2)
        assert db.find_by_key("海", Level.N2) is not None

    def test_skips_rows_without_meaning(self, db):
        report = _import(db, [{"kanji": "空"}, "junk", {"kanji": "", "meaning": "x"}])

        assert report.added == 0
        assert report.skipped == 3

    def test_duplicates_within_and_across_imports(self, db):
        db.upsert([Item(word="山", meaning="mountain")])
        records = [
            {"kanji": "山", "meaning": "mountain"},
            {"kanji": "石", "meaning": "stone"},
            {"kanji": "石", "meaning": "stone again"},
        ]

        report = _import(db, records)

        assert report.added == 1
        assert report.duplicates == 2
        assert report.total == 3
        assert db.count_items() == 2

    def test_same_word_other_level_is_new(self, db):
        db.upsert([Item(word="山", meaning="mountain", level=Level.N5)])

        report = _import(db, [{"kanji": "山", "meaning": "mountain", "level": "N3"}])

        assert report.added == 1

    def test_chunks(self, db):
        records = [{"kanji": f"字{i}", "meaning": f"m{i}"} for i in range(11)]

        report = _import(db, records, chunk_size=3)

        assert report.added == 11
        assert db.count_items() == 11
