"""Tests for the FluxJP CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from fluxjp.cli import helpers
from fluxjp.cli.main import app
from fluxjp.core.models import DailyStat, Item, ItemStatus, Level
from fluxjp.core.storage import VocabDatabase

runner = CliRunner()


@pytest.fixture()
def db(tmp_path: Path):
    """Point the CLI at a temporary state directory."""
    with patch.dict("os.environ", {"FLUXJP_STATE_DIR": str(tmp_path / ".fluxjp")}, clear=False):
        # Reset the global database so it gets recreated in the temp dir
        helpers._db = None
        yield helpers.get_db()
        helpers._db = None


def _seed(db: VocabDatabase, count: int = 1) -> list[Item]:
    return db.upsert([Item(word=f"語{i}", reading=f"ご{i}", meaning=f"m{i}") for i in range(count)])


class TestStudy:
    def test_nothing_to_study(self, db):
        result = runner.invoke(app, ["study"])

        assert result.exit_code == 0
        assert "Nothing to study" in result.output

    def test_full_session(self, db):
        (item,) = _seed(db)

        result = runner.invoke(app, ["study", "--kind", "learn_new"], input="\n2\n")

        assert result.exit_code == 0, result.output
        assert "Session complete" in result.output
        assert db.get_by_id(item.id).status == ItemStatus.LEARNING

    def test_forgotten_comes_back(self, db):
        (item,) = _seed(db)

        result = runner.invoke(app, ["study", "-k", "learn_new"], input="\n1\n\n3\n")

        assert result.exit_code == 0, result.output
        assert "come back later" in result.output
        assert db.get_by_id(item.id).status == ItemStatus.MASTERED

    def test_quit_early(self, db):
        items = _seed(db, 2)

        result = runner.invoke(app, ["study", "-k", "learn_new"], input="\nq\n")

        assert result.exit_code == 0
        assert "ended early" in result.output
        assert db.get_by_id(items[0].id).status == ItemStatus.NEW

    def test_invalid_grade_reprompts(self, db):
        _seed(db)

        result = runner.invoke(app, ["study", "-k", "learn_new"], input="\n9\n2\n")

        assert "Invalid choice" in result.output
        assert "Session complete" in result.output


class TestStats:
    def test_stats_table(self, db):
        _seed(db, 3)
        db.put_daily_stat(DailyStat(date="2025-01-01", review_count=4, correct_count=3))

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Total Items" in result.output
        assert "Memory Pipeline" in result.output


class TestImport:
    def test_import_file(self, db, tmp_path):
        path = tmp_path / "words.json"
        path.write_text(
            json.dumps(
                [
                    {"kanji": "山", "kana": "やま", "meaning": "mountain"},
                    {"kanji": "川"},
                ]
            ),
            encoding="utf-8",
        )

        result = runner.invoke(app, ["import", str(path), "--level", "N4"])

        assert result.exit_code == 0, result.output
        assert "Added 1" in result.output
        assert "Skipped 1" in result.output
        assert db.find_by_key("山", Level.N4) is not None

    def test_import_not_a_list(self, db, tmp_path):
        path = tmp_path / "words.json"
        path.write_text('{"kanji": "山"}', encoding="utf-8")

        result = runner.invoke(app, ["import", str(path)])

        assert result.exit_code == 1


class TestBackup:
    def test_export_then_restore_elsewhere(self, db, tmp_path):
        _seed(db, 2)
        path = tmp_path / "backup.json"

        result = runner.invoke(app, ["backup", "export", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        db.delete_all()
        result = runner.invoke(app, ["backup", "restore", str(path)])

        assert result.exit_code == 0, result.output
        assert "Items inserted" in result.output
        assert db.count_items() == 2

    def test_restore_bad_file(self, db, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]", encoding="utf-8")

        result = runner.invoke(app, ["backup", "restore", str(path)])

        assert result.exit_code == 1


class TestFavorites:
    def test_add_list_remove(self, db):
        (item,) = _seed(db)

        assert runner.invoke(app, ["favorite", "add", str(item.id)]).exit_code == 0
        listed = runner.invoke(app, ["favorite", "list"])
        assert "語0" in listed.output

        assert runner.invoke(app, ["favorite", "remove", str(item.id)]).exit_code == 0
        assert db.list_favorites() == []

    def test_add_missing_item(self, db):
        result = runner.invoke(app, ["favorite", "add", "999"])
        assert result.exit_code == 1

    def test_remove_missing(self, db):
        result = runner.invoke(app, ["favorite", "remove", "999"])
        assert result.exit_code == 1


class TestReset:
    def test_reset_with_yes(self, db):
        _seed(db, 2)

        result = runner.invoke(app, ["reset", "--yes"])

        assert result.exit_code == 0
        assert db.count_items() == 0

    def test_reset_declined(self, db):
        _seed(db, 2)

        result = runner.invoke(app, ["reset"], input="n\n")

        assert result.exit_code == 1
        assert db.count_items() == 2


class TestSearch:
    def test_finds_items(self, db):
        _seed(db, 3)

        result = runner.invoke(app, ["search", "m2"])

        assert result.exit_code == 0, result.output
        assert "Found 1 item(s)" in result.output
        assert "語2" in result.output

    def test_no_match(self, db):
        _seed(db)

        result = runner.invoke(app, ["search", "zzz"])

        assert result.exit_code == 0
        assert "No items found" in result.output
