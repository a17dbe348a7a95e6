"""Tests for flashvocab.json_store: the file-backed record store."""

import json
from unittest.mock import patch

import pytest

from flashvocab.config import StoreOptions
from flashvocab.json_store import JSONRecordStore
from flashvocab.types import ListOptions


def _reopen(path):
    s = JSONRecordStore()
    assert s.initialize(path)
    return s


class TestInitialize:

    def test_creates_file_with_empty_tables(self, store, store_path):
        assert store.is_connected
        assert store_path.exists()
        doc = json.loads(store_path.read_text(encoding="utf-8"))
        assert doc["vocabulary"] == []
        assert doc["categories"] == []
        assert doc["sessions"] == []
        assert doc["settings"] == {}
        assert doc["metadata"]["version"] == "1.0.0"

    def test_creates_missing_directories(self, tmp_path):
        path = tmp_path / "a" / "b" / "store.json"
        s = JSONRecordStore()
        assert s.initialize(path)
        assert path.exists()

    def test_ids_continue_after_reopen(self, store, store_path):
        store.add_vocabulary("Cat", "Con mèo")
        store.add_vocabulary("Dog", "Con chó")
        store.delete_vocabulary(2)
        store.close()

        reopened = _reopen(store_path)
        assert reopened.add_vocabulary("Bird", "Con chim") == 2
        assert reopened.record_learning_session(1, True) == 1

    def test_missing_tables_default_to_empty(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps({"vocabulary": [{"id": 7, "english": "a", "vietnamese": "b"}]}))

        s = _reopen(store_path)
        assert [w.id for w in s.get_all_vocabulary()] == [7]
        assert s.get_all_categories() == []
        assert s.get_all_settings() == {}
        assert s.add_vocabulary("c", "d") == 8

    def test_corrupt_file_starts_fresh_and_keeps_copy(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json")

        s = _reopen(store_path)
        assert s.get_all_vocabulary() == []
        aside = store_path.with_name(store_path.name + ".corrupt")
        assert aside.read_text() == "{not json"
        assert json.loads(store_path.read_text())["vocabulary"] == []

    def test_corrupt_copy_can_be_disabled(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("[]")

        s = JSONRecordStore()
        assert s.initialize(store_path, StoreOptions(keep_corrupt_copy=False))
        assert not store_path.with_name(store_path.name + ".corrupt").exists()

    def test_close_disconnects(self, store):
        assert store.close()
        assert not store.is_connected

    def test_no_temp_files_left_behind(self, store, store_path):
        store.add_vocabulary("Cat", "Con mèo")
        leftovers = [p for p in store_path.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []


class TestIdAssignment:

    def test_deleted_vocabulary_ids_are_not_reused(self, store):
        assert store.add_vocabulary("Cat", "Con mèo") == 1
        assert store.add_vocabulary("Dog", "Con chó") == 2
        store.delete_vocabulary(2)
        assert store.add_vocabulary("Bird", "Con chim") == 3

    def test_deleted_category_ids_are_not_reused(self, store):
        store.add_category("Travel")
        second = store.add_category("Food")
        store.delete_category(second)
        assert store.add_category("Work") == 3

    def test_session_ids_increase(self, store):
        ids = [store.record_learning_session(1, i % 2 == 0) for i in range(4)]
        assert ids == [1, 2, 3, 4]

    def test_tables_count_independently(self, store):
        store.add_vocabulary("Cat", "Con mèo")
        store.add_vocabulary("Dog", "Con chó")
        assert store.add_category("Travel") == 1
        assert store.record_learning_session(1, True) == 1


class TestMalformedRows:

    @pytest.fixture
    def messy_store(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps({
            "vocabulary": [
                {"id": 1, "english": "Cat", "vietnamese": "Con mèo", "reviewCount": "n/a"},
                {"id": "x", "english": "Dog", "vietnamese": "Con chó"},
                {"id": None, "english": "Bird", "vietnamese": "Con chim"},
                {"id": True, "english": "Fish", "vietnamese": "Con cá"},
                "not a row",
            ],
            "categories": [{"id": "1", "name": "Basic"}],
            "sessions": [
                {"id": 1, "wordId": 1, "correct": True, "responseTimeMs": "n/a"},
                {"id": 2, "wordId": 1, "correct": False, "responseTimeMs": 400},
            ],
        }), encoding="utf-8")
        return _reopen(store_path)

    def test_rows_without_integer_id_are_dropped(self, messy_store):
        assert [w.english for w in messy_store.get_all_vocabulary()] == ["Cat"]
        assert messy_store.get_all_categories() == []
        assert messy_store.add_vocabulary("Cow", "Con bò") == 2

    def test_reads_tolerate_bad_numbers(self, messy_store):
        cat = messy_store.get_vocabulary_by_id(1)
        assert cat.review_count == 0
        assert [w.id for w in messy_store.search_vocabulary("con")] == [1]

        stats = messy_store.get_word_statistics(1)
        assert stats.total_sessions == 2
        assert stats.average_response_time == 200

    def test_session_on_bad_review_count(self, messy_store):
        messy_store.record_learning_session(1, True)
        assert messy_store.get_vocabulary_by_id(1).review_count == 1


class TestPersistFailure:

    def test_failed_write_keeps_memory_and_next_write_catches_up(self, store, store_path):
        with patch("flashvocab.json_store.tempfile.mkstemp", side_effect=OSError("disk full")):
            word_id = store.add_vocabulary("Cat", "Con mèo")
            assert store.save_setting("theme", "dark")

        assert word_id == 1
        assert store.get_vocabulary_by_id(word_id).english == "Cat"
        assert json.loads(store_path.read_text())["vocabulary"] == []

        store.add_vocabulary("Dog", "Con chó")

        doc = json.loads(store_path.read_text())
        assert [w["english"] for w in doc["vocabulary"]] == ["Cat", "Dog"]
        assert doc["settings"] == {"theme": "dark"}

    def test_failed_rename_removes_temp_file(self, store, store_path):
        with patch("flashvocab.json_store.os.replace", side_effect=OSError("busy")):
            assert store.add_vocabulary("Cat", "Con mèo") == 1

        leftovers = [p for p in store_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []
        assert [w.english for w in store.get_all_vocabulary()] == ["Cat"]

    def test_close_reports_failed_flush(self, store):
        with patch("flashvocab.json_store.tempfile.mkstemp", side_effect=OSError("disk full")):
            assert not store.close()
        assert not store.is_connected


class TestVocabulary:

    def test_add_applies_defaults(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        entry = store.get_vocabulary_by_id(word_id)

        assert word_id == 1
        assert entry.type == "unknown"
        assert entry.category == "general"
        assert entry.phonetic == ""
        assert entry.example == ""
        assert entry.mastery_level == 0
        assert entry.review_count == 0
        assert entry.last_reviewed_at is None
        assert entry.created_at.endswith("Z")

    def test_add_persists_immediately(self, store, store_path):
        store.add_vocabulary("Cat", "Con mèo", type="noun", category="Basic")
        doc = json.loads(store_path.read_text(encoding="utf-8"))
        assert doc["vocabulary"][0]["english"] == "Cat"
        assert doc["vocabulary"][0]["vietnamese"] == "Con mèo"
        assert doc["vocabulary"][0]["masteryLevel"] == 0

    def test_get_missing_returns_none(self, store):
        assert store.get_vocabulary_by_id(99) is None

    def test_list_filter_offset_limit(self, store):
        for i in range(6):
            store.add_vocabulary(f"w{i}", f"v{i}", category="A" if i % 2 == 0 else "B")

        a_words = store.get_all_vocabulary(ListOptions(category="A"))
        assert [w.english for w in a_words] == ["w0", "w2", "w4"]

        page = store.get_all_vocabulary(ListOptions(category="A", offset=1, limit=1))
        assert [w.english for w in page] == ["w2"]

        assert [w.english for w in store.get_all_vocabulary(ListOptions(offset=4))] == ["w4", "w5"]
        assert store.get_all_vocabulary(ListOptions(limit=0)) == []

    def test_update_merges_and_keeps_id(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")

        assert store.update_vocabulary(word_id, {"example": "A cat.", "id": 500})
        entry = store.get_vocabulary_by_id(word_id)
        assert entry.id == word_id
        assert entry.example == "A cat."
        assert entry.english == "Cat"
        assert entry.last_modified is not None

    def test_update_accepts_attribute_names(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        store.update_vocabulary(word_id, {"mastery_level": 3})
        assert store.get_vocabulary_by_id(word_id).mastery_level == 3

    def test_update_missing_returns_false(self, store):
        assert not store.update_vocabulary(42, {"english": "x"})

    def test_update_rejects_unserializable_values(self, store, store_path):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        assert not store.update_vocabulary(word_id, {"example": object()})
        # Later writes still succeed
        assert store.add_vocabulary("Dog", "Con chó") == 2
        assert len(json.loads(store_path.read_text())["vocabulary"]) == 2

    def test_delete(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        assert store.delete_vocabulary(word_id)
        assert store.get_vocabulary_by_id(word_id) is None
        assert not store.delete_vocabulary(word_id)

    def test_delete_nonexistent_leaves_store_unchanged(self, store):
        store.add_vocabulary("Cat", "Con mèo")
        assert not store.delete_vocabulary(99)
        assert len(store.get_all_vocabulary()) == 1

    def test_search_is_case_insensitive_substring(self, store):
        store.add_vocabulary("Beautiful", "Đẹp", type="adjective")
        store.add_vocabulary("Cat", "Con mèo", example="The cat sleeps")
        store.add_vocabulary("Dog", "Con chó", type="noun")

        assert [w.english for w in store.search_vocabulary("BEAU")] == ["Beautiful"]
        assert [w.english for w in store.search_vocabulary("con")] == ["Cat", "Dog"]
        assert [w.english for w in store.search_vocabulary("sleeps")] == ["Cat"]
        assert [w.english for w in store.search_vocabulary("noun")] == ["Dog"]
        assert store.search_vocabulary("zzz") == []


class TestLearningProgress:

    def test_record_session_touches_word(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        session_id = store.record_learning_session(word_id, True, 1500)

        entry = store.get_vocabulary_by_id(word_id)
        assert session_id == 1
        assert entry.review_count == 1
        assert entry.last_reviewed_at is not None

    def test_record_session_for_unknown_word(self, store):
        assert store.record_learning_session(99, False) == 1
        assert store.get_word_statistics(99).total_sessions == 1

    def test_negative_response_time_is_clamped(self, store):
        store.record_learning_session(1, True, -50)
        assert store.get_word_statistics(1).average_response_time == 0.0

    def test_word_statistics(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        store.record_learning_session(word_id, True, 1000)
        store.record_learning_session(word_id, False, 2000)
        store.record_learning_session(word_id, True, 3000)

        stats = store.get_word_statistics(word_id)
        assert stats.total_sessions == 3
        assert stats.correct_sessions == 2
        assert stats.accuracy == pytest.approx(2 / 3)
        assert stats.average_response_time == pytest.approx(2000)
        assert stats.last_session is not None
        assert store.get_vocabulary_by_id(word_id).review_count == 3

    def test_word_statistics_without_sessions(self, store):
        stats = store.get_word_statistics(1)
        assert stats.total_sessions == 0
        assert stats.accuracy == 0
        assert stats.last_session is None

    def test_overall_progress_empty(self, store):
        progress = store.get_overall_progress()
        assert progress.total_words == 0
        assert progress.overall_accuracy == 0
        assert progress.mastery_percentage == 0

    def test_overall_progress(self, store):
        ids = [store.add_vocabulary(f"w{i}", f"v{i}") for i in range(4)]
        store.update_word_mastery(ids[0], 4)
        store.update_word_mastery(ids[1], 5)
        store.record_learning_session(ids[0], True)
        store.record_learning_session(ids[0], False)

        progress = store.get_overall_progress()
        assert progress.total_words == 4
        assert progress.mastered_words == 2
        assert progress.total_sessions == 2
        assert progress.correct_sessions == 1
        assert progress.overall_accuracy == 0.5
        assert progress.mastery_percentage == 0.5

    def test_mastery_is_clamped(self, store):
        word_id = store.add_vocabulary("Cat", "Con mèo")
        assert store.update_word_mastery(word_id, 9)
        assert store.get_vocabulary_by_id(word_id).mastery_level == 5
        store.update_word_mastery(word_id, -3)
        assert store.get_vocabulary_by_id(word_id).mastery_level == 0

    def test_mastery_of_missing_word(self, store):
        assert not store.update_word_mastery(12, 3)


class TestCategories:

    def test_add_and_get(self, store):
        category_id = store.add_category("Travel", description="Trips")
        category = store.get_category_by_id(category_id)
        assert category.name == "Travel"
        assert category.description == "Trips"
        assert category.color == "#3b82f6"

    def test_update(self, store):
        category_id = store.add_category("Travel")
        assert store.update_category(category_id, {"color": "#000000"})
        assert store.get_category_by_id(category_id).color == "#000000"
        assert not store.update_category(99, {"color": "#000000"})

    def test_delete_does_not_touch_words(self, store):
        category_id = store.add_category("Travel")
        store.add_vocabulary("Train", "Tàu hỏa", category="Travel")

        assert store.delete_category(category_id)
        assert store.get_all_categories() == []
        assert store.get_all_vocabulary()[0].category == "Travel"
        assert not store.delete_category(category_id)


class TestSettings:

    def test_round_trip_structured_value(self, store, store_path):
        value = {"nested": [1, 2, {"x": True}]}
        assert store.save_setting("layout", value)
        store.close()

        assert _reopen(store_path).get_setting("layout") == value

    def test_default_for_missing_key(self, store):
        assert store.get_setting("missing") is None
        assert store.get_setting("missing", 10) == 10

    def test_stored_none_is_not_the_default(self, store):
        store.save_setting("sound", None)
        assert store.get_setting("sound", "on") is None

    def test_last_write_wins(self, store):
        store.save_setting("theme", "light")
        store.save_setting("theme", "dark")
        assert store.get_all_settings() == {"theme": "dark"}

    def test_returned_values_are_copies(self, store):
        store.save_setting("tags", ["a"])
        store.get_setting("tags").append("b")
        assert store.get_setting("tags") == ["a"]

    def test_unserializable_value_rejected(self, store):
        assert not store.save_setting("bad", {1, 2})
        assert "bad" not in store.get_all_settings()

    def test_delete(self, store):
        store.save_setting("theme", "dark")
        assert store.delete_setting("theme")
        assert not store.delete_setting("theme")


class TestMaintenance:

    def test_stats(self, store):
        store.add_vocabulary("Cat", "Con mèo")
        store.add_category("Basic")
        store.save_setting("theme", "light")

        stats = store.get_database_stats()
        assert stats.vocabulary_count == 1
        assert stats.categories_count == 1
        assert stats.sessions_count == 0
        assert stats.settings_count == 1
        assert stats.database_size > 0
        assert stats.created

    def test_backup_and_restore(self, store, tmp_path):
        store.add_vocabulary("Cat", "Con mèo")
        backup = tmp_path / "backups" / "b.json"
        assert store.backup(backup)

        store.add_vocabulary("Dog", "Con chó")
        assert store.restore(backup)
        assert [w.english for w in store.get_all_vocabulary()] == ["Cat"]
        assert store.add_vocabulary("Bird", "Con chim") == 2

    def test_restore_rejects_invalid_backup(self, store, tmp_path, store_path):
        store.add_vocabulary("Cat", "Con mèo")
        bad = tmp_path / "bad.json"
        bad.write_text("not json")

        assert not store.restore(bad)
        assert len(store.get_all_vocabulary()) == 1
        assert json.loads(store_path.read_text())["vocabulary"][0]["english"] == "Cat"

    def test_restore_missing_file(self, store, tmp_path):
        assert not store.restore(tmp_path / "nope.json")

    def test_import_json_skips_invalid_records(self, store, tmp_path):
        payload = [
            {"english": "Cat", "vietnamese": "Con mèo", "type": "noun"},
            {"english": "Dog", "vietnamese": "Con chó"},
            {"english": "", "vietnamese": "x"},
            {"english": "Bird"},
            {"english": "Fish", "vietnamese": "Con cá", "category": "Food"},
        ]
        src = tmp_path / "words.json"
        src.write_text(json.dumps(payload), encoding="utf-8")

        result = store.import_vocabulary(src, "json")
        assert result.imported == 3
        assert result.total == 5
        assert result.error is None
        words = store.get_all_vocabulary()
        assert [w.english for w in words] == ["Cat", "Dog", "Fish"]
        assert words[2].category == "Food"

    def test_import_csv(self, store, tmp_path):
        src = tmp_path / "words.csv"
        src.write_text(
            'English,Vietnamese,Type,Phonetic,Example,Category\n'
            '"Cat","Con mèo","noun","","","Basic"\n'
            '\n'
            'Dog,Con chó\n',
            encoding="utf-8",
        )

        result = store.import_vocabulary(src, "csv")
        assert (result.imported, result.total) == (2, 2)
        cat, dog = store.get_all_vocabulary()
        assert cat.type == "noun"
        assert cat.category == "Basic"
        assert dog.type == "unknown"

    def test_import_malformed_json(self, store, tmp_path):
        src = tmp_path / "words.json"
        src.write_text("{}")
        result = store.import_vocabulary(src, "json")
        assert result.imported == 0
        assert result.error

    def test_import_missing_file(self, store, tmp_path):
        assert store.import_vocabulary(tmp_path / "none.json", "json").error

    def test_export_json(self, store, tmp_path):
        store.add_vocabulary("Cat", "Con mèo", category="Basic")
        store.add_vocabulary("Train", "Tàu hỏa", category="Travel")
        dest = tmp_path / "out.json"

        assert store.export_vocabulary(dest, "json", ListOptions(category="Travel"))
        exported = json.loads(dest.read_text(encoding="utf-8"))
        assert [w["english"] for w in exported] == ["Train"]

    def test_export_csv(self, store, tmp_path):
        store.add_vocabulary("Cat", "Con mèo", type="noun", category="Basic")
        dest = tmp_path / "out.csv"

        assert store.export_vocabulary(dest, "csv")
        lines = dest.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "English,Vietnamese,Type,Phonetic,Example,Category"
        assert lines[1] == '"Cat","Con mèo","noun","","","Basic"'

    def test_export_unknown_format(self, store, tmp_path):
        assert not store.export_vocabulary(tmp_path / "out.xml", "xml")
