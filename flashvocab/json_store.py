"""
Record store backed by a single JSON file.

The whole store lives in memory as one document:

    {
      "vocabulary": [...],
      "categories": [...],
      "sessions":   [...],
      "settings":   {...},
      "metadata":   {"version", "created", "lastModified"}
    }

Every mutating call rewrites the file (write to a temp file in the same
directory, then rename over the original). In-memory state is the source of
truth: if a write fails the change stays in memory, the failure is logged,
and the next successful write carries it to disk.

Nothing in here raises for I/O or parse problems. Callers get ``False``,
``None`` or an empty value and the reason goes to the log.
"""

import copy
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

from .config import StoreOptions
from .transfer import is_importable, parse_payload, render_payload
from .types import (
    CATEGORY_KEYS,
    DEFAULT_CATEGORY,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_SESSION_TYPE,
    DEFAULT_WORD_TYPE,
    MASTERED_LEVEL,
    VOCABULARY_KEYS,
    Category,
    ImportResult,
    LearningSession,
    ListOptions,
    OverallProgress,
    StoreStats,
    VocabularyEntry,
    WordStatistics,
    as_int,
    clamp_mastery,
    to_storage_keys,
    utc_now,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"

# Tables that carry integer ids
ID_TABLES = ("vocabulary", "categories", "sessions")


def _empty_document() -> dict[str, Any]:
    now = utc_now()
    return {
        "vocabulary": [],
        "categories": [],
        "sessions": [],
        "settings": {},
        "metadata": {
            "version": SCHEMA_VERSION,
            "created": now,
            "lastModified": now,
        },
    }


def _is_serializable(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def _has_int_id(row: Any) -> bool:
    return (
        isinstance(row, dict)
        and isinstance(row.get("id"), int)
        and not isinstance(row.get("id"), bool)
    )


def _next_id(rows: list[dict[str, Any]]) -> int:
    ids = [row.get("id") for row in rows if isinstance(row, dict)]
    return max([i for i in ids if isinstance(i, int)], default=0) + 1


class JSONRecordStore:
    """
    File-backed record store.

    Construct, then call ``initialize(path)`` before anything else.
    """

    def __init__(self) -> None:
        self._path: Optional[Path] = None
        self._options = StoreOptions()
        self._data: dict[str, Any] = _empty_document()
        self._next_ids = {table: 1 for table in ID_TABLES}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def path(self) -> Optional[Path]:
        return self._path

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self, path: Path, options: Optional[StoreOptions] = None) -> bool:
        """
        Open (or create) the store file at ``path``.

        Tables present in the file replace the empty defaults; tables missing
        from it stay empty. Id counters restart at max(id) + 1 per table.
        A missing or unreadable file starts a fresh document, which is
        written out immediately.

        Returns:
            True if the store is ready for use
        """
        self._path = Path(path)
        self._options = options or StoreOptions()
        self._data = _empty_document()
        self._connected = False

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create store directory %s: %s", self._path.parent, e)
            return False

        loaded = self._read_document()
        if loaded is None:
            logger.info("Creating new store file: %s", self._path)
            if not self._save():
                return False
        else:
            self._merge(loaded)

        self._next_ids = {table: _next_id(self._data[table]) for table in ID_TABLES}
        self._connected = True
        return True

    def _read_document(self) -> Optional[dict[str, Any]]:
        """Read and parse the store file. None if absent or unusable."""
        if not self._path.exists():
            return None
        try:
            text = self._path.read_text(encoding="utf-8")
            loaded = json.loads(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Store file %s is unreadable, starting fresh: %s", self._path, e)
            self._set_aside_corrupt()
            return None
        if not isinstance(loaded, dict):
            logger.warning("Store file %s is not a JSON object, starting fresh", self._path)
            self._set_aside_corrupt()
            return None
        return loaded

    def _set_aside_corrupt(self) -> None:
        if not self._options.keep_corrupt_copy:
            return
        aside = self._path.with_name(self._path.name + ".corrupt")
        try:
            shutil.copyfile(self._path, aside)
            logger.warning("Kept a copy of the unreadable store at %s", aside)
        except OSError as e:
            logger.warning("Could not copy unreadable store aside: %s", e)

    def _merge(self, loaded: dict[str, Any]) -> None:
        for table in ID_TABLES:
            rows = loaded.get(table)
            if isinstance(rows, list):
                kept = [row for row in rows if _has_int_id(row)]
                if len(kept) != len(rows):
                    logger.warning(
                        "Dropped %d %s rows without an integer id from %s",
                        len(rows) - len(kept), table, self._path,
                    )
                self._data[table] = kept
        settings = loaded.get("settings")
        if isinstance(settings, dict):
            self._data["settings"] = settings
        metadata = loaded.get("metadata")
        if isinstance(metadata, dict):
            self._data["metadata"].update(metadata)

    def _save(self) -> bool:
        """Rewrite the whole store file. False (and logged) on failure."""
        if self._path is None:
            return False

        self._data["metadata"]["lastModified"] = utc_now()
        try:
            payload = json.dumps(self._data, ensure_ascii=False, indent=self._options.indent)
        except (TypeError, ValueError) as e:
            logger.error("Store contents are not serializable: %s", e)
            return False

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self._path)
            return True
        except OSError as e:
            logger.error("Failed to save store %s: %s", self._path, e)
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            return False

    def close(self) -> bool:
        """Flush to disk and mark the store disconnected."""
        if not self._connected:
            return True
        saved = self._save()
        self._connected = False
        return saved

    def _take_id(self, table: str) -> int:
        new_id = self._next_ids[table]
        self._next_ids[table] = new_id + 1
        return new_id

    @staticmethod
    def _find_index(rows: list[dict[str, Any]], row_id: Any) -> int:
        for i, row in enumerate(rows):
            if row.get("id") == row_id:
                return i
        return -1

    # -------------------------------------------------------------------------
    # Vocabulary
    # -------------------------------------------------------------------------

    def add_vocabulary(
        self,
        english: str,
        vietnamese: str,
        *,
        type: Optional[str] = None,
        phonetic: Optional[str] = None,
        example: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int:
        """Append a new word with fresh defaults and return its id."""
        entry = VocabularyEntry(
            id=self._take_id("vocabulary"),
            english=english,
            vietnamese=vietnamese,
            type=type or DEFAULT_WORD_TYPE,
            phonetic=phonetic or "",
            example=example or "",
            category=category or DEFAULT_CATEGORY,
            created_at=utc_now(),
        )
        self._data["vocabulary"].append(entry.to_dict())
        self._save()
        return entry.id

    def get_vocabulary_by_id(self, word_id: int) -> Optional[VocabularyEntry]:
        i = self._find_index(self._data["vocabulary"], word_id)
        if i < 0:
            return None
        return VocabularyEntry.from_dict(self._data["vocabulary"][i])

    def get_all_vocabulary(self, options: Optional[ListOptions] = None) -> list[VocabularyEntry]:
        """
        List words: category filter first, then offset, then limit.
        """
        options = options or ListOptions()
        rows = self._data["vocabulary"]
        if options.category:
            rows = [row for row in rows if row.get("category") == options.category]
        if options.offset:
            rows = rows[max(0, options.offset):]
        if options.limit is not None:
            rows = rows[:max(0, options.limit)]
        return [VocabularyEntry.from_dict(row) for row in rows]

    def update_vocabulary(self, word_id: int, updates: dict[str, Any]) -> bool:
        """
        Merge ``updates`` over an existing word.

        Keys may use either the attribute names (``mastery_level``) or the
        stored names (``masteryLevel``). The id never changes.

        Returns:
            True if the word exists
        """
        if not _is_serializable(updates):
            logger.error("Word %r not updated, values are not JSON-serializable", word_id)
            return False
        rows = self._data["vocabulary"]
        i = self._find_index(rows, word_id)
        if i < 0:
            return False

        merged = {**rows[i], **to_storage_keys(updates, VOCABULARY_KEYS)}
        merged["id"] = word_id
        if "masteryLevel" in merged:
            merged["masteryLevel"] = clamp_mastery(merged["masteryLevel"])
        merged["lastModified"] = utc_now()
        rows[i] = merged
        self._save()
        return True

    def delete_vocabulary(self, word_id: int) -> bool:
        rows = self._data["vocabulary"]
        i = self._find_index(rows, word_id)
        if i < 0:
            return False
        del rows[i]
        self._save()
        return True

    def search_vocabulary(self, query: str) -> list[VocabularyEntry]:
        """Case-insensitive substring match on english, vietnamese, type and example."""
        term = (query or "").lower()
        matches = []
        for row in self._data["vocabulary"]:
            haystack = (row.get(k) for k in ("english", "vietnamese", "type", "example"))
            if any(isinstance(v, str) and term in v.lower() for v in haystack):
                matches.append(VocabularyEntry.from_dict(row))
        return matches

    # -------------------------------------------------------------------------
    # Learning progress
    # -------------------------------------------------------------------------

    def record_learning_session(
        self,
        word_id: int,
        correct: bool,
        response_time_ms: float = 0.0,
        session_type: Optional[str] = None,
    ) -> int:
        """
        Append a session and touch the word it refers to.

        The word need not exist. Touching the word (review count and
        last-reviewed stamp) is a second step; if it fails the session
        is still kept.

        Returns:
            The new session id
        """
        now = utc_now()
        session = LearningSession(
            id=self._take_id("sessions"),
            word_id=word_id,
            correct=bool(correct),
            response_time_ms=max(0.0, float(response_time_ms or 0)),
            session_type=session_type or DEFAULT_SESSION_TYPE,
            timestamp=now,
        )
        self._data["sessions"].append(session.to_dict())

        try:
            self._touch_word(word_id, now)
        except (TypeError, ValueError) as e:
            logger.warning("Session %d recorded but word %r not updated: %s", session.id, word_id, e)

        self._save()
        return session.id

    def _touch_word(self, word_id: int, now: str) -> None:
        rows = self._data["vocabulary"]
        i = self._find_index(rows, word_id)
        if i < 0:
            return
        row = rows[i]
        row["reviewCount"] = max(0, as_int(row.get("reviewCount"))) + 1
        row["lastReviewedAt"] = now
        row["lastModified"] = now

    def get_word_statistics(self, word_id: int) -> WordStatistics:
        sessions = [s for s in self._data["sessions"] if s.get("wordId") == word_id]
        total = len(sessions)
        if total == 0:
            return WordStatistics()

        records = [LearningSession.from_dict(s) for s in sessions]
        correct = sum(1 for s in records if s.correct)
        return WordStatistics(
            total_sessions=total,
            correct_sessions=correct,
            accuracy=correct / total,
            average_response_time=sum(s.response_time_ms for s in records) / total,
            last_session=records[-1].timestamp,
        )

    def get_overall_progress(self) -> OverallProgress:
        words = self._data["vocabulary"]
        sessions = self._data["sessions"]
        total_words = len(words)
        total_sessions = len(sessions)
        correct = sum(1 for s in sessions if s.get("correct"))
        mastered = sum(
            1 for w in words if clamp_mastery(w.get("masteryLevel", 0)) >= MASTERED_LEVEL
        )
        return OverallProgress(
            total_words=total_words,
            mastered_words=mastered,
            total_sessions=total_sessions,
            correct_sessions=correct,
            overall_accuracy=correct / total_sessions if total_sessions else 0.0,
            mastery_percentage=mastered / total_words if total_words else 0.0,
        )

    def update_word_mastery(self, word_id: int, mastery_level: int) -> bool:
        return self.update_vocabulary(word_id, {"masteryLevel": clamp_mastery(mastery_level)})

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def add_category(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> int:
        category = Category(
            id=self._take_id("categories"),
            name=name,
            description=description or "",
            color=color or DEFAULT_CATEGORY_COLOR,
            created_at=utc_now(),
        )
        self._data["categories"].append(category.to_dict())
        self._save()
        return category.id

    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        i = self._find_index(self._data["categories"], category_id)
        if i < 0:
            return None
        return Category.from_dict(self._data["categories"][i])

    def get_all_categories(self) -> list[Category]:
        return [Category.from_dict(row) for row in self._data["categories"]]

    def update_category(self, category_id: int, updates: dict[str, Any]) -> bool:
        if not _is_serializable(updates):
            logger.error("Category %r not updated, values are not JSON-serializable", category_id)
            return False
        rows = self._data["categories"]
        i = self._find_index(rows, category_id)
        if i < 0:
            return False
        merged = {**rows[i], **to_storage_keys(updates, CATEGORY_KEYS)}
        merged["id"] = category_id
        merged["lastModified"] = utc_now()
        rows[i] = merged
        self._save()
        return True

    def delete_category(self, category_id: int) -> bool:
        # Words keep their category name; there is no cascade.
        rows = self._data["categories"]
        i = self._find_index(rows, category_id)
        if i < 0:
            return False
        del rows[i]
        self._save()
        return True

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def save_setting(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value under ``key``. Last write wins."""
        if not _is_serializable(value):
            logger.error("Setting %r not saved, value is not JSON-serializable", key)
            return False
        self._data["settings"][key] = value
        self._save()
        return True

    def get_setting(self, key: str, default: Any = None) -> Any:
        if key not in self._data["settings"]:
            return default
        return copy.deepcopy(self._data["settings"][key])

    def get_all_settings(self) -> dict[str, Any]:
        return copy.deepcopy(self._data["settings"])

    def delete_setting(self, key: str) -> bool:
        if key not in self._data["settings"]:
            return False
        del self._data["settings"][key]
        self._save()
        return True

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def get_database_stats(self) -> StoreStats:
        try:
            size = len(json.dumps(self._data, ensure_ascii=False))
        except (TypeError, ValueError):
            size = 0
        metadata = self._data["metadata"]
        return StoreStats(
            vocabulary_count=len(self._data["vocabulary"]),
            categories_count=len(self._data["categories"]),
            sessions_count=len(self._data["sessions"]),
            settings_count=len(self._data["settings"]),
            database_size=size,
            created=metadata.get("created", ""),
            last_modified=metadata.get("lastModified", ""),
        )

    def backup(self, backup_path: Path) -> bool:
        """Copy the store file verbatim to ``backup_path``."""
        if self._path is None:
            return False
        backup_path = Path(backup_path)
        try:
            backup_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self._path, backup_path)
            return True
        except OSError as e:
            logger.error("Backup to %s failed: %s", backup_path, e)
            return False

    def restore(self, backup_path: Path) -> bool:
        """
        Replace the store file with ``backup_path`` and reload from it.

        The backup must parse as a JSON object; otherwise the live file is
        left untouched.
        """
        if self._path is None:
            return False
        backup_path = Path(backup_path)
        try:
            loaded = json.loads(backup_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Restore from %s failed: %s", backup_path, e)
            return False
        if not isinstance(loaded, dict):
            logger.error("Restore from %s failed: not a store document", backup_path)
            return False

        try:
            shutil.copyfile(backup_path, self._path)
        except OSError as e:
            logger.error("Restore from %s failed: %s", backup_path, e)
            return False
        return self.initialize(self._path, self._options)

    def import_vocabulary(self, file_path: Path, fmt: str) -> ImportResult:
        """
        Add every valid word from a json or csv file.

        Records without english or vietnamese text are skipped but still
        counted in ``total``.
        """
        try:
            text = Path(file_path).read_text(encoding="utf-8")
            records = parse_payload(text, fmt)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.error("Import from %s failed: %s", file_path, e)
            return ImportResult(error=str(e))

        imported = 0
        for record in records:
            if not is_importable(record):
                continue
            self.add_vocabulary(
                record["english"].strip(),
                record["vietnamese"].strip(),
                type=record.get("type"),
                phonetic=record.get("phonetic"),
                example=record.get("example"),
                category=record.get("category"),
            )
            imported += 1

        logger.info("Imported %d of %d records from %s", imported, len(records), file_path)
        return ImportResult(imported=imported, total=len(records))

    def export_vocabulary(
        self,
        file_path: Path,
        fmt: str,
        options: Optional[ListOptions] = None,
    ) -> bool:
        """Write the (optionally filtered) word list to a json or csv file."""
        try:
            content = render_payload(self.get_all_vocabulary(options), fmt)
            file_path = Path(file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
            return True
        except (OSError, ValueError) as e:
            logger.error("Export to %s failed: %s", file_path, e)
            return False
