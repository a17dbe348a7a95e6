"""
Protocol definition for record store backends.

Every backend the StoreManager can construct implements this interface.
Only the JSON file backend exists today; the protocol fixes the capability
set any future backend must provide.
"""

from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from .types import (
    Category,
    ImportResult,
    ListOptions,
    OverallProgress,
    StoreStats,
    VocabularyEntry,
    WordStatistics,
)


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """
    Persistent storage for vocabulary, categories, sessions and settings.

    Implementations never raise for I/O or parse problems. Failures come
    back as ``False``, ``None`` or an empty value, with a logged diagnostic.
    """

    @property
    def is_connected(self) -> bool: ...

    # -- Lifecycle --

    def initialize(self, path: Path, options: Optional[Any] = None) -> bool: ...

    def close(self) -> bool: ...

    # -- Vocabulary --

    def add_vocabulary(
        self,
        english: str,
        vietnamese: str,
        *,
        type: Optional[str] = None,
        phonetic: Optional[str] = None,
        example: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int: ...

    def get_vocabulary_by_id(self, word_id: int) -> Optional[VocabularyEntry]: ...

    def get_all_vocabulary(self, options: Optional[ListOptions] = None) -> list[VocabularyEntry]: ...

    def update_vocabulary(self, word_id: int, updates: dict[str, Any]) -> bool: ...

    def delete_vocabulary(self, word_id: int) -> bool: ...

    def search_vocabulary(self, query: str) -> list[VocabularyEntry]: ...

    # -- Learning progress --

    def record_learning_session(
        self,
        word_id: int,
        correct: bool,
        response_time_ms: float = 0.0,
        session_type: Optional[str] = None,
    ) -> int: ...

    def get_word_statistics(self, word_id: int) -> WordStatistics: ...

    def get_overall_progress(self) -> OverallProgress: ...

    def update_word_mastery(self, word_id: int, mastery_level: int) -> bool: ...

    # -- Categories --

    def add_category(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> int: ...

    def get_category_by_id(self, category_id: int) -> Optional[Category]: ...

    def get_all_categories(self) -> list[Category]: ...

    def update_category(self, category_id: int, updates: dict[str, Any]) -> bool: ...

    def delete_category(self, category_id: int) -> bool: ...

    # -- Settings --

    def save_setting(self, key: str, value: Any) -> bool: ...

    def get_setting(self, key: str, default: Any = None) -> Any: ...

    def get_all_settings(self) -> dict[str, Any]: ...

    def delete_setting(self, key: str) -> bool: ...

    # -- Maintenance --

    def get_database_stats(self) -> StoreStats: ...

    def backup(self, backup_path: Path) -> bool: ...

    def restore(self, backup_path: Path) -> bool: ...

    def import_vocabulary(self, file_path: Path, fmt: str) -> ImportResult: ...

    def export_vocabulary(
        self,
        file_path: Path,
        fmt: str,
        options: Optional[ListOptions] = None,
    ) -> bool: ...
