"""
Store lifecycle management.

StoreManager owns the one active record store for the process: it builds the
backend, opens it, seeds starter data into empty tables, and hands the store
out to callers. It is passed explicitly to whatever needs it; there is no
module-level instance.

States::

    UNINITIALIZED -> INITIALIZING -> READY
                                  -> FAILED
    READY -> CLOSED

FAILED and CLOSED behave like UNINITIALIZED: ``initialize`` may be called
again and starts from scratch.
"""

import enum
import logging
from pathlib import Path
from typing import Optional

from .backend import STORE_JSON, create_store
from .config import StoreOptions
from .errors import StoreNotInitializedError, UnimplementedStoreError, UnsupportedStoreError
from .paths import get_default_store_path
from .protocol import RecordStoreProtocol
from .types import StoreStats

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES = [
    {"name": "Basic", "description": "Basic everyday vocabulary", "color": "#3b82f6"},
    {"name": "Travel", "description": "Travel and transportation related words", "color": "#10b981"},
    {"name": "Food", "description": "Food and dining vocabulary", "color": "#f59e0b"},
    {"name": "Work", "description": "Professional and workplace terms", "color": "#8b5cf6"},
    {"name": "Family", "description": "Family and relationships", "color": "#ef4444"},
]

SAMPLE_VOCABULARY = [
    {
        "english": "Hello",
        "vietnamese": "Xin chào",
        "type": "interjection",
        "phonetic": "/həˈloʊ/",
        "example": '"Hello, how are you?" - "Xin chào, bạn khỏe không?"',
        "category": "Basic",
    },
    {
        "english": "Thank you",
        "vietnamese": "Cảm ơn",
        "type": "phrase",
        "phonetic": "/θæŋk juː/",
        "example": '"Thank you for your help." - "Cảm ơn bạn đã giúp đỡ."',
        "category": "Basic",
    },
    {
        "english": "Beautiful",
        "vietnamese": "Đẹp",
        "type": "adjective",
        "phonetic": "/ˈbjuːtɪfəl/",
        "example": '"She has a beautiful smile." - "Cô ấy có nụ cười đẹp."',
        "category": "Basic",
    },
]

DEFAULT_SETTINGS = {
    "theme": "light",
    "language": "en",
    "showPhonetic": True,
    "cardsPerSession": 10,
}


class ManagerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class StoreManager:
    """
    Builds, opens and owns the active record store.

    Example:
        manager = StoreManager()
        if manager.initialize():
            store = manager.get_store()
            store.add_vocabulary("Cat", "Con mèo", category="Basic")
        manager.close()
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        """
        Args:
            data_dir: Base directory for default store paths.
                      Uses the per-user data directory if not specified.
        """
        self._data_dir = data_dir
        self._store: Optional[RecordStoreProtocol] = None
        self._kind: Optional[str] = None
        self._path: Optional[Path] = None
        self.state = ManagerState.UNINITIALIZED
        self.last_error: Optional[Exception] = None

    @property
    def kind(self) -> Optional[str]:
        return self._kind

    @property
    def path(self) -> Optional[Path]:
        """Location of the active store file, once initialized."""
        return self._path

    def initialize(self, kind: str = STORE_JSON, options: Optional[StoreOptions] = None) -> bool:
        """
        Open the store of the given kind and seed empty tables.

        An already-open store is closed first. Unknown or unimplemented kinds
        fail without falling back to another backend; the error is logged
        and kept in ``last_error``.

        Returns:
            True if the manager is READY
        """
        if self._store is not None:
            self.close()

        options = options or StoreOptions()
        self.state = ManagerState.INITIALIZING
        self.last_error = None
        path = Path(options.path) if options.path else get_default_store_path(kind, self._data_dir)

        try:
            store = create_store(kind)
        except (UnsupportedStoreError, UnimplementedStoreError) as e:
            logger.error("Store initialization failed: %s", e)
            self.last_error = e
            self.state = ManagerState.FAILED
            return False

        if not store.initialize(path, options):
            logger.error("Store initialization failed: could not open %s", path)
            self.last_error = OSError(f"Could not open store at {path}")
            self.state = ManagerState.FAILED
            return False

        self._store = store
        self._kind = kind
        self._path = path
        self.state = ManagerState.READY
        logger.info("Store initialized: %s at %s", kind, path)

        self._seed_defaults()
        return True

    def _seed_defaults(self) -> None:
        """Add starter categories, words and settings to empty tables only."""
        store = self._store

        if not store.get_all_categories():
            for category in DEFAULT_CATEGORIES:
                store.add_category(
                    category["name"],
                    description=category["description"],
                    color=category["color"],
                )
            logger.debug("Seeded %d default categories", len(DEFAULT_CATEGORIES))

        if not store.get_all_vocabulary():
            for word in SAMPLE_VOCABULARY:
                store.add_vocabulary(
                    word["english"],
                    word["vietnamese"],
                    type=word["type"],
                    phonetic=word["phonetic"],
                    example=word["example"],
                    category=word["category"],
                )
            logger.debug("Seeded %d sample words", len(SAMPLE_VOCABULARY))

        if not store.get_all_settings():
            for key, value in DEFAULT_SETTINGS.items():
                store.save_setting(key, value)
            logger.debug("Seeded %d default settings", len(DEFAULT_SETTINGS))

    def get_store(self) -> RecordStoreProtocol:
        """
        Return the active store.

        Raises:
            StoreNotInitializedError: initialize() has not succeeded, or the
                manager has been closed since
        """
        if self.state is not ManagerState.READY or self._store is None:
            raise StoreNotInitializedError()
        return self._store

    def close(self) -> None:
        """Flush and close the store; get_store() fails until re-initialized."""
        if self._store is not None:
            if not self._store.close():
                logger.warning("Store flush on close failed for %s", self._path)
        self._store = None
        self._kind = None
        self._path = None
        self.state = ManagerState.CLOSED

    def is_healthy(self) -> bool:
        return (
            self.state is ManagerState.READY
            and self._store is not None
            and self._store.is_connected
        )

    def get_stats(self) -> Optional[StoreStats]:
        if self._store is None:
            return None
        return self._store.get_database_stats()
