"""
Caller-facing vocabulary service.

VocabularyService wires the store manager and the search-index facade
together and exposes the named operations a front end invokes. Every
operation is a coroutine returning a plain envelope::

    {"success": bool, "data": ..., "error": str | None}

Failures are reported in the envelope. The one exception is misuse: calling
a store operation before ``start()`` succeeded (or after ``close()``) raises
StoreNotInitializedError.

All store calls are serialized through a single asyncio.Lock, so each one
(including its file write) completes before the next begins. Index calls
run in worker threads outside the lock and may overlap each other.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from .config import AppConfig
from .index_client import RemoteIndexClient
from .logging_config import configure_ops_log, remove_ops_log
from .manager import StoreManager
from .protocol import RecordStoreProtocol
from .types import ListOptions
from .vocabulary_api import (
    INDEX_UNAVAILABLE,
    PageRequest,
    SearchRequest,
    SessionRequest,
    VocabularyFacade,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_INDEX = "index"
SOURCE_LOCAL = "local"


def _ok(data: Any = None, **extra: Any) -> dict[str, Any]:
    result = {"success": True, "data": data, "error": None}
    result.update(extra)
    return result


def _fail(error: str, data: Any = None, **extra: Any) -> dict[str, Any]:
    result = {"success": False, "data": data, "error": error}
    result.update(extra)
    return result


class VocabularyService:
    """
    Composition root for the data layer.

    Example:
        service = VocabularyService(load_or_create_config(get_data_dir()))
        await service.start()
        words = await service.load_vocabulary()
        await service.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        manager: Optional[StoreManager] = None,
        facade: Optional[VocabularyFacade] = None,
        ops_log: bool = True,
    ) -> None:
        """
        Args:
            config: Application configuration
            manager: Injected store manager (tests, custom setups)
            facade: Injected index facade, owned by the caller. By default
                    the service builds its own from ``config.index`` on
                    each start() (unless the index is disabled) and closes
                    it on close()
            ops_log: Attach the rotating operations log while running
        """
        self._config = config
        self._manager = manager or StoreManager(config.path)
        self._facade = facade
        self._owns_facade = facade is None
        self._ops_log = ops_log
        self._ops_handler = None
        self._lock = asyncio.Lock()

    @property
    def manager(self) -> StoreManager:
        return self._manager

    @property
    def facade(self) -> Optional[VocabularyFacade]:
        return self._facade

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, probe_index: bool = True) -> dict[str, Any]:
        """Open the store and (optionally) probe the search index."""
        if self._ops_log and self._ops_handler is None:
            try:
                self._ops_handler = configure_ops_log(self._config.path)
            except OSError as e:
                logger.warning("Operations log unavailable: %s", e)

        if self._owns_facade and self._config.index.enabled:
            self._close_owned_facade()
            self._facade = VocabularyFacade(RemoteIndexClient(self._config.index))

        async with self._lock:
            store_ready = self._manager.initialize(
                self._config.store_kind, self._config.store_options()
            )

        index_ready = False
        if probe_index and self._facade is not None:
            index_ready = await asyncio.to_thread(self._facade.initialize)

        status = {"store": store_ready, "index": index_ready}
        if not store_ready:
            return _fail(f"Store initialization failed: {self._manager.last_error}", status)
        return _ok(status)

    async def close(self) -> None:
        async with self._lock:
            self._manager.close()
        self._close_owned_facade()
        if self._ops_handler is not None:
            remove_ops_log(self._ops_handler)
            self._ops_handler = None

    def _close_owned_facade(self) -> None:
        # A closed httpx client cannot be reopened; start() builds a new one
        if self._owns_facade and self._facade is not None:
            self._facade.client.close()
            self._facade = None

    async def health_check(self) -> dict[str, Any]:
        return _ok({
            "store": self._manager.is_healthy(),
            "index": self.index_ready(),
        })

    def index_ready(self) -> bool:
        return self._facade is not None and self._facade.is_ready()

    async def _with_store(self, fn: Callable[[RecordStoreProtocol], T]) -> T:
        async with self._lock:
            store = self._manager.get_store()
            return fn(store)

    async def _with_index(self, fn: Callable[[VocabularyFacade], dict[str, Any]], empty: Any) -> dict[str, Any]:
        if self._facade is None:
            return _fail(INDEX_UNAVAILABLE, empty)
        result = await asyncio.to_thread(fn, self._facade)
        result.setdefault("error", None)
        return result

    # -------------------------------------------------------------------------
    # Vocabulary (local store)
    # -------------------------------------------------------------------------

    async def load_vocabulary(self, request: Optional[PageRequest] = None) -> dict[str, Any]:
        """
        Words for display: the search index first, the local store otherwise.

        Falls back when the index is not ready, fails, or has no words for
        the request. ``source`` in the envelope says which one answered.
        """
        request = request or PageRequest()
        if self.index_ready():
            result = await asyncio.to_thread(self._facade.get_vocabulary_paginated, request)
            if result["success"] and result["data"]:
                return _ok(result["data"], pagination=result["pagination"], source=SOURCE_INDEX)
            logger.info("Index returned no vocabulary, using local store")

        size = max(1, request.size)
        options = ListOptions(
            category=request.category,
            offset=max(0, request.page) * size,
            limit=size,
        )
        entries = await self._with_store(lambda s: s.get_all_vocabulary(options))
        return _ok([e.to_dict() for e in entries], source=SOURCE_LOCAL)

    async def get_all_vocabulary(self, options: Optional[ListOptions] = None) -> dict[str, Any]:
        entries = await self._with_store(lambda s: s.get_all_vocabulary(options))
        return _ok([e.to_dict() for e in entries])

    async def get_vocabulary_by_id(self, word_id: int) -> dict[str, Any]:
        entry = await self._with_store(lambda s: s.get_vocabulary_by_id(word_id))
        if entry is None:
            return _fail("Vocabulary not found")
        return _ok(entry.to_dict())

    async def add_vocabulary(
        self,
        english: str,
        vietnamese: str,
        *,
        type: Optional[str] = None,
        phonetic: Optional[str] = None,
        example: Optional[str] = None,
        category: Optional[str] = None,
    ) -> dict[str, Any]:
        english = (english or "").strip()
        vietnamese = (vietnamese or "").strip()
        if not english or not vietnamese:
            return _fail("Both english and vietnamese are required")
        word_id = await self._with_store(lambda s: s.add_vocabulary(
            english,
            vietnamese,
            type=type,
            phonetic=phonetic,
            example=example,
            category=category,
        ))
        return _ok({"id": word_id})

    async def update_vocabulary(self, word_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        if await self._with_store(lambda s: s.update_vocabulary(word_id, updates)):
            return _ok(True)
        return _fail("Vocabulary not updated", False)

    async def delete_vocabulary(self, word_id: int) -> dict[str, Any]:
        if await self._with_store(lambda s: s.delete_vocabulary(word_id)):
            return _ok(True)
        return _fail("Vocabulary not found", False)

    async def search_vocabulary(self, query: str) -> dict[str, Any]:
        entries = await self._with_store(lambda s: s.search_vocabulary(query))
        return _ok([e.to_dict() for e in entries])

    # -------------------------------------------------------------------------
    # Learning progress
    # -------------------------------------------------------------------------

    async def record_session(
        self,
        word_id: int,
        correct: bool,
        response_time_ms: float = 0.0,
        session_type: Optional[str] = None,
    ) -> dict[str, Any]:
        session_id = await self._with_store(
            lambda s: s.record_learning_session(word_id, correct, response_time_ms, session_type)
        )
        return _ok({"id": session_id})

    async def get_word_statistics(self, word_id: int) -> dict[str, Any]:
        stats = await self._with_store(lambda s: s.get_word_statistics(word_id))
        return _ok(stats.to_dict())

    async def get_progress(self) -> dict[str, Any]:
        progress = await self._with_store(lambda s: s.get_overall_progress())
        return _ok(progress.to_dict())

    async def update_word_mastery(self, word_id: int, mastery_level: int) -> dict[str, Any]:
        if await self._with_store(lambda s: s.update_word_mastery(word_id, mastery_level)):
            return _ok(True)
        return _fail("Vocabulary not found", False)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def add_category(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> dict[str, Any]:
        name = (name or "").strip()
        if not name:
            return _fail("Category name is required")
        category_id = await self._with_store(
            lambda s: s.add_category(name, description=description, color=color)
        )
        return _ok({"id": category_id})

    async def get_categories(self) -> dict[str, Any]:
        categories = await self._with_store(lambda s: s.get_all_categories())
        return _ok([c.to_dict() for c in categories])

    async def update_category(self, category_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        if await self._with_store(lambda s: s.update_category(category_id, updates)):
            return _ok(True)
        return _fail("Category not updated", False)

    async def delete_category(self, category_id: int) -> dict[str, Any]:
        if await self._with_store(lambda s: s.delete_category(category_id)):
            return _ok(True)
        return _fail("Category not found", False)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def save_setting(self, key: str, value: Any) -> dict[str, Any]:
        if await self._with_store(lambda s: s.save_setting(key, value)):
            return _ok(True)
        return _fail(f"Setting {key!r} not saved", False)

    async def get_setting(self, key: str, default: Any = None) -> dict[str, Any]:
        return _ok(await self._with_store(lambda s: s.get_setting(key, default)))

    async def get_all_settings(self) -> dict[str, Any]:
        return _ok(await self._with_store(lambda s: s.get_all_settings()))

    async def delete_setting(self, key: str) -> dict[str, Any]:
        if await self._with_store(lambda s: s.delete_setting(key)):
            return _ok(True)
        return _fail(f"Setting {key!r} not found", False)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def get_stats(self) -> dict[str, Any]:
        stats = await self._with_store(lambda s: s.get_database_stats())
        return _ok(stats.to_dict())

    async def backup(self, backup_path: Path) -> dict[str, Any]:
        if await self._with_store(lambda s: s.backup(Path(backup_path))):
            return _ok(str(backup_path))
        return _fail(f"Backup to {backup_path} failed")

    async def restore(self, backup_path: Path) -> dict[str, Any]:
        if await self._with_store(lambda s: s.restore(Path(backup_path))):
            return _ok(str(backup_path))
        return _fail(f"Restore from {backup_path} failed")

    async def import_vocabulary(self, file_path: Path, fmt: str) -> dict[str, Any]:
        result = await self._with_store(lambda s: s.import_vocabulary(Path(file_path), fmt))
        if result.error:
            return _fail(result.error, result.to_dict())
        return _ok(result.to_dict())

    async def export_vocabulary(
        self,
        file_path: Path,
        fmt: str,
        options: Optional[ListOptions] = None,
    ) -> dict[str, Any]:
        if await self._with_store(lambda s: s.export_vocabulary(Path(file_path), fmt, options)):
            return _ok(str(file_path))
        return _fail(f"Export to {file_path} failed")

    # -------------------------------------------------------------------------
    # Search index
    # -------------------------------------------------------------------------

    async def get_vocabulary_paginated(self, request: Optional[PageRequest] = None) -> dict[str, Any]:
        return await self._with_index(lambda f: f.get_vocabulary_paginated(request), [])

    async def get_vocabulary_session(self, request: Optional[SessionRequest] = None) -> dict[str, Any]:
        return await self._with_index(lambda f: f.get_vocabulary_session(request), [])

    async def search_index(self, text: str, request: Optional[SearchRequest] = None) -> dict[str, Any]:
        return await self._with_index(lambda f: f.search_vocabulary(text, request), [])

    async def get_index_vocabulary_by_id(self, doc_id: str) -> dict[str, Any]:
        return await self._with_index(lambda f: f.get_vocabulary_by_id(doc_id), None)

    async def get_index_categories(self) -> dict[str, Any]:
        return await self._with_index(lambda f: f.get_categories(), [])

    async def add_index_vocabulary(self, english: str, vietnamese: str, note: str = "") -> dict[str, Any]:
        return await self._with_index(lambda f: f.add_vocabulary(english, vietnamese, note), None)

    async def get_index_statistics(self) -> dict[str, Any]:
        return await self._with_index(lambda f: f.get_statistics(), {"total": 0, "categories": []})
