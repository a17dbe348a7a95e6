"""
flashvocab - vocabulary flashcards with a local store and an optional search index.

Quick start:
    from flashvocab import StoreManager

    manager = StoreManager()
    manager.initialize()
    store = manager.get_store()
    word_id = store.add_vocabulary("Cat", "Con mèo", type="noun", category="Basic")
    store.record_learning_session(word_id, correct=True, response_time_ms=1200)
    print(store.get_word_statistics(word_id))
"""

from .config import AppConfig, IndexConfig, StoreOptions, load_or_create_config
from .errors import StoreNotInitializedError, UnimplementedStoreError, UnsupportedStoreError
from .index_client import RemoteIndexClient
from .json_store import JSONRecordStore
from .manager import ManagerState, StoreManager
from .service import VocabularyService
from .types import Category, LearningSession, ListOptions, VocabularyEntry
from .vocabulary_api import PageRequest, SearchRequest, SessionRequest, VocabularyFacade

__version__ = "0.1.0"
__all__ = [
    "AppConfig",
    "Category",
    "IndexConfig",
    "JSONRecordStore",
    "LearningSession",
    "ListOptions",
    "ManagerState",
    "PageRequest",
    "RemoteIndexClient",
    "SearchRequest",
    "SessionRequest",
    "StoreManager",
    "StoreNotInitializedError",
    "StoreOptions",
    "UnimplementedStoreError",
    "UnsupportedStoreError",
    "VocabularyEntry",
    "VocabularyFacade",
    "VocabularyService",
    "load_or_create_config",
]
