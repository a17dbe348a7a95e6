"""
Vocabulary access through the remote search index.

VocabularyFacade is what front ends call for "smart" retrieval: paging,
study sessions, full-text search. It probes the index once at startup. If
the index is unreachable the facade is simply not ready, and every method
returns the same not-available envelope instead of raising:

    {"success": False, "error": "Search index not available", "data": <empty>}

``<empty>`` is the method's own empty value, the same one a successful
call with no results carries: ``[]`` for lists, ``None`` for a single
document, ``{"total": 0, "categories": []}`` for statistics. Callers check
``is_ready()`` (or ``success``) and fall back to the local store.

Index documents may hold ``word``, ``meaning_vi`` and ``note`` as either a
scalar or a list. Normalized records expose one display value per field
plus ``allWords`` and ``allMeanings`` with every variant.
"""

import logging
import math
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from .index_client import MATCH_ALL, RemoteIndexClient

logger = logging.getLogger(__name__)

INDEX_UNAVAILABLE = "Search index not available"

SEARCH_BOTH = "both"
SEARCH_ENGLISH = "english"
SEARCH_VIETNAMESE = "vietnamese"

# Characters with meaning in the index query syntax
_QUERY_SPECIAL_RE = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\])')

# Multi-valued fields cannot be sorted on, so paging always orders by id
PAGE_SORT = "id asc"


@dataclass
class PageRequest:
    """One page of the index. ``page`` is 0-based."""
    page: int = 0
    size: int = 10
    category: Optional[str] = None
    # Accepted for API compatibility; paging always sorts by id
    sort: Optional[str] = None


@dataclass
class SessionRequest:
    """Words for one study session."""
    count: int = 10
    category: Optional[str] = None
    difficulty: Optional[str] = None
    random: bool = True


@dataclass
class SearchRequest:
    limit: int = 20
    search_type: str = SEARCH_BOTH


def escape_query(text: str) -> str:
    """Backslash-escape characters that are syntax in the index query language."""
    return _QUERY_SPECIAL_RE.sub(r"\\\1", text)


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _joined(value: Any) -> Any:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


def _all(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [] if value is None else [value]


def normalize_document(doc: dict[str, Any], *, join: bool = False) -> dict[str, Any]:
    """
    Map an index document onto the canonical word shape.

    Args:
        doc: Raw index document
        join: Join every variant with ", " instead of taking the first one
    """
    pick = _joined if join else _first
    return {
        "id": doc.get("id"),
        "english": pick(doc.get("word")),
        "vietnamese": pick(doc.get("meaning_vi")),
        "note": pick(doc.get("note")),
        "allWords": _all(doc.get("word")),
        "allMeanings": _all(doc.get("meaning_vi")),
        "version": doc.get("_version_"),
    }


def generate_session_id() -> str:
    """Opaque id for correlating one study session on the client side."""
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def paginate(page: int, size: int, total: int) -> dict[str, Any]:
    return {
        "page": page,
        "size": size,
        "total": total,
        "totalPages": math.ceil(total / size) if size else 0,
        "hasNext": (page + 1) * size < total,
        "hasPrevious": page > 0,
    }


def _unavailable(data: Any) -> dict[str, Any]:
    """Not-ready envelope; ``data`` is the calling method's empty value."""
    return {"success": False, "error": INDEX_UNAVAILABLE, "data": data}


class VocabularyFacade:
    """Backend-agnostic vocabulary reads and writes over the search index."""

    def __init__(self, client: RemoteIndexClient):
        self._client = client
        self._ready = False

    @property
    def client(self) -> RemoteIndexClient:
        return self._client

    def initialize(self) -> bool:
        """Probe the index once and remember the answer."""
        self._ready = self._client.is_available()
        if not self._ready:
            logger.warning("Search index is not available, some features may be limited")
        return self._ready

    def is_ready(self) -> bool:
        return self._ready

    def _normalized(self, docs: list[Any], *, join: bool = False) -> list[dict[str, Any]]:
        return [normalize_document(doc, join=join) for doc in docs if isinstance(doc, dict)]

    def get_vocabulary_paginated(self, request: Optional[PageRequest] = None) -> dict[str, Any]:
        """
        One page of words plus a pagination envelope.

        ``request.sort`` is ignored: results are always ordered by id.
        """
        if not self._ready:
            return _unavailable([])

        request = request or PageRequest()
        page = max(0, request.page)
        size = max(1, request.size)
        filters = {"note": request.category} if request.category else None

        result = self._client.search_vocabulary(
            query=MATCH_ALL,
            rows=size,
            start=page * size,
            sort=PAGE_SORT,
            filters=filters,
        )
        if not result["success"]:
            return result

        return {
            "success": True,
            "data": self._normalized(result["data"]),
            "pagination": paginate(page, size, result["total"]),
        }

    def get_vocabulary_session(self, request: Optional[SessionRequest] = None) -> dict[str, Any]:
        """Words for a study session, random or in index order."""
        if not self._ready:
            return _unavailable([])

        request = request or SessionRequest()
        filters: dict[str, Any] = {}
        if request.category:
            filters["note"] = request.category
        if request.difficulty:
            filters["difficulty"] = request.difficulty

        if request.random:
            result = self._client.get_random_vocabulary(request.count, filters or None)
        else:
            result = self._client.search_vocabulary(
                query=MATCH_ALL, rows=request.count, filters=filters or None
            )
        if not result["success"]:
            return result

        return {
            "success": True,
            "data": self._normalized(result["data"]),
            "total": result["total"],
            "sessionId": generate_session_id(),
        }

    def search_vocabulary(self, text: str, request: Optional[SearchRequest] = None) -> dict[str, Any]:
        """Substring search on the English field, the Vietnamese field, or both."""
        if not self._ready:
            return _unavailable([])

        request = request or SearchRequest()
        escaped = escape_query(text or "")
        if request.search_type == SEARCH_ENGLISH:
            query = f"word:*{escaped}*"
        elif request.search_type == SEARCH_VIETNAMESE:
            query = f"meaning_vi:*{escaped}*"
        else:
            query = f"word:*{escaped}* OR meaning_vi:*{escaped}*"

        result = self._client.search_vocabulary(query=query, rows=request.limit, sort="score desc")
        if not result["success"]:
            return result

        return {
            "success": True,
            "data": self._normalized(result["data"], join=True),
            "total": result["total"],
            "query": text,
        }

    def get_vocabulary_by_id(self, doc_id: str) -> dict[str, Any]:
        if not self._ready:
            return _unavailable(None)

        result = self._client.get_vocabulary_by_id(doc_id)
        if not result["success"]:
            return result
        return {"success": True, "data": normalize_document(result["data"], join=True)}

    def get_categories(self) -> dict[str, Any]:
        """Categories present in the index, with document counts."""
        if not self._ready:
            return _unavailable([])

        stats = self._client.get_statistics()
        if not stats["success"]:
            return {"success": False, "error": stats["error"], "data": []}
        return {"success": True, "data": stats["data"]["categories"]}

    def add_vocabulary(
        self,
        english: str,
        vietnamese: str,
        note: str = "",
        doc_id: Optional[str] = None,
    ) -> dict[str, Any]:
        if not self._ready:
            return _unavailable(None)

        result = self._client.add_vocabulary({
            "id": doc_id or str(uuid.uuid4()),
            "word": [english],
            "meaning_vi": [vietnamese],
            "note": [note or ""],
        })
        if not result["success"]:
            return {**result, "data": None}
        return {
            "success": True,
            "data": {
                "id": result["data"]["id"],
                "english": english,
                "vietnamese": vietnamese,
                "note": note,
            },
            "message": "Vocabulary added successfully",
        }

    def get_statistics(self) -> dict[str, Any]:
        if not self._ready:
            return _unavailable({"total": 0, "categories": []})
        return self._client.get_statistics()
