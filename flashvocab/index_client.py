"""
HTTP client for the remote vocabulary search index.

Talks to a Solr-compatible core:

- ``GET  {core}/select``          queries (q, rows, start, sort, fl, fq...)
- ``POST {core}/update?commit=true`` upserts (JSON array) and deletes
- ``GET  {core}/admin/ping``      availability probe

The client keeps no state beyond its configuration. Public methods never
raise: transport and decode failures come back as an envelope with
``success: False`` and an ``error`` message.
"""

from __future__ import annotations

import logging
import random
import secrets
import time
from typing import Any, Optional

import httpx

from .config import IndexConfig
from .errors import IndexClientError

logger = logging.getLogger(__name__)

MATCH_ALL = "*:*"
DEFAULT_SORT = "word asc"
# Category facet size for get_statistics()
FACET_LIMIT = 20

# Failure reasons carried in the envelope's "reason" key
REASON_NOT_FOUND = "not_found"
REASON_UNAVAILABLE = "unavailable"


def _quote(value: Any) -> str:
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_filter_queries(filters: Optional[dict[str, Any]]) -> list[str]:
    """
    Turn ``{field: value}`` pairs into filter-query clauses.

    A list value becomes an OR of quoted values; anything else is a single
    quoted value. None values are skipped.
    """
    clauses = []
    for field_name, value in (filters or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            values = " OR ".join(_quote(v) for v in value)
            clauses.append(f"{field_name}:({values})")
        else:
            clauses.append(f"{field_name}:{_quote(value)}")
    return clauses


def generate_document_id() -> str:
    """Id for documents added without one: ``vocab_<millis>_<random>``."""
    return f"vocab_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _parse_facet_pairs(flat: list[Any]) -> list[dict[str, Any]]:
    """Solr returns facet fields as [term, count, term, count, ...]."""
    return [
        {"name": flat[i], "count": flat[i + 1]}
        for i in range(0, len(flat) - 1, 2)
    ]


def _failure(error: str, **extra: Any) -> dict[str, Any]:
    result: dict[str, Any] = {"success": False, "error": error, "data": [], "total": 0}
    result.update(extra)
    return result


class RemoteIndexClient:
    """HTTP client for one search index core."""

    def __init__(self, config: Optional[IndexConfig] = None):
        self._config = config or IndexConfig()
        self._base_url = self._config.url.rstrip("/")
        self._core_url = f"{self._base_url}/solr/{self._config.core}"

        client_kwargs: dict[str, Any] = {
            "base_url": self._core_url,
            "headers": {"Accept": "application/json"},
        }
        if self._config.timeout is not None:
            client_kwargs["timeout"] = self._config.timeout
        self._client = httpx.Client(**client_kwargs)

    @property
    def core_url(self) -> str:
        return self._core_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RemoteIndexClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _select(self, params: list[tuple[str, Any]]) -> dict[str, Any]:
        """GET /select -> decoded JSON body. Raises IndexClientError."""
        try:
            resp = self._client.get("/select", params=params)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise IndexClientError(
                f"Search rejected: {e.response.status_code} {e.response.text}"
            ) from e
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            raise IndexClientError(f"Search failed: {e}") from e
        if not isinstance(body, dict) or not isinstance(body.get("response"), dict):
            raise IndexClientError("Search failed: response envelope missing")
        return body

    def _update(self, payload: Any) -> None:
        """POST /update?commit=true. Raises IndexClientError."""
        try:
            resp = self._client.post(
                "/update",
                params={"commit": "true"},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IndexClientError(
                f"Update rejected: {e.response.status_code} {e.response.text}"
            ) from e
        except (httpx.HTTPError, RuntimeError) as e:
            raise IndexClientError(f"Update failed: {e}") from e

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def search_vocabulary(
        self,
        query: str = MATCH_ALL,
        rows: int = 10,
        start: int = 0,
        sort: Optional[str] = DEFAULT_SORT,
        fields: Optional[list[str]] = None,
        filters: Optional[dict[str, Any]] = None,
        facet_fields: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """
        Run a query against the index.

        Returns:
            ``{success, data, total, start, query, facets}`` on success,
            ``{success: False, error, data: [], total: 0}`` on failure
        """
        params: list[tuple[str, Any]] = [
            ("q", query or MATCH_ALL),
            ("rows", rows),
            ("start", start),
            ("fl", ",".join(fields or ["*"])),
            ("wt", "json"),
        ]
        if sort:
            params.append(("sort", sort))
        for clause in build_filter_queries(filters):
            params.append(("fq", clause))
        if facet_fields:
            params.append(("facet", "true"))
            params.append(("facet.limit", FACET_LIMIT))
            params.append(("facet.mincount", 1))
            for name in facet_fields:
                params.append(("facet.field", name))

        try:
            body = self._select(params)
        except IndexClientError as e:
            logger.warning("Index search error: %s", e)
            return _failure(str(e), reason=REASON_UNAVAILABLE)

        response = body["response"]
        return {
            "success": True,
            "data": response.get("docs", []),
            "total": response.get("numFound", 0),
            "start": response.get("start", start),
            "query": query,
            "facets": body.get("facet_counts"),
        }

    def get_vocabulary_by_id(self, doc_id: str) -> dict[str, Any]:
        """
        Fetch one document by exact id.

        A miss is reported with ``reason: "not_found"``; a transport
        problem with ``reason: "unavailable"``.
        """
        result = self.search_vocabulary(query=f"id:{_quote(doc_id)}", rows=1, sort=None)
        if not result["success"]:
            return {**result, "data": None}
        if not result["data"]:
            return {
                "success": False,
                "error": "Vocabulary not found",
                "data": None,
                "reason": REASON_NOT_FOUND,
            }
        return {"success": True, "data": result["data"][0]}

    def search_by_english_word(self, word: str, exact: bool = False) -> dict[str, Any]:
        query = f"word:{_quote(word)}" if exact else f"word:*{word}*"
        return self.search_vocabulary(query=query)

    def search_by_vietnamese_meaning(self, meaning: str, exact: bool = False) -> dict[str, Any]:
        query = f"meaning_vi:{_quote(meaning)}" if exact else f"meaning_vi:*{meaning}*"
        return self.search_vocabulary(query=query)

    def get_vocabulary_by_category(self, note: str) -> dict[str, Any]:
        return self.search_vocabulary(filters={"note": note})

    def get_random_vocabulary(
        self,
        count: int = 1,
        filters: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Sample ``count`` documents starting at a random offset.

        Counts the matches first, then reads from a random position in
        ``[0, max(1, total - count))``. This is positional sampling, not a
        uniform draw over documents.
        """
        counted = self.search_vocabulary(rows=0, filters=filters, sort=None)
        if not counted["success"] or counted["total"] == 0:
            return _failure("No vocabulary found", reason=REASON_NOT_FOUND)

        total = counted["total"]
        offset = random.randrange(max(1, total - count))
        return self.search_vocabulary(
            rows=count,
            start=offset,
            sort=f"random_{int(time.time() * 1000)} desc",
            filters=filters,
        )

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def add_vocabulary(self, vocabulary: dict[str, Any]) -> dict[str, Any]:
        """
        Upsert one document and commit.

        ``word``, ``meaning_vi`` and ``note`` are stored multi-valued; a
        scalar is wrapped in a list.
        """
        now = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        note = vocabulary.get("note")
        doc = {
            "id": vocabulary.get("id") or generate_document_id(),
            "word": _as_list(vocabulary.get("word")),
            "meaning_vi": _as_list(vocabulary.get("meaning_vi")),
            "note": _as_list(note) if note else [""],
            "created_at": now,
            "updated_at": now,
        }
        try:
            self._update([doc])
        except IndexClientError as e:
            logger.warning("Index add error: %s", e)
            return {"success": False, "error": str(e)}
        return {"success": True, "data": doc, "message": "Vocabulary added successfully"}

    def delete_vocabulary(self, doc_id: str) -> dict[str, Any]:
        try:
            self._update({"delete": {"id": doc_id}})
        except IndexClientError as e:
            logger.warning("Index delete error: %s", e)
            return {"success": False, "error": str(e)}
        return {"success": True, "message": "Vocabulary deleted successfully"}

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        """Total document count and a per-category (``note``) breakdown."""
        result = self.search_vocabulary(rows=0, sort=None, facet_fields=["note"])
        if not result["success"]:
            return {
                "success": False,
                "error": result["error"],
                "data": {"total": 0, "categories": []},
            }
        facet_fields = (result.get("facets") or {}).get("facet_fields") or {}
        return {
            "success": True,
            "data": {
                "total": result["total"],
                "categories": _parse_facet_pairs(facet_fields.get("note") or []),
            },
        }

    def is_available(self) -> bool:
        """GET /admin/ping -> True on HTTP 200. Never raises."""
        try:
            resp = self._client.get("/admin/ping")
            return resp.status_code == 200
        except (httpx.HTTPError, RuntimeError) as e:
            # RuntimeError: the client was closed
            logger.warning("Index availability check failed: %s", e)
            return False
