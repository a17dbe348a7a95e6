"""
Shared pytest fixtures for flashvocab tests.

Stores are real and file-backed under tmp_path; the search index is never
contacted (httpx.Client is patched wherever a client is built).
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from flashvocab.config import AppConfig, IndexConfig
from flashvocab.json_store import JSONRecordStore
from flashvocab.manager import StoreManager


class FakeResponse:
    """Minimal httpx.Response stand-in."""

    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data if json_data is not None else {}
        self.text = text

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"{self.status_code}",
                request=httpx.Request("GET", "http://test"),
                response=self,
            )


def solr_body(docs, total=None, start=0, facets=None):
    """A /select response body."""
    body = {
        "responseHeader": {"status": 0},
        "response": {
            "numFound": len(docs) if total is None else total,
            "start": start,
            "docs": docs,
        },
    }
    if facets is not None:
        body["facet_counts"] = {"facet_fields": facets}
    return body


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "flashvocab.json"


@pytest.fixture
def store(store_path):
    """An initialized, empty JSON record store."""
    s = JSONRecordStore()
    assert s.initialize(store_path)
    yield s
    s.close()


@pytest.fixture
def manager(tmp_path):
    """A ready StoreManager with seeded defaults."""
    m = StoreManager(tmp_path)
    assert m.initialize()
    yield m
    m.close()


@pytest.fixture
def offline_config(tmp_path) -> AppConfig:
    """Config with the search index switched off."""
    return AppConfig(path=tmp_path, index=IndexConfig(enabled=False))


@pytest.fixture
def mock_http():
    """Patch httpx.Client in the index client; yields the client instance."""
    with patch("flashvocab.index_client.httpx.Client") as MockClient:
        instance = MagicMock()
        MockClient.return_value = instance
        yield instance
