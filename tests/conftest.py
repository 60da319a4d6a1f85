from __future__ import annotations

import io
from collections.abc import Iterator
from urllib import error, parse, request

import pytest
from fastapi.testclient import TestClient

from fakes import FakeHTTPResponse
from taskgate.app import client as client_module
from taskgate.config.settings import get_settings
from taskgate.mock_systems.analysis_api import AnalysisStore, create_app


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def no_sleep() -> list[float]:
    return []


@pytest.fixture
def mock_store() -> AnalysisStore:
    return AnalysisStore()


@pytest.fixture
def mock_host(monkeypatch: pytest.MonkeyPatch, mock_store: AnalysisStore) -> TestClient:
    """Route ``urllib.request.urlopen`` from the client into the mock analysis app."""
    test_client = TestClient(create_app(store=mock_store))

    def fake_urlopen(req: request.Request, timeout: float):
        _ = timeout
        url = parse.urlsplit(req.full_url)
        target = f"{url.path}?{url.query}" if url.query else url.path
        response = test_client.get(target, headers=dict(req.header_items()))
        if response.status_code >= 400:
            raise error.HTTPError(
                req.full_url,
                response.status_code,
                response.reason_phrase,
                response.headers,
                io.BytesIO(response.content),
            )
        return FakeHTTPResponse(response.content, status=response.status_code)

    monkeypatch.setattr(client_module.request, "urlopen", fake_urlopen)
    return test_client
