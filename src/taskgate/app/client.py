"""HTTP transport to the analysis host."""

from __future__ import annotations

import base64
import http.client
import json
import logging
from typing import Any, Protocol
from urllib import error, parse, request

from taskgate.app.errors import MalformedResponse, NetworkError

logger = logging.getLogger(__name__)

TASK_PATH = "/api/ce/task"
GATE_STATUS_PATH = "/api/qualitygates/project_status"
ISSUES_SEARCH_PATH = "/api/issues/search"


class JsonTransport(Protocol):
    """Anything that can GET a path on the analysis host and return decoded JSON."""

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any: ...

    def get_text(self, path: str, params: dict[str, Any] | None = None) -> str: ...


class AnalysisClient:
    """Blocking GET client with basic auth (token as username, empty password)."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str = "",
        timeout_s: float = 10.0,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must not be empty")
        self.base_url = base_url.strip().rstrip("/")
        self.token = token
        self.timeout_s = timeout_s

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        raw = self._get_bytes(path, params)
        if not raw:
            raise MalformedResponse(f"Analysis host returned an empty body for {path}")
        try:
            return json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise MalformedResponse(f"Analysis host returned a non-UTF-8 body for {path}") from exc
        except json.JSONDecodeError as exc:
            raise MalformedResponse(f"Analysis host returned non-JSON response for {path}") from exc

    def get_text(self, path: str, params: dict[str, Any] | None = None) -> str:
        return self._get_bytes(path, params).decode("utf-8", errors="replace")

    def _get_bytes(self, path: str, params: dict[str, Any] | None = None) -> bytes:
        url = self.url_for(path, params)
        req = request.Request(url=url, method="GET", headers=self._headers())
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                return response.read()
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            logger.warning("Analysis host request failed path=%s status=%d", path, exc.code)
            raise NetworkError(
                f"Analysis host request {path} failed with status {exc.code}: {body[:300]}",
                status_code=exc.code,
            ) from exc
        except error.URLError as exc:
            logger.warning("Analysis host unreachable path=%s reason=%s", path, exc.reason)
            raise NetworkError(f"Analysis host request {path} failed: {exc.reason}") from exc
        except TimeoutError as exc:
            logger.warning("Analysis host request timed out path=%s timeout_s=%s", path, self.timeout_s)
            raise NetworkError(
                f"Analysis host request {path} timed out after {self.timeout_s:.1f}s"
            ) from exc
        except (http.client.HTTPException, OSError) as exc:
            # Dropped connections and truncated reads surface after the request is sent.
            logger.warning("Analysis host connection failed path=%s reason=%r", path, exc)
            raise NetworkError(f"Analysis host request {path} failed: {exc!r}") from exc

    def url_for(self, path: str, params: dict[str, Any] | None = None) -> str:
        url = f"{self.base_url}{path}"
        if not params:
            return url
        encoded = parse.urlencode(
            {key: value for key, value in params.items() if value is not None},
            doseq=True,
        )
        if not encoded:
            return url
        return f"{url}?{encoded}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = basic_auth_header(self.token)
        return headers


def basic_auth_header(token: str) -> str:
    credentials = base64.b64encode(f"{token}:".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"
