from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterator

import pytest
import uvicorn

from taskgate.mock_systems.analysis_api import create_app

MOCK_TOKEN = "squ_integration"


@pytest.fixture
def mock_server_url() -> Iterator[str]:
    """Serve a fresh mock analysis host over real HTTP on an ephemeral port."""
    if os.getenv("RUN_MOCK_SERVER_INTEGRATION_TESTS") != "1":
        pytest.skip("Set RUN_MOCK_SERVER_INTEGRATION_TESTS=1 to run against a live mock server.")

    server = uvicorn.Server(
        uvicorn.Config(create_app(token=MOCK_TOKEN), host="127.0.0.1", port=0, log_level="warning")
    )
    thread = threading.Thread(target=server.run, name="mock-analysis-host", daemon=True)
    thread.start()
    try:
        deadline = time.monotonic() + 10.0
        while not server.started:
            if not thread.is_alive() or time.monotonic() > deadline:
                pytest.fail("Mock analysis server did not start")
            time.sleep(0.05)
        port = server.servers[0].sockets[0].getsockname()[1]
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        thread.join(timeout=5.0)
