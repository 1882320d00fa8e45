"""
Pytest fixtures for codescan tests.

Provides fake engine endpoints, canned model output and stub engine clients so
no test touches the network.
"""
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from codescan.config_loader import (
    CloudEngineConfig,
    EnginesConfig,
    LocalEngineConfig,
    ProbeConfig,
    ProjectConfig,
    ResilienceConfig,
    Settings,
)

CLOUD_URL = "http://cloud.test/api/review"
LOCAL_URL = "http://ollama.test/api/generate"
PROBE_URL = "http://proxy.test/health"

VALID_REVIEW = {
    "score": 72,
    "summary": "Readable code with one injection risk.",
    "issues": [
        {
            "id": 1,
            "severity": "Critical",
            "category": "OWASP Security",
            "line_reference": "Line 4",
            "title": "SQL Injection Risk",
            "problem": "User input is concatenated into the query.",
            "improved_code": "cursor.execute('SELECT * FROM users WHERE id = %s', (user_id,))",
            "explanation": "Parameterized queries prevent injection.",
        },
        {
            "id": 2,
            "severity": "Suggestion",
            "category": "Naming Conventions",
            "line_reference": "Line 1",
            "title": "Vague name",
            "problem": "`d` does not describe the value.",
            "improved_code": "user_record = fetch_user(user_id)",
            "explanation": "Names should reveal intent.",
        },
    ],
    "strengths": ["Small functions", "Consistent formatting"],
}


@pytest.fixture
def valid_review_text():
    """Model output as a chatty model would send it: prose + fenced JSON."""
    return "Here is my review:\n```json\n" + json.dumps(VALID_REVIEW, indent=2) + "\n```\nThanks!"


@pytest.fixture
def settings():
    """Settings pointing at fake endpoints, no retries, instant probe timeout."""
    return Settings(
        engines=EnginesConfig(
            cloud=CloudEngineConfig(url=CLOUD_URL, model="cloud-model", timeout=5.0),
            local=LocalEngineConfig(url=LOCAL_URL, model="local-model", timeout=5.0),
        ),
        probe=ProbeConfig(url=PROBE_URL, timeout=0.5),
        project=ProjectConfig(concurrency=2),
        resilience=ResilienceConfig(retry_attempts=1, retry_base_delay=0.0),
    )


def make_engine_client(text: str = "") -> MagicMock:
    """Stub engine client: generate() returns `text`, close() is awaitable."""
    client = MagicMock()
    client.generate = AsyncMock(return_value=text)
    client.close = AsyncMock()
    return client


def probe_transport(status_code: int = 200) -> httpx.MockTransport:
    """Transport answering every probe GET with `status_code`."""
    return httpx.MockTransport(lambda request: httpx.Response(status_code, json={"status": "ok"}))


def failing_probe_transport() -> httpx.MockTransport:
    """Transport that refuses every connection."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture
def cloud_client(valid_review_text):
    return make_engine_client(valid_review_text)


@pytest.fixture
def local_client(valid_review_text):
    return make_engine_client(valid_review_text)
