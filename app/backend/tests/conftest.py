# conftest.py
# Ensure the backend root is on sys.path during pytest collection so 'import recipe_generator.*' works.
# This makes tests runnable whether pytest is invoked from the backend folder or from the repo root.

import json
import sys
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import httpx
import pytest

# Location of this file: .../app/backend/tests/conftest.py
TESTS_DIR = Path(__file__).resolve().parent
BACKEND_ROOT = TESTS_DIR.parent  # .../app/backend

BACKEND_ROOT_STR = str(BACKEND_ROOT)
if BACKEND_ROOT_STR not in sys.path:
    # Insert at front so it takes precedence over other entries
    sys.path.insert(0, BACKEND_ROOT_STR)

from recipe_generator.bedrock import BedrockClient
from recipe_generator.config import BedrockSettings

Handler = Callable[[httpx.Request], httpx.Response]


def envelope_body(*texts: str) -> str:
    """A Bedrock messages-API response body with one text block per argument."""
    return json.dumps(
        {
            "id": "msg_test",
            "type": "message",
            "role": "assistant",
            "content": [{"type": "text", "text": t} for t in texts],
            "stop_reason": "end_turn",
        }
    )


@pytest.fixture(autouse=True)
def _isolated_aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep real AWS/Bedrock configuration on the developer machine out of tests."""
    for name in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "BEDROCK_REGION",
        "BEDROCK_ENDPOINT_URL",
        "BEDROCK_MODEL_ID",
        "BEDROCK_TIMEOUT_SECONDS",
        "CORS_ALLOW_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def bedrock_settings() -> BedrockSettings:
    return BedrockSettings(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    )


class RecordingBedrock:
    """Stands in for the model endpoint: records requests, replies via `handler`."""

    def __init__(self, handler: Optional[Handler] = None) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Handler = handler or (
            lambda request: httpx.Response(200, text=envelope_body("Pancakes."))
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def fake_bedrock() -> RecordingBedrock:
    return RecordingBedrock()


@pytest.fixture
def bedrock_client(
    bedrock_settings: BedrockSettings, fake_bedrock: RecordingBedrock
) -> BedrockClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock))
    return BedrockClient(bedrock_settings, http_client=http_client)


@pytest.fixture
def make_envelope() -> Callable[..., str]:
    return envelope_body
