from __future__ import annotations

import asyncio
import time

import httpx
import pytest
from botocore.credentials import Credentials, ReadOnlyCredentials

from recipe_generator.bedrock import BedrockClient
from recipe_generator.config import BedrockSettings
from recipe_generator.errors import ProtocolErrors, TransportFailure
from recipe_generator.prompts import build_prompt_payload


@pytest.mark.asyncio
async def test_invoke_posts_payload_to_model_path(bedrock_client, fake_bedrock) -> None:
    payload = build_prompt_payload(["eggs", "flour"])

    envelope = await bedrock_client.invoke(payload)

    assert envelope.status_code == 200
    request = fake_bedrock.requests[0]
    assert request.method == "POST"
    assert request.url.host == "bedrock-runtime.us-east-1.amazonaws.com"
    assert request.url.raw_path == (
        b"/model/anthropic.claude-3-sonnet-20240229-v1%3A0/invoke"
    )
    assert request.headers["content-type"] == "application/json"
    assert fake_bedrock.last_body == payload.body.model_dump()


@pytest.mark.asyncio
async def test_invoke_signs_request_with_sigv4(bedrock_client, fake_bedrock) -> None:
    await bedrock_client.invoke(build_prompt_payload(["rice"]))

    headers = fake_bedrock.requests[0].headers
    auth = headers["authorization"]
    assert auth.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
    assert "/us-east-1/bedrock/aws4_request" in auth
    assert "SignedHeaders=" in auth and "Signature=" in auth
    assert "x-amz-date" in headers
    assert "x-amz-security-token" not in headers


@pytest.mark.asyncio
async def test_invoke_sends_session_token_when_configured(fake_bedrock) -> None:
    settings = BedrockSettings(
        region="eu-central-1",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret",
        session_token="session-token",
    )
    client = BedrockClient(
        settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock)),
    )

    await client.invoke(build_prompt_payload(["rice"]))

    request = fake_bedrock.requests[0]
    assert request.url.host == "bedrock-runtime.eu-central-1.amazonaws.com"
    assert request.headers["x-amz-security-token"] == "session-token"
    assert "/eu-central-1/bedrock/aws4_request" in request.headers["authorization"]


@pytest.mark.asyncio
async def test_invoke_honours_endpoint_override(fake_bedrock) -> None:
    settings = BedrockSettings(endpoint_url="http://localhost:4566/")
    client = BedrockClient(
        settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock)),
        credentials=Credentials("AKIDEXAMPLE", "secret"),
    )

    await client.invoke(build_prompt_payload(["rice"]))

    assert str(fake_bedrock.requests[0].url).startswith("http://localhost:4566/model/")


@pytest.mark.asyncio
async def test_invoke_returns_body_text_untouched(bedrock_client, fake_bedrock) -> None:
    fake_bedrock.handler = lambda request: httpx.Response(200, text='{"content": []}')

    envelope = await bedrock_client.invoke(build_prompt_payload([]))

    assert envelope.body == '{"content": []}'


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_invoke_maps_authorization_rejection_to_transport_failure(
    bedrock_client, fake_bedrock, status_code: int
) -> None:
    fake_bedrock.handler = lambda request: httpx.Response(
        status_code, json={"message": "The security token included in the request is invalid."}
    )

    with pytest.raises(TransportFailure) as excinfo:
        await bedrock_client.invoke(build_prompt_payload(["rice"]))

    assert "security token" in excinfo.value.message


@pytest.mark.asyncio
async def test_invoke_maps_other_error_status_to_protocol_errors(
    bedrock_client, fake_bedrock
) -> None:
    fake_bedrock.handler = lambda request: httpx.Response(
        400, json={"message": "Malformed input request"}
    )

    with pytest.raises(ProtocolErrors) as excinfo:
        await bedrock_client.invoke(build_prompt_payload(["rice"]))

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Malformed input request"


@pytest.mark.asyncio
async def test_invoke_maps_network_error_to_transport_failure(bedrock_client, fake_bedrock) -> None:
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fake_bedrock.handler = fail

    with pytest.raises(TransportFailure):
        await bedrock_client.invoke(build_prompt_payload(["rice"]))


@pytest.mark.asyncio
async def test_invoke_maps_timeout_to_transport_failure(bedrock_client, fake_bedrock) -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    fake_bedrock.handler = slow

    with pytest.raises(TransportFailure) as excinfo:
        await bedrock_client.invoke(build_prompt_payload(["rice"]))

    assert "timed out" in excinfo.value.message


@pytest.mark.asyncio
async def test_invoke_without_credentials_is_transport_failure(
    fake_bedrock, monkeypatch: pytest.MonkeyPatch
) -> None:
    class NoCredentialsSession:
        def get_credentials(self):
            return None

    monkeypatch.setattr(
        "recipe_generator.bedrock.get_session", lambda: NoCredentialsSession()
    )
    client = BedrockClient(
        BedrockSettings(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock)),
    )

    with pytest.raises(TransportFailure):
        await client.invoke(build_prompt_payload(["rice"]))

    assert fake_bedrock.requests == []


@pytest.mark.asyncio
async def test_slow_credential_lookup_does_not_block_event_loop(
    fake_bedrock, monkeypatch: pytest.MonkeyPatch
) -> None:
    class SlowSession:
        def get_credentials(self):
            time.sleep(0.3)
            return Credentials("AKIDEXAMPLE", "secret")

    monkeypatch.setattr("recipe_generator.bedrock.get_session", lambda: SlowSession())
    client = BedrockClient(
        BedrockSettings(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock)),
    )
    ticks = 0

    async def ticker() -> None:
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    ticking = asyncio.create_task(ticker())
    try:
        await client.invoke(build_prompt_payload(["rice"]))
    finally:
        ticking.cancel()

    assert ticks > 5
    assert "Credential=AKIDEXAMPLE/" in fake_bedrock.requests[0].headers["authorization"]


@pytest.mark.asyncio
async def test_invoke_signs_with_frozen_credentials(fake_bedrock) -> None:
    class RotatingCredentials(Credentials):
        def get_frozen_credentials(self) -> ReadOnlyCredentials:
            return ReadOnlyCredentials("AKIDFROZEN", "frozen-secret", "frozen-token")

    client = BedrockClient(
        BedrockSettings(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_bedrock)),
        credentials=RotatingCredentials("AKIDLIVE", "live-secret", "live-token"),
    )

    await client.invoke(build_prompt_payload(["rice"]))

    headers = fake_bedrock.requests[0].headers
    assert "Credential=AKIDFROZEN/" in headers["authorization"]
    assert headers["x-amz-security-token"] == "frozen-token"
