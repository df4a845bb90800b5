"""
Model-invocation client.

Sends a `PromptPayload` to the Bedrock runtime endpoint, signed with AWS
Signature Version 4 through botocore, over an `httpx.AsyncClient`. Timeout
enforcement is left to httpx; no retries are attempted here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials, ReadOnlyCredentials
from botocore.session import get_session

from recipe_generator.config import BedrockSettings
from recipe_generator.errors import ProtocolErrors, TransportFailure
from recipe_generator.extractor import ModelResponseEnvelope
from recipe_generator.prompts import PromptPayload

logger = logging.getLogger(__name__)

_AUTH_STATUSES = (401, 403)


def _default_credentials() -> Optional[Credentials]:
    return get_session().get_credentials()


def _error_message(response: httpx.Response) -> str:
    # Bedrock error bodies look like {"message": "..."}; fall back to raw text.
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        msg = data.get("message") or data.get("Message")
        if msg:
            return str(msg)
    return response.text or response.reason_phrase


class BedrockClient:
    def __init__(
        self,
        settings: BedrockSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        credentials: Optional[Credentials] = None,
    ) -> None:
        self.settings = settings
        self.http_client = (
            httpx.AsyncClient(timeout=settings.timeout_seconds)
            if http_client is None
            else http_client
        )
        if credentials is None and settings.access_key_id:
            credentials = Credentials(
                settings.access_key_id,
                settings.secret_access_key or "",
                settings.session_token,
            )
        self._credentials = credentials

    async def _frozen_credentials(self) -> ReadOnlyCredentials:
        # botocore may hit instance metadata or read files here; keep it off the loop.
        if self._credentials is None:
            self._credentials = await asyncio.to_thread(_default_credentials)
        if self._credentials is None:
            raise TransportFailure("No AWS credentials available to sign the request")
        return await asyncio.to_thread(self._credentials.get_frozen_credentials)

    def url_for(self, payload: PromptPayload) -> str:
        # ':' in model ids must be percent-encoded on the wire, as the AWS SDKs do.
        return self.settings.base_url + quote(payload.resource_path, safe="/")

    def sign(
        self, payload: PromptPayload, credentials: ReadOnlyCredentials
    ) -> Dict[str, str]:
        """Return the headers of the SigV4-signed request for `payload`."""
        request = AWSRequest(
            method=payload.method,
            url=self.url_for(payload),
            data=payload.serialized_body().encode("utf-8"),
            headers=dict(payload.headers),
        )
        SigV4Auth(
            credentials,
            self.settings.signing_service,
            self.settings.region,
        ).add_auth(request)
        return dict(request.headers.items())

    async def invoke(self, payload: PromptPayload) -> ModelResponseEnvelope:
        """POST the payload and return the raw response envelope.

        Raises:
            TransportFailure: network error, timeout, missing credentials or
                an authorization rejection (401/403).
            ProtocolErrors: any other non-2xx response.
        """
        body = payload.serialized_body().encode("utf-8")
        headers = self.sign(payload, await self._frozen_credentials())
        url = self.url_for(payload)

        logger.debug("Invoking model %s", payload.resource_path)
        try:
            response = await self.http_client.request(
                payload.method, url, content=body, headers=headers
            )
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"Model invocation timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Model invocation failed: {exc}") from exc

        if response.status_code in _AUTH_STATUSES:
            raise TransportFailure(
                f"Model invocation not authorized ({response.status_code}): "
                f"{_error_message(response)}"
            )
        if response.is_error:
            raise ProtocolErrors(
                _error_message(response), status_code=response.status_code
            )
        return ModelResponseEnvelope(status_code=response.status_code, body=response.text)

    async def aclose(self) -> None:
        await self.http_client.aclose()
