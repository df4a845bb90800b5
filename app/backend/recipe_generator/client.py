"""Async client for the askBedrock query, as used by the submission controller."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from recipe_generator.errors import TransportFailure
from recipe_generator.models import AskBedrockResponse, QueryError

logger = logging.getLogger(__name__)

GENERATE_PATH = "/recipes/generate"


def _message_of(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text or response.reason_phrase


class RecipeQueryClient:
    def __init__(
        self,
        base_url: str = "",
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        access_token: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self.http_client = (
            httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
            if http_client is None
            else http_client
        )

    async def ask_bedrock(self, ingredients: Sequence[str]) -> AskBedrockResponse:
        """Run the query.

        Returns the body/errors result for any answered call. Raises
        TransportFailure when the call itself fails: network error, timeout,
        authorization rejection, server crash or an unreadable answer.
        """
        try:
            response = await self.http_client.post(
                GENERATE_PATH, json={"ingredients": list(ingredients)}
            )
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"Request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Request failed: {exc}") from exc

        if response.status_code in (401, 403) or response.status_code >= 500:
            raise TransportFailure(
                f"Request failed with status {response.status_code}: "
                f"{_message_of(response)}"
            )
        if response.is_error:
            # Rejected arguments are reported like any other query error.
            logger.debug("Query rejected with status %s", response.status_code)
            return AskBedrockResponse(
                errors=[QueryError(message=_message_of(response), errorType="bad_request")]
            )

        try:
            return AskBedrockResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportFailure(f"Unreadable response: {exc}") from exc

    async def aclose(self) -> None:
        await self.http_client.aclose()
