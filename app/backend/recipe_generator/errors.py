from __future__ import annotations

from typing import Any, Dict, List, Optional


class RecipeGenerationError(Exception):
    """Base class for every failure on the way from ingredients to recipe text."""

    code = "recipe_generation_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_error(self) -> Dict[str, Any]:
        """Render the failure as an entry of a query `errors` list."""
        return {"message": self.message, "errorType": self.code}


class TransportFailure(RecipeGenerationError):
    """Network, authorization or timeout failure at a call boundary."""

    code = "transport_failure"


class ProtocolErrors(RecipeGenerationError):
    """The call completed but reported application-level errors."""

    code = "protocol_errors"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = list(errors or [])


class MalformedEnvelope(RecipeGenerationError):
    """The model response body could not be parsed as the expected structure."""

    code = "malformed_envelope"


class EmptyContent(RecipeGenerationError):
    """The model response parsed but carried no content block."""

    code = "empty_content"
