from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

NO_DATA_RETURNED = "No data returned"


class RecipeRequest(BaseModel):
    """Arguments of the askBedrock query."""

    ingredients: List[str] = Field(
        default_factory=list, description="Ingredient names, in the order typed"
    )


class QueryError(BaseModel):
    """One entry of a query `errors` list."""

    message: str
    errorType: Optional[str] = None


class AskBedrockResponse(BaseModel):
    """Result of the askBedrock query: a body text, or a list of errors.

    `body` is None when the model answered with no content; callers show the
    "No data returned" fallback for that case.
    """

    body: Optional[str] = None
    errors: Optional[List[QueryError]] = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ErrorResponse(BaseModel):
    """Structured HTTP error body."""

    message: str
    code: Optional[str] = None
