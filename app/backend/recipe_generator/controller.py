"""
Submission controller.

Drives one user-triggered recipe request at a time through
idle -> loading -> (succeeded | failed). Every failure, whether the call raised
or answered with errors, is reported through the same `Failure` value on the
state and the optional `on_failure` callback.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from recipe_generator.errors import TransportFailure
from recipe_generator.models import NO_DATA_RETURNED, AskBedrockResponse, QueryError

logger = logging.getLogger(__name__)

INGREDIENTS_FIELD = "ingredients"

QueryFn = Callable[[Sequence[str]], Awaitable[AskBedrockResponse]]


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    message: str
    errors: List[QueryError] = []


class SubmissionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SubmissionStatus = SubmissionStatus.IDLE
    result: Optional[str] = None
    failure: Optional[Failure] = None

    @property
    def busy(self) -> bool:
        return self.status is SubmissionStatus.LOADING

    @classmethod
    def loading(cls) -> "SubmissionState":
        return cls(status=SubmissionStatus.LOADING)

    @classmethod
    def succeeded(cls, text: str) -> "SubmissionState":
        return cls(status=SubmissionStatus.SUCCEEDED, result=text)

    @classmethod
    def failed(cls, failure: Failure) -> "SubmissionState":
        return cls(status=SubmissionStatus.FAILED, failure=failure)


def ingredients_from_form(form: Mapping[str, Any]) -> List[str]:
    """The single text field, untouched, as a one-element ingredient list."""
    value = form.get(INGREDIENTS_FIELD)
    return [str(value) if value is not None else ""]


def _summarize(errors: Sequence[QueryError]) -> str:
    return "; ".join(e.message for e in errors) or "The request reported errors"


class SubmissionController:
    def __init__(
        self,
        query: QueryFn,
        *,
        on_failure: Optional[Callable[[Failure], None]] = None,
    ) -> None:
        self._query = query
        self._on_failure = on_failure
        self._generation = 0
        self.state = SubmissionState()

    @property
    def busy(self) -> bool:
        return self.state.busy

    async def submit(self, form: Mapping[str, Any]) -> SubmissionState:
        """Handle one submit event and return the state it resolved to.

        A submission started later supersedes this one: if another submit
        happened while this call was outstanding, its response is dropped and
        the newer submission's state is returned unchanged.
        """
        self._generation += 1
        generation = self._generation
        self.state = SubmissionState.loading()
        ingredients = ingredients_from_form(form)

        outcome: Optional[SubmissionState] = None
        try:
            outcome = await self._resolve(ingredients)
        finally:
            if outcome is None:
                # Cancelled while waiting; never stay in loading.
                outcome = SubmissionState.failed(
                    Failure(kind=FailureKind.TRANSPORT, message="Request was cancelled")
                )
            self._settle(generation, outcome)
        return self.state

    async def _resolve(self, ingredients: List[str]) -> SubmissionState:
        try:
            response = await self._query(ingredients)
        except TransportFailure as exc:
            logger.error("Recipe request failed: %s", exc.message)
            return SubmissionState.failed(
                Failure(kind=FailureKind.TRANSPORT, message=exc.message)
            )
        except Exception as exc:
            logger.exception("Recipe request failed unexpectedly")
            return SubmissionState.failed(
                Failure(kind=FailureKind.TRANSPORT, message=str(exc) or repr(exc))
            )

        if response.has_errors:
            errors = list(response.errors or [])
            logger.warning("Recipe request returned errors: %s", errors)
            return SubmissionState.failed(
                Failure(
                    kind=FailureKind.PROTOCOL,
                    message=_summarize(errors),
                    errors=errors,
                )
            )
        return SubmissionState.succeeded(response.body or NO_DATA_RETURNED)

    def _settle(self, generation: int, outcome: SubmissionState) -> None:
        if generation != self._generation:
            logger.info(
                "Discarding stale response (submission %s, current %s)",
                generation,
                self._generation,
            )
            return
        self.state = outcome
        if outcome.failure is not None and self._on_failure is not None:
            self._on_failure(outcome.failure)

    def render(self) -> str:
        """Text for the result area of the page."""
        state = self.state
        if state.status is SubmissionStatus.LOADING:
            return "Loading..."
        if state.status is SubmissionStatus.SUCCEEDED:
            return state.result or ""
        if state.status is SubmissionStatus.FAILED and state.failure is not None:
            return f"An error occurred: {state.failure.message}"
        return ""
