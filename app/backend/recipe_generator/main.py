from __future__ import annotations

import contextlib
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from recipe_generator.bedrock import BedrockClient
from recipe_generator.config import ApiSettings, BedrockSettings
from recipe_generator.models import AskBedrockResponse, ErrorResponse, RecipeRequest
from recipe_generator.services import ask_bedrock

# Basic logging setup: prefer the uvicorn logger when running under uvicorn, otherwise fall back to module logger.
logging.basicConfig(level=logging.INFO)
_uvicorn_logger = logging.getLogger("uvicorn.error")
logger = _uvicorn_logger if _uvicorn_logger.handlers else logging.getLogger(__name__)


# Helper to coerce various detail shapes into a structured { message, code?, ... } dict.
def _coerce_detail_to_object(detail: Any) -> Dict[str, Any]:
    """
    Accepts:
      - dict-like detail (raised as HTTPException(detail={...}))
      - string detail (either plain text or JSON serialized object)
      - other shapes

    Returns a dict with at minimum {"message": "<string>"} and preserves any
    `code` field when present.
    """
    if detail is None:
        return {"message": ""}

    if isinstance(detail, dict):
        out = dict(detail)
        msg = out.get("message") or out.get("detail") or out.get("error")
        out["message"] = str(msg) if msg is not None else ""
        return out

    if isinstance(detail, str):
        # Some code paths stringify objects; try to recover the structure.
        try:
            parsed = json.loads(detail)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return _coerce_detail_to_object(parsed)
        return {"message": detail}

    return {"message": str(detail)}


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Normalize request validation errors into
    { message: "<summary>", code: "validation_error", errors: [...] }
    """
    logger.debug(
        "Request validation error on %s %s: %s",
        request.method,
        request.url,
        exc.errors(),
    )

    parts = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        msg = e.get("msg", "")
        parts.append(f"{loc}: {msg}" if loc else msg)
    message = "; ".join(parts) if parts else "Invalid request"

    return JSONResponse(
        status_code=422,
        content={
            "message": message,
            "code": "validation_error",
            "errors": json.loads(json.dumps(exc.errors(), default=str)),
        },
    )


_STATUS_CODES = {
    400: "bad_request",
    401: "invalid_credentials",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Return every HTTP error, including routing 404/405 raised by Starlette,
    as a structured { message, code } object. An explicit `code` in the
    detail wins over the per-status default.
    """
    detail_obj = _coerce_detail_to_object(exc.detail)
    if not detail_obj.get("code"):
        detail_obj["code"] = _STATUS_CODES.get(exc.status_code, "http_error")

    logger.warning(
        "HTTPException raised: status=%s message=%s path=%s",
        exc.status_code,
        detail_obj.get("message"),
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=detail_obj,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler: log the full traceback server-side but return a safe,
    consistent message to the client in the { "message": ... } shape.
    """
    logger.error("Unhandled exception at %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error", "code": "internal_error"},
    )


def get_bedrock_client(request: Request) -> BedrockClient:
    """FastAPI dependency returning the application's model-invocation client."""
    return request.app.state.bedrock_client


def create_app(
    *,
    bedrock_settings: Optional[BedrockSettings] = None,
    api_settings: Optional[ApiSettings] = None,
    bedrock_client: Optional[BedrockClient] = None,
) -> FastAPI:
    """Build the API. Settings are read from the environment only when not given."""

    bedrock_settings = bedrock_settings or BedrockSettings.from_env()
    api_settings = api_settings or ApiSettings.from_env()

    # A client passed in belongs to the caller; only close the one built here.
    owns_client = bedrock_client is None

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_client:
            await app.state.bedrock_client.aclose()

    app = FastAPI(
        title="AI Recipe Generator Backend", version="0.1.0", lifespan=lifespan
    )
    app.state.bedrock_client = bedrock_client or BedrockClient(bedrock_settings)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Browser client origins (Vite dev server by default).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_model=dict)
    async def root() -> dict:
        """Simple health/smoke endpoint."""
        return {"status": "ok", "service": "recipe-backend"}

    @app.post(
        "/recipes/generate",
        response_model=AskBedrockResponse,
        responses={422: {"model": ErrorResponse}},
    )
    async def generate_recipe(
        request: RecipeRequest,
        client: BedrockClient = Depends(get_bedrock_client),
    ) -> AskBedrockResponse:
        """askBedrock: generate a recipe idea from ingredients."""
        return await ask_bedrock(request.ingredients, client)

    return app


app = create_app()
