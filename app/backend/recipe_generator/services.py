from __future__ import annotations

import logging
from typing import Optional, Sequence

from recipe_generator.bedrock import BedrockClient
from recipe_generator.errors import EmptyContent, RecipeGenerationError
from recipe_generator.extractor import extract_recipe_text
from recipe_generator.models import AskBedrockResponse, QueryError
from recipe_generator.prompts import build_prompt_payload

logger = logging.getLogger(__name__)


async def ask_bedrock(
    ingredients: Optional[Sequence[str]], client: BedrockClient
) -> AskBedrockResponse:
    """Resolve the askBedrock query: ingredients in, recipe text or errors out.

    - Missing ingredients are treated as an empty list.
    - Transport, protocol and parse failures are returned as `errors`, never raised.
    - A parseable response without content blocks returns `body=None` and no
      errors, so the caller can show its "no data" fallback.
    """

    payload = build_prompt_payload(
        list(ingredients or []), model_id=client.settings.model_id
    )

    try:
        envelope = await client.invoke(payload)
        text = extract_recipe_text(envelope)
    except EmptyContent:
        logger.info("Model returned no content blocks")
        return AskBedrockResponse(body=None)
    except RecipeGenerationError as exc:
        logger.warning("askBedrock failed (%s): %s", exc.code, exc.message)
        return AskBedrockResponse(errors=[QueryError(**exc.to_error())])

    return AskBedrockResponse(body=text)
