from __future__ import annotations

import json
from typing import List, Literal, Sequence

from pydantic import BaseModel, Field

from recipe_generator.config import DEFAULT_MODEL_ID

ANTHROPIC_VERSION = "bedrock-2023-05-31"
MAX_TOKENS = 1000
INGREDIENT_SEPARATOR = ", "
INSTRUCTION_TEMPLATE = "Suggest a recipe idea using these ingredients: {joined}."
# Legacy completion-style turn markers expected by the Claude prompt convention.
HUMAN_TURN = "\n\nHuman: "
ASSISTANT_TURN = "\n\nAssistant:"


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class Message(BaseModel):
    role: Literal["user"] = "user"
    content: List[TextBlock]


class PromptBody(BaseModel):
    anthropic_version: str = ANTHROPIC_VERSION
    max_tokens: int = MAX_TOKENS
    messages: List[Message]


class PromptPayload(BaseModel):
    """A fully formed model-invocation request, independent of any network state."""

    resource_path: str = Field(..., description="e.g. /model/<model id>/invoke")
    method: Literal["POST"] = "POST"
    headers: dict = Field(default_factory=lambda: {"Content-Type": "application/json"})
    body: PromptBody

    @property
    def prompt_text(self) -> str:
        return self.body.messages[0].content[0].text

    def serialized_body(self) -> str:
        """JSON text sent on the wire."""
        return json.dumps(self.body.model_dump(), ensure_ascii=False)


def render_instruction(ingredients: Sequence[str]) -> str:
    """Join the ingredients, in the order given and untouched, into the instruction."""
    return INSTRUCTION_TEMPLATE.format(joined=INGREDIENT_SEPARATOR.join(ingredients))


def wrap_turns(instruction: str) -> str:
    return f"{HUMAN_TURN}{instruction}{ASSISTANT_TURN}"


def model_resource_path(model_id: str) -> str:
    return f"/model/{model_id}/invoke"


def build_prompt_payload(
    ingredients: Sequence[str], *, model_id: str = DEFAULT_MODEL_ID
) -> PromptPayload:
    """Shape an ingredient list into the model request payload.

    Total over any list (the empty list yields an empty ingredient clause) and
    free of side effects: identical input always produces an equal payload.
    """

    text = wrap_turns(render_instruction(ingredients))
    return PromptPayload(
        resource_path=model_resource_path(model_id),
        body=PromptBody(messages=[Message(content=[TextBlock(text=text)])]),
    )
