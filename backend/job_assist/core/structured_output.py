"""LLM text → validated pydantic model, in one parse attempt."""

import json
import logging
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel

from backend.job_assist.core.errors import OutputShapeError
from backend.job_assist.models.schemas import validate_model_output
from backend.job_assist.utils.prometheus_metrics import record_validation_failure

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_RESPONSE_FORMAT = {"type": "json_object"}


def strip_markdown_fences(raw: str) -> str:
    """Remove a ```json ... ``` wrapper (common with Gemini)."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.strip().endswith("```"):
            text = text.rsplit("```", 1)[0]
    return text.strip()


def coerce_json(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise OutputShapeError(f"Unexpected LLM output type: {type(raw).__name__}")
    if not raw.strip():
        raise OutputShapeError("Empty response from LLM")

    content = strip_markdown_fences(raw)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM response as JSON ({len(content)} chars): {e}")
        logger.debug(f"Raw response: {content[:500]}")
        raise OutputShapeError(f"LLM returned invalid JSON: {str(e)}")

    if not isinstance(data, dict):
        raise OutputShapeError(f"LLM returned JSON {type(data).__name__}, expected an object")
    return data


def parse_structured_output(raw: Any, model: Type[ModelT]) -> ModelT:
    try:
        data = coerce_json(raw)
        return validate_model_output(data, model)
    except OutputShapeError as e:
        record_validation_failure("output")
        logger.error(f"Output shape check failed for {model.__name__}: {e}")
        raise


async def request_structured(
    llm_service,
    *,
    system_prompt: str,
    user_prompt: str,
    output_model: Type[ModelT],
    operation: str,
    temperature: float = 0.3,
    max_tokens: int = 2000,
) -> ModelT:
    """
    One JSON-mode model call validated against ``output_model``.

    Raises:
        ModelInvocationError: the model call failed (propagated from the service)
        OutputShapeError: the answer is not JSON or does not fit the schema
    """
    response = await llm_service.generate_response(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
        response_format=JSON_RESPONSE_FORMAT,
        operation=operation,
    )
    return parse_structured_output(response.get("content"), output_model)
