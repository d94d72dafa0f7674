"""Previous result + user feedback → revised result of the same shape (LLM)."""

import json
import logging

from backend.job_assist.core.errors import OutputShapeError, UnsupportedContentTypeError
from backend.job_assist.core.prompts import PromptVersion, Prompts, build_revision_prompt
from backend.job_assist.core.structured_output import request_structured
from backend.job_assist.models.schemas import (
    OUTPUT_MODELS,
    REVISABLE_CONTENT_TYPES,
    ContentType,
    GenerationResult,
    RevisionRequest,
    dump_result,
)
from backend.job_assist.services.llm_service import LLMService

logger = logging.getLogger(__name__)


def _canonical(text: str) -> str:
    """Normalize a serialized result so cosmetic JSON differences do not count."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return " ".join(text.split())
    return json.dumps(data, sort_keys=True, ensure_ascii=False)


class Reviser:
    """Revision gateway for cover letters and Q&A answers."""

    def __init__(self, llm_service: LLMService = None):
        self.llm = llm_service or LLMService()
        self.version = PromptVersion.V1

    @staticmethod
    def ensure_revisable(content_type: ContentType) -> None:
        if content_type not in REVISABLE_CONTENT_TYPES:
            raise UnsupportedContentTypeError(
                f"Revision is not supported for content type '{content_type.value}'"
            )

    async def revise(self, request: RevisionRequest) -> GenerationResult:
        """
        Revise ``request.original_response`` according to the feedback.

        The prompt carries the job description, bio, the original response
        verbatim and the comments, so the model edits in place instead of
        starting over.

        Raises:
            UnsupportedContentTypeError: content type is not revisable (no model call)
            ModelInvocationError: the model call failed or timed out
            OutputShapeError: output invalid, or identical to the original
        """
        self.ensure_revisable(request.content_type)
        content_type = request.content_type

        logger.info(
            f"Revising {content_type.value} "
            f"(comments: {len(request.revision_comments)} chars)"
        )
        result = await request_structured(
            self.llm,
            system_prompt=Prompts.get_revision_system(content_type, self.version),
            user_prompt=build_revision_prompt(request),
            output_model=OUTPUT_MODELS[content_type],
            operation=f"revise_{content_type.value}",
            temperature=0.4,
            max_tokens=2000,
        )

        if self._unchanged(content_type, request.original_response, result):
            raise OutputShapeError("Revision returned the original response unchanged")

        return result

    @staticmethod
    def _unchanged(content_type: ContentType, original: str, result) -> bool:
        if content_type == ContentType.COVER_LETTER:
            revised = result.text
            try:
                # The UI may send the whole {"text": ...} object instead of the text.
                parsed = json.loads(original)
                if isinstance(parsed, dict) and isinstance(parsed.get("text"), str):
                    original = parsed["text"]
            except json.JSONDecodeError:
                pass
            return _canonical(original) == _canonical(revised)
        return _canonical(original) == _canonical(json.dumps(dump_result(result)))
