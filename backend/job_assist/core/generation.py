"""Job description + bio → one structured application artifact (LLM).

One model call per request, no retries. The caller gets a schema-valid result
or a ModelInvocationError / OutputShapeError, never a partial object.
"""

import logging

from backend.job_assist.core.prompts import PromptVersion, Prompts, build_generation_prompt
from backend.job_assist.core.structured_output import request_structured
from backend.job_assist.models.schemas import (
    OUTPUT_MODELS,
    ContentType,
    CoverLetterOutput,
    CvOutput,
    DeepAnalysisOutput,
    GenerationRequest,
    GenerationResult,
    QAndAOutput,
)
from backend.job_assist.services.llm_service import LLMService

logger = logging.getLogger(__name__)

# Sampling per content type: prose gets a little room, extraction stays tight.
_TEMPERATURES = {
    ContentType.COVER_LETTER: 0.4,
    ContentType.CV: 0.2,
    ContentType.DEEP_ANALYSIS: 0.3,
    ContentType.Q_AND_A: 0.2,
}

_MAX_TOKENS = {
    ContentType.COVER_LETTER: 1200,
    ContentType.CV: 2500,
    ContentType.DEEP_ANALYSIS: 2000,
    ContentType.Q_AND_A: 1500,
}


class Generator:
    """Generation gateway: one function per content type."""

    def __init__(self, llm_service: LLMService = None):
        """Initialize with optional LLM service for dependency injection."""
        self.llm = llm_service or LLMService()
        self.version = PromptVersion.V1

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Route a validated request to the generator for its content type.

        Raises:
            ModelInvocationError: the model call failed or timed out
            OutputShapeError: the model output does not match the schema
        """
        handlers = {
            ContentType.COVER_LETTER: self.generate_cover_letter,
            ContentType.CV: self.generate_cv,
            ContentType.DEEP_ANALYSIS: self.generate_deep_analysis,
            ContentType.Q_AND_A: self.generate_q_and_a,
        }
        return await handlers[request.content_type](request)

    async def generate_cover_letter(self, request: GenerationRequest) -> CoverLetterOutput:
        return await self._run(request)

    async def generate_cv(self, request: GenerationRequest) -> CvOutput:
        return await self._run(request)

    async def generate_deep_analysis(self, request: GenerationRequest) -> DeepAnalysisOutput:
        return await self._run(request)

    async def generate_q_and_a(self, request: GenerationRequest) -> QAndAOutput:
        result = await self._run(request)
        if not result.qa_pairs:
            logger.info("No questions supplied or found in the job description")
        return result

    async def _run(self, request: GenerationRequest):
        content_type = request.content_type
        logger.info(
            f"Generating {content_type.value} "
            f"(job description: {len(request.job_description)} chars, bio: {len(request.bio)} chars)"
        )
        result = await request_structured(
            self.llm,
            system_prompt=Prompts.get_generation_system(content_type, self.version),
            user_prompt=build_generation_prompt(request),
            output_model=OUTPUT_MODELS[content_type],
            operation=f"generate_{content_type.value}",
            temperature=_TEMPERATURES[content_type],
            max_tokens=_MAX_TOKENS[content_type],
        )
        logger.info(f"Generated {content_type.value}")
        return result
