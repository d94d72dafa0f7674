"""Smaller helper analyses the UI runs alongside generation (LLM)."""

import logging

from backend.job_assist.core.prompts import PromptVersion, Prompts, build_job_match_prompt
from backend.job_assist.core.structured_output import request_structured
from backend.job_assist.models.schemas import (
    BioCompletenessOutput,
    BioCompletenessRequest,
    JobDetailsOutput,
    JobDetailsRequest,
    JobMatchOutput,
    JobMatchRequest,
)
from backend.job_assist.services.llm_service import LLMService

logger = logging.getLogger(__name__)


class InsightGenerator:
    def __init__(self, llm_service: LLMService = None):
        self.llm = llm_service or LLMService()
        self.version = PromptVersion.V1

    async def extract_job_details(self, request: JobDetailsRequest) -> JobDetailsOutput:
        """Company name and job title, used to label saved jobs."""
        return await request_structured(
            self.llm,
            system_prompt=Prompts.get_job_details_system(self.version),
            user_prompt=request.job_description.strip(),
            output_model=JobDetailsOutput,
            operation="extract_job_details",
            temperature=0.0,
            max_tokens=200,
        )

    async def analyze_bio_completeness(self, request: BioCompletenessRequest) -> BioCompletenessOutput:
        result = await request_structured(
            self.llm,
            system_prompt=Prompts.get_bio_completeness_system(self.version),
            user_prompt=f"User Bio:\n{request.bio}",
            output_model=BioCompletenessOutput,
            operation="analyze_bio_completeness",
            temperature=0.0,
            max_tokens=200,
        )
        present = sum(result.model_dump().values())
        logger.info(f"Bio completeness: {present}/5 sections present")
        return result

    async def analyze_job_match(self, request: JobMatchRequest) -> JobMatchOutput:
        """Matches and gaps between the bio and the job requirements."""
        return await request_structured(
            self.llm,
            system_prompt=Prompts.get_job_match_system(self.version),
            user_prompt=build_job_match_prompt(request.job_description, request.bio),
            output_model=JobMatchOutput,
            operation="analyze_job_match",
            temperature=0.2,
            max_tokens=1200,
        )
