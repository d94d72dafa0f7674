import json
from enum import Enum
from typing import Dict

from backend.job_assist.models.schemas import (
    ANSWER_NOT_FOUND,
    INFORMATION_NOT_FOUND,
    NAME_NOT_FOUND,
    OUTPUT_MODELS,
    BioCompletenessOutput,
    ContentType,
    GenerationRequest,
    JobDetailsOutput,
    JobMatchOutput,
    RevisionRequest,
    output_json_schema,
)


class PromptVersion(Enum):
    V1 = "v1"


GROUNDING_RULE = (
    "Crucially, you must only use information explicitly present in the User Bio. "
    "Do NOT invent, exaggerate, or infer employers, titles, degrees, dates, years of "
    "experience, achievements, metrics, or tools that are not mentioned in the bio."
)

SENTINEL_RULE = (
    "Every field of the schema MUST be present. When the bio does not contain the "
    f"information for a field, use the exact placeholder strings '{NAME_NOT_FOUND}', "
    f"'{INFORMATION_NOT_FOUND}' or '{ANSWER_NOT_FOUND}' as described in the schema. "
    "Never omit a field and never use null."
)

_TASKS: Dict[ContentType, str] = {
    ContentType.COVER_LETTER: """
            You are a professional resume and cover letter writer. Write a compelling,
            professional, copy-paste-ready cover letter for the job description based on
            the user's bio. Keep it concise and focus only on the strongest points of the
            bio that align with the job description. Structure it like a formal letter and
            use Markdown **bolding** to highlight the key skills and qualifications that
            match the most important requirements. Put the whole letter in "text".
            """,
    ContentType.CV: """
            You are an expert CV writer. Analyze the user's bio and the job description and
            produce a complete, professional CV:
            1. Contact info: full name, email, phone number and location.
            2. Summary: a 2-4 sentence professional summary highlighting the qualifications
               most relevant to the target job.
            3. Work experience: for each job in the bio, the job title, company, duration and
               3-5 bullet points of responsibilities and achievements, using keywords from
               the job description where the bio supports them.
            4. Education: every qualification with degree, institution and year.
            5. Skills: the most relevant technical and soft skills from the bio.
            """,
    ContentType.DEEP_ANALYSIS: """
            You are an expert career coach and talent acquisition specialist. Perform a
            deep analysis comparing the user's bio against the job description and give
            actionable feedback. For strengths, cite evidence from the bio. For gaps,
            identify missing requirements. For improvement areas, give concrete suggestions.
            Every bullet point in keyStrengths, gaps and improvementAreas MUST begin with a
            concise bolded category followed by a colon, for example
            "**Experience Match:** ..." or "**Missing Skill:** ...".
            """,
    ContentType.Q_AND_A: """
            You are an expert at answering job application questions based on a user's
            professional background. Answer each question in "Questions to Answer" using the
            User Bio for information and the Job Description for context. If no questions
            are listed, find the explicit questions asked in the job description itself and
            answer those. If there are no questions anywhere, return an empty "qaPairs" list;
            never make up questions. Keep each answer clear and concise.
            """,
}


class Prompts:
    """Centralized prompt repository. Versioned prompts for LLM calls."""

    @staticmethod
    def get_generation_system(content_type: ContentType, version: PromptVersion) -> str:
        schema_json = output_json_schema(OUTPUT_MODELS[content_type])

        if version == PromptVersion.V1:
            return f"""
            {_TASKS[content_type].strip()}

            {GROUNDING_RULE}

            {SENTINEL_RULE}

            Return STRICT JSON only (no markdown fences, no extra text) matching the
            following schema:
            {schema_json}
            """
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

    @staticmethod
    def get_revision_system(content_type: ContentType, version: PromptVersion) -> str:
        schema_json = output_json_schema(OUTPUT_MODELS[content_type])

        if version == PromptVersion.V1:
            return f"""
            You are a professional editor. A previous response was generated for a user
            based on their bio and a job description, and the user has given feedback.

            Revise the "Original Response" according to the "User's Revision Comments".
            Edit it in place: keep everything the comments do not ask to change, and keep
            the original context from the Job Description and User Bio.

            The type of content to revise is: '{content_type.value}'.

            {GROUNDING_RULE}

            {SENTINEL_RULE}

            Return STRICT JSON only (no markdown fences, no extra text) matching the
            following schema:
            {schema_json}
            """
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

    @staticmethod
    def get_job_details_system(version: PromptVersion) -> str:
        schema_json = output_json_schema(JobDetailsOutput)
        if version == PromptVersion.V1:
            return f"""
            Analyze the job description and extract the company name and the specific
            job title. Do not guess: use the placeholders from the schema when absent.
            Return STRICT JSON matching the following schema:
            {schema_json}
            """
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

    @staticmethod
    def get_bio_completeness_system(version: PromptVersion) -> str:
        schema_json = output_json_schema(BioCompletenessOutput)
        if version == PromptVersion.V1:
            return f"""
            You are an expert resume analyzer. Check the user's professional bio for the
            presence of key sections. Be critical: a single sentence mentioning a skill is
            not enough to count as a skills section if it is not a clear list.

            - Contact info: a name, email address, or phone number.
            - Summary: a professional summary or objective statement.
            - Work experience: at least one job with a title and a company.
            - Education: a degree, institution, or certification.
            - Skills: a dedicated section or a clear list of professional skills.

            Return STRICT JSON matching the following schema:
            {schema_json}
            """
        else:
            raise ValueError(f"Unsupported prompt version: {version}")

    @staticmethod
    def get_job_match_system(version: PromptVersion) -> str:
        schema_json = output_json_schema(JobMatchOutput)
        if version == PromptVersion.V1:
            return f"""
            You are an expert career advisor. Identify where the user's bio matches the
            job requirements and where there are gaps, as two lists of simple bullet
            points. **Bold** important keywords or phrases.

            {GROUNDING_RULE}

            Return STRICT JSON matching the following schema:
            {schema_json}
            """
        else:
            raise ValueError(f"Unsupported prompt version: {version}")


def build_generation_prompt(request: GenerationRequest) -> str:
    sections = [
        f"Job Description:\n{request.job_description}",
        f"User Bio:\n{request.bio}",
    ]
    if request.content_type == ContentType.Q_AND_A:
        questions = request.questions.strip() or "(none provided)"
        sections.append(f"Questions to Answer:\n{questions}")
    return "\n\n".join(sections)


def build_revision_prompt(request: RevisionRequest) -> str:
    return "\n\n".join(
        [
            f"Job Description (for context):\n{request.job_description}",
            f"User Bio (for context):\n{request.bio}",
            f"Original Response (to be revised):\n{request.original_response}",
            f"User's Revision Comments:\n{json.dumps(request.revision_comments, ensure_ascii=False)}",
        ]
    )


def build_job_match_prompt(job_description: str, bio: str) -> str:
    return f"Job Description:\n{job_description}\n\nUser Bio:\n{bio}"
