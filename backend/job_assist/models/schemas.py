"""
Schema layer: every payload that crosses the generation boundary.

Wire format is camelCase (the browser UI sends ``jobDescription``,
``contentType`` ...); Python attributes stay snake_case. Structured outputs
never drop a field: data the bio does not contain is represented by one of
the placeholder sentinels below.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from backend.job_assist.core.errors import OutputShapeError, ValidationError

# Placeholder sentinels
NAME_NOT_FOUND = "[Name not found in bio]"
INFORMATION_NOT_FOUND = "[Information not found in bio]"
ANSWER_NOT_FOUND = "[Answer not found in bio]"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_ROLE = "Unknown Role"

JOB_DESCRIPTION_MIN_LENGTH = 50
BIO_MIN_LENGTH = 100
REVISION_COMMENTS_MIN_LENGTH = 5

ModelT = TypeVar("ModelT", bound=BaseModel)


class ContentType(str, Enum):
    COVER_LETTER = "coverLetter"
    CV = "cv"
    DEEP_ANALYSIS = "deepAnalysis"
    Q_AND_A = "qAndA"


REVISABLE_CONTENT_TYPES = frozenset({ContentType.COVER_LETTER, ContentType.Q_AND_A})


class OperationKind(str, Enum):
    GENERATE = "generate"
    REVISE = "revise"
    EXTRACT_JOB_DETAILS = "extract_job_details"
    ANALYZE_BIO_COMPLETENESS = "analyze_bio_completeness"
    ANALYZE_JOB_MATCH = "analyze_job_match"
    UPDATE_CV_FIELD = "update_cv_field"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_min_length(value: str, minimum: int, message: str) -> str:
    if len(value.strip()) < minimum:
        raise ValueError(message)
    return value


def _or_sentinel(value: Any, sentinel: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return sentinel
    return value


def _check_job_description(value: str) -> str:
    return _require_min_length(
        value,
        JOB_DESCRIPTION_MIN_LENGTH,
        f"Job description is too short: a minimum of {JOB_DESCRIPTION_MIN_LENGTH} "
        "characters is required.",
    )


def _check_bio(value: str) -> str:
    return _require_min_length(
        value,
        BIO_MIN_LENGTH,
        f"Bio is too short: a minimum of {BIO_MIN_LENGTH} characters is required "
        "to provide enough detail.",
    )


# =============================================================================
# REQUESTS
# =============================================================================

class GenerationRequest(CamelModel):
    job_description: str
    bio: str
    content_type: ContentType
    questions: str = ""

    @field_validator("job_description")
    @classmethod
    def _job_description_length(cls, v: str) -> str:
        return _check_job_description(v)

    @field_validator("bio")
    @classmethod
    def _bio_length(cls, v: str) -> str:
        return _check_bio(v)

    @field_validator("questions", mode="before")
    @classmethod
    def _questions_default(cls, v: Any) -> Any:
        return "" if v is None else v


class RevisionRequest(CamelModel):
    job_description: str
    bio: str
    original_response: str = Field(
        ...,
        description="The previous result serialized to text. For Q&A this is the JSON of QAndAOutput.",
    )
    revision_comments: str
    content_type: ContentType

    @field_validator("original_response", mode="before")
    @classmethod
    def _serialize_original(cls, v: Any) -> Any:
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False)
        return v

    @field_validator("original_response")
    @classmethod
    def _original_not_empty(cls, v: str) -> str:
        return _require_min_length(v, 1, "The original response to revise is missing.")

    @field_validator("revision_comments")
    @classmethod
    def _comments_length(cls, v: str) -> str:
        return _require_min_length(
            v,
            REVISION_COMMENTS_MIN_LENGTH,
            "Please provide some feedback to revise the response "
            f"(a minimum of {REVISION_COMMENTS_MIN_LENGTH} characters).",
        )


class JobDetailsRequest(CamelModel):
    job_description: str

    @field_validator("job_description")
    @classmethod
    def _not_empty(cls, v: str) -> str:
        return _require_min_length(v, 1, "Invalid job description provided.")


class BioCompletenessRequest(CamelModel):
    bio: str

    @field_validator("bio")
    @classmethod
    def _not_empty(cls, v: str) -> str:
        return _require_min_length(v, 1, "Bio must not be empty.")


class JobMatchRequest(CamelModel):
    job_description: str
    bio: str

    @field_validator("job_description")
    @classmethod
    def _job_description_length(cls, v: str) -> str:
        return _check_job_description(v)

    @field_validator("bio")
    @classmethod
    def _bio_length(cls, v: str) -> str:
        return _check_bio(v)


# =============================================================================
# GENERATION RESULTS
# =============================================================================

class CoverLetterOutput(CamelModel):
    text: str = Field(..., description="The cover letter in Markdown, copy-paste ready.")

    @field_validator("text")
    @classmethod
    def _not_empty(cls, v: str) -> str:
        return _require_min_length(v, 1, "text must not be empty.")


class WorkExperience(CamelModel):
    job_title: str = Field(..., description="The user's job title.")
    company: str = Field(..., description="The company where the user worked.")
    duration: str = Field(
        ...,
        description="The dates or duration of employment (e.g. '2020 - Present'). "
        f"If not found, return '{INFORMATION_NOT_FOUND}'.",
    )
    responsibilities: List[str] = Field(
        ..., description="Key responsibilities and achievements, phrased as bullet points."
    )

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, INFORMATION_NOT_FOUND)


class Education(CamelModel):
    degree: str = Field(..., description="The degree or certification obtained.")
    institution: str = Field(..., description="The name of the university or institution.")
    year: str = Field(
        default=INFORMATION_NOT_FOUND,
        description=f"The year of graduation or completion. If not found, return '{INFORMATION_NOT_FOUND}'.",
    )

    @field_validator("year", mode="before")
    @classmethod
    def _year_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, INFORMATION_NOT_FOUND)


class CvOutput(CamelModel):
    full_name: str = Field(..., description=f"The user's full name. If not found, return '{NAME_NOT_FOUND}'.")
    email: str = Field(..., description=f"The user's email address. If not found, return '{INFORMATION_NOT_FOUND}'.")
    phone: str = Field(..., description=f"The user's phone number. If not found, return '{INFORMATION_NOT_FOUND}'.")
    location: str = Field(
        ..., description=f"The user's location (e.g. 'City, State'). If not found, return '{INFORMATION_NOT_FOUND}'."
    )
    summary: str = Field(..., description="A 2-4 sentence professional summary, tailored to the job description.")
    work_experience: List[WorkExperience] = Field(..., description="The user's professional roles.")
    education: List[Education] = Field(..., description="The user's educational qualifications.")
    skills: List[str] = Field(..., description="Key skills relevant to the job description.")

    @field_validator("full_name", mode="before")
    @classmethod
    def _name_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, NAME_NOT_FOUND)

    @field_validator("email", "phone", "location", mode="before")
    @classmethod
    def _contact_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, INFORMATION_NOT_FOUND)


class OverallAlignment(CamelModel):
    score: str = Field(..., description='A percentage score (e.g. "85% Match").')
    justification: str = Field(..., description="A brief justification for the score.")


class AnalysisDetail(CamelModel):
    details: List[str] = Field(
        ...,
        description="Bullet points. Each MUST start with a bolded category, "
        "e.g. '**Experience Match:** ...' or '**Missing Skill:** ...'.",
    )


class LanguageAndTone(CamelModel):
    analysis: str = Field(..., description="An analysis of the job description's tone.")
    suggestion: str = Field(..., description="How to adjust the application to match that tone.")


class DeepAnalysisOutput(CamelModel):
    overall_alignment: OverallAlignment
    key_strengths: AnalysisDetail = Field(..., description="Key strengths against the job description.")
    gaps: AnalysisDetail = Field(..., description="Gaps between the bio and the job description.")
    improvement_areas: AnalysisDetail = Field(..., description="Where the bio could be improved for this role.")
    language_and_tone: LanguageAndTone


class QuestionAnswerPair(CamelModel):
    question: str = Field(..., description="The verbatim question.")
    answer: str = Field(
        ...,
        description="A concise, professional answer based on the user's bio. "
        f"If the answer cannot be found in the bio, return exactly '{ANSWER_NOT_FOUND}'.",
    )

    @field_validator("answer", mode="before")
    @classmethod
    def _answer_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, ANSWER_NOT_FOUND)


class QAndAOutput(CamelModel):
    qa_pairs: List[QuestionAnswerPair] = Field(
        ..., description="Question and answer pairs. Empty when there are no questions."
    )


GenerationResult = Union[CoverLetterOutput, CvOutput, DeepAnalysisOutput, QAndAOutput]

OUTPUT_MODELS: Dict[ContentType, Type[BaseModel]] = {
    ContentType.COVER_LETTER: CoverLetterOutput,
    ContentType.CV: CvOutput,
    ContentType.DEEP_ANALYSIS: DeepAnalysisOutput,
    ContentType.Q_AND_A: QAndAOutput,
}


# =============================================================================
# SUPPLEMENTARY OUTPUTS
# =============================================================================

class JobDetailsOutput(CamelModel):
    company_name: str = Field(
        ..., description=f"The name of the hiring company. If not found, return '{UNKNOWN_COMPANY}'."
    )
    job_title: str = Field(
        ..., description=f"The title of the position. If not found, return '{UNKNOWN_ROLE}'."
    )

    @field_validator("company_name", mode="before")
    @classmethod
    def _company_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, UNKNOWN_COMPANY)

    @field_validator("job_title", mode="before")
    @classmethod
    def _title_sentinel(cls, v: Any) -> Any:
        return _or_sentinel(v, UNKNOWN_ROLE)


class BioCompletenessOutput(CamelModel):
    has_contact_info: bool = Field(..., description="True if a name, email address or phone number is present.")
    has_summary: bool = Field(..., description="True if a professional summary or objective is present.")
    has_work_experience: bool = Field(..., description="True if at least one job with title and company is present.")
    has_education: bool = Field(..., description="True if a degree, institution or certification is present.")
    has_skills: bool = Field(..., description="True if a clear list of skills is present.")


class JobMatchOutput(CamelModel):
    matches: List[str] = Field(..., description="Where the bio matches the job requirements. Bold key phrases.")
    gaps: List[str] = Field(..., description="Job requirements the bio does not address. Bold key phrases.")


class CvFieldUpdateRequest(CamelModel):
    existing_cv: CvOutput
    field_path: str = Field(..., description="Dotted path, e.g. 'email' or 'workExperience.0.company'.")
    new_value: str

    @field_validator("field_path")
    @classmethod
    def _path_not_empty(cls, v: str) -> str:
        return _require_min_length(v, 1, "A field to update is required.")


# =============================================================================
# ENVELOPE
# =============================================================================

class SuccessEnvelope(CamelModel):
    success: Literal[True] = True
    data: Dict[str, Any]


class ErrorEnvelope(CamelModel):
    success: Literal[False] = False
    error: str


OperationEnvelope = Union[SuccessEnvelope, ErrorEnvelope]


# =============================================================================
# VALIDATORS
# =============================================================================

def format_errors(exc: PydanticValidationError) -> List[str]:
    """Flatten every pydantic error into a readable sentence."""
    messages: List[str] = []
    for err in exc.errors():
        msg = err.get("msg", "")
        if err.get("type") == "value_error":
            messages.append(msg.removeprefix("Value error, "))
            continue
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        messages.append(f"{loc}: {msg}.")
    return messages


def validate_input(raw: Any, model: Type[ModelT]) -> ModelT:
    """Validate caller input, collecting every violated constraint."""
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(format_errors(e)) from e


def validate_model_output(raw: Any, model: Type[ModelT]) -> ModelT:
    """Validate parsed model output against ``model``."""
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        errors = format_errors(e)
        raise OutputShapeError(
            f"{model.__name__} schema validation failed: {'; '.join(errors)}", errors
        ) from e


def validate_output(content_type: ContentType, raw: Any) -> GenerationResult:
    return validate_model_output(raw, OUTPUT_MODELS[ContentType(content_type)])


def output_json_schema(model: Type[BaseModel]) -> str:
    return json.dumps(model.model_json_schema(by_alias=True), indent=2)


def dump_result(result: BaseModel) -> Dict[str, Any]:
    return result.model_dump(by_alias=True)
