"""
Dispatcher: the single entry point the UI calls.

Per call: Received → Validating → {Invalid | Valid} → Invoking →
{Succeeded | Failed}. Nothing is kept between calls, so one Dispatcher can
serve concurrent requests. ``handle`` never raises; every failure becomes an
error envelope with a message that is safe to show to the user.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Tuple, Type

from pydantic import BaseModel

from backend.job_assist.core.cv_editor import update_cv_field
from backend.job_assist.core.errors import (
    JobAssistError,
    UnsupportedContentTypeError,
    ValidationError,
)
from backend.job_assist.core.generation import Generator
from backend.job_assist.core.insights import InsightGenerator
from backend.job_assist.core.revision import Reviser
from backend.job_assist.models.schemas import (
    BioCompletenessRequest,
    CvFieldUpdateRequest,
    ErrorEnvelope,
    GenerationRequest,
    JobDetailsRequest,
    JobMatchRequest,
    OperationEnvelope,
    OperationKind,
    RevisionRequest,
    SuccessEnvelope,
    dump_result,
    validate_input,
)
from backend.job_assist.services.llm_service import LLMService
from backend.job_assist.utils.prometheus_metrics import (
    record_error,
    record_validation_failure,
    track_operation_metrics,
)

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, llm_service: LLMService = None):
        llm = llm_service or LLMService()
        self.generator = Generator(llm_service=llm)
        self.reviser = Reviser(llm_service=llm)
        self.insights = InsightGenerator(llm_service=llm)

    def _routes(self) -> Dict[OperationKind, Tuple[Type[BaseModel], Callable[[Any], Awaitable[BaseModel]]]]:
        return {
            OperationKind.GENERATE: (GenerationRequest, self.generator.generate),
            OperationKind.REVISE: (RevisionRequest, self.reviser.revise),
            OperationKind.EXTRACT_JOB_DETAILS: (JobDetailsRequest, self.insights.extract_job_details),
            OperationKind.ANALYZE_BIO_COMPLETENESS: (
                BioCompletenessRequest,
                self.insights.analyze_bio_completeness,
            ),
            OperationKind.ANALYZE_JOB_MATCH: (JobMatchRequest, self.insights.analyze_job_match),
            OperationKind.UPDATE_CV_FIELD: (CvFieldUpdateRequest, self._update_cv_field),
        }

    @staticmethod
    async def _update_cv_field(request: CvFieldUpdateRequest) -> BaseModel:
        return update_cv_field(request)

    @track_operation_metrics
    async def handle(self, raw: Any, operation: OperationKind) -> OperationEnvelope:
        """Validate ``raw``, run ``operation`` and wrap the outcome in an envelope."""
        try:
            operation = OperationKind(operation)
        except ValueError:
            return ErrorEnvelope(error=f"Unknown operation '{operation}'.")

        request_model, handler = self._routes()[operation]

        try:
            request = validate_input(raw, request_model)
        except ValidationError as e:
            record_validation_failure("input")
            logger.info(f"Rejected {operation.value} input: {e.errors}")
            return ErrorEnvelope(error=" ".join(e.errors))

        try:
            result = await handler(request)
        except Exception as e:
            return self._failure(operation, request, e)

        return SuccessEnvelope(data=dump_result(result))

    @staticmethod
    def _describe(operation: OperationKind, request: Any) -> str:
        content_type = getattr(request, "content_type", None)
        if operation == OperationKind.GENERATE:
            return f"generate {content_type.value}"
        if operation == OperationKind.REVISE:
            return f"revise {content_type.value}"
        return operation.value.replace("_", " ")

    def _failure(self, operation: OperationKind, request: Any, error: Exception) -> ErrorEnvelope:
        record_error(type(error).__name__, operation.value)
        action = self._describe(operation, request)

        if isinstance(error, ValidationError):
            logger.info(f"Rejected {action}: {error.errors}")
            return ErrorEnvelope(error=" ".join(error.errors))
        if isinstance(error, UnsupportedContentTypeError):
            logger.info(f"Rejected {action}: {error}")
            return ErrorEnvelope(error=error.user_message)
        if isinstance(error, JobAssistError):
            logger.error(f"Failed to {action}: {error}")
            return ErrorEnvelope(error=f"Failed to {action}: {error.user_message}")

        logger.error(f"Unexpected error during {action}: {error}", exc_info=True)
        return ErrorEnvelope(error=f"Failed to {action}: {JobAssistError.user_message}")
