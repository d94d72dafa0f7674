"""
Prometheus Metrics for the Generation Pipeline

Metrics Categories:
- Operation metrics: requests per operation/content type, success/failure, latency
- LLM metrics: provider calls, latency, token usage
- Error metrics: failures by error type, input/output validation failures
"""

import logging
from functools import wraps
from time import time
from typing import Any, Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from backend.job_assist.models.schemas import ContentType, OperationKind

logger = logging.getLogger(__name__)


# =============================================================================
# OPERATION METRICS
# =============================================================================

operation_requests_total = Counter(
    'job_assist_operation_requests_total',
    'Total number of dispatched operations',
    ['operation', 'content_type', 'status']  # status: success/failure
)

operation_latency_seconds = Histogram(
    'job_assist_operation_latency_seconds',
    'Dispatched operation duration in seconds',
    ['operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

operation_requests_in_progress = Gauge(
    'job_assist_operation_requests_in_progress',
    'Number of operations currently being processed',
    ['operation']
)


# =============================================================================
# LLM-SPECIFIC METRICS
# =============================================================================

llm_api_calls_total = Counter(
    'job_assist_llm_api_calls_total',
    'Total number of LLM API calls',
    ['provider', 'model', 'status']
)

llm_latency_seconds = Histogram(
    'job_assist_llm_latency_seconds',
    'LLM API call duration in seconds',
    ['provider', 'model'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 60.0]
)

llm_tokens_total = Counter(
    'job_assist_llm_tokens_total',
    'Total number of tokens consumed',
    ['operation', 'token_type']  # token_type: input, output
)


# =============================================================================
# ERROR METRICS
# =============================================================================

application_errors_total = Counter(
    'job_assist_errors_total',
    'Total number of errors',
    ['error_type', 'component']
)

validation_failures_total = Counter(
    'job_assist_validation_failures_total',
    'Total number of validation failures',
    ['validation_type']  # input, output
)


application_info = Info(
    'job_assist_application',
    'Application version and metadata'
)

application_info.info({
    'version': '0.1.0',
    'component': 'generation_service'
})


# =============================================================================
# UTILITY DECORATORS
# =============================================================================

def operation_label(operation: Any) -> str:
    """Known operation name, or 'unknown'. Labels never carry raw caller input."""
    try:
        return OperationKind(operation).value
    except (ValueError, TypeError):
        return 'unknown'


def content_type_label(raw: Any) -> str:
    """Known content type, 'none' when absent, 'invalid' otherwise."""
    if not isinstance(raw, dict):
        return 'none'
    value = raw.get('contentType', raw.get('content_type'))
    if value is None:
        return 'none'
    try:
        return ContentType(value).value
    except (ValueError, TypeError):
        return 'invalid'


def track_operation_metrics(func: Callable) -> Callable:
    """
    Decorator for ``Dispatcher.handle``-style coroutines.

    The wrapped coroutine receives ``(self, raw, operation)`` and returns an
    envelope; the envelope's ``success`` flag decides the status label.
    """
    @wraps(func)
    async def wrapper(self, raw: Any, operation: Any, *args, **kwargs) -> Any:
        name = operation_label(operation)
        operation_requests_in_progress.labels(operation=name).inc()
        start_time = time()

        try:
            envelope = await func(self, raw, operation, *args, **kwargs)
            operation_requests_total.labels(
                operation=name,
                content_type=content_type_label(raw),
                status='success' if envelope.success else 'failure'
            ).inc()
            return envelope

        finally:
            operation_latency_seconds.labels(operation=name).observe(time() - start_time)
            operation_requests_in_progress.labels(operation=name).dec()

    return wrapper


# =============================================================================
# METRIC RECORDING FUNCTIONS
# =============================================================================

def record_llm_call(provider: str, model: str, status: str, duration: float) -> None:
    """Record one provider round trip."""
    llm_api_calls_total.labels(provider=provider, model=model, status=status).inc()
    llm_latency_seconds.labels(provider=provider, model=model).observe(duration)


def record_llm_usage(operation: str, input_tokens: int, output_tokens: int) -> None:
    """
    Record LLM token usage.

    Args:
        operation: Operation name (generate_cv, revise_coverLetter, etc.)
        input_tokens: Number of input tokens
        output_tokens: Number of output tokens
    """
    llm_tokens_total.labels(operation=operation, token_type='input').inc(input_tokens)
    llm_tokens_total.labels(operation=operation, token_type='output').inc(output_tokens)


def record_validation_failure(validation_type: str) -> None:
    validation_failures_total.labels(validation_type=validation_type).inc()


def record_error(error_type: str, component: str) -> None:
    application_errors_total.labels(error_type=error_type, component=component).inc()


# =============================================================================
# METRICS ENDPOINT
# =============================================================================

def get_metrics() -> tuple[bytes, str]:
    """
    Get Prometheus metrics in text format.

    Returns:
        Tuple of (metrics_bytes, content_type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
