"""Inline edits to a generated CV.

The UI edits one field at a time (``email``, ``workExperience.0.company``,
``skills.3`` ...) and expects the complete CV back with nothing else touched.
"""
from __future__ import annotations

import logging
from typing import Any, List

from backend.job_assist.core.errors import ValidationError
from backend.job_assist.models.schemas import CvFieldUpdateRequest, CvOutput, dump_result, validate_input

logger = logging.getLogger(__name__)


def _parse_path(field_path: str) -> List[str]:
    parts = [p.strip() for p in field_path.split(".")]
    if not parts or any(not p for p in parts):
        raise ValidationError([f"Invalid field path '{field_path}'."])
    return parts


def _step(container: Any, key: str, field_path: str) -> Any:
    if isinstance(container, list):
        if not (key.isascii() and key.isdigit()) or int(key) >= len(container):
            raise ValidationError([f"Field '{field_path}' does not exist in the CV."])
        return int(key)
    if isinstance(container, dict):
        if key not in container:
            raise ValidationError([f"Field '{field_path}' does not exist in the CV."])
        return key
    raise ValidationError([f"Field '{field_path}' does not exist in the CV."])


def update_cv_field(request: CvFieldUpdateRequest) -> CvOutput:
    """Set the string at ``request.field_path`` and return the whole CV."""
    data = dump_result(request.existing_cv)
    parts = _parse_path(request.field_path)

    container: Any = data
    for key in parts[:-1]:
        container = container[_step(container, key, request.field_path)]

    leaf = _step(container, parts[-1], request.field_path)
    if not isinstance(container[leaf], str):
        raise ValidationError(
            [f"Field '{request.field_path}' is not a text field and cannot be edited directly."]
        )
    container[leaf] = request.new_value

    logger.info(f"Updated CV field {request.field_path}")
    return validate_input(data, CvOutput)
