"""
Unit tests for the schema layer: input rules, output shapes, sentinels.
"""

import json

import pytest

from backend.job_assist.core.errors import OutputShapeError, ValidationError
from backend.job_assist.models.schemas import (
    ANSWER_NOT_FOUND,
    INFORMATION_NOT_FOUND,
    NAME_NOT_FOUND,
    ContentType,
    CoverLetterOutput,
    CvOutput,
    DeepAnalysisOutput,
    GenerationRequest,
    QAndAOutput,
    RevisionRequest,
    validate_input,
    validate_output,
)


class TestGenerationRequest:

    def test_accepts_camel_case_wire_format(self, job_description, bio):
        request = validate_input(
            {"jobDescription": job_description, "bio": bio, "contentType": "coverLetter"},
            GenerationRequest,
        )
        assert request.job_description == job_description
        assert request.content_type == ContentType.COVER_LETTER
        assert request.questions == ""

    def test_null_questions_become_empty(self, job_description, bio):
        request = validate_input(
            {"jobDescription": job_description, "bio": bio, "contentType": "qAndA", "questions": None},
            GenerationRequest,
        )
        assert request.questions == ""

    def test_short_bio_mentions_bio_and_minimum(self, job_description):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(
                {"jobDescription": job_description, "bio": "short", "contentType": "cv"},
                GenerationRequest,
            )
        assert len(exc_info.value.errors) == 1
        message = exc_info.value.errors[0]
        assert "Bio" in message
        assert "minimum of 100 characters" in message

    def test_reports_every_violation_at_once(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(
                {"jobDescription": "too short", "bio": "short", "contentType": "poem"},
                GenerationRequest,
            )
        errors = exc_info.value.errors
        assert len(errors) == 3
        assert any("Job description" in e for e in errors)
        assert any("Bio" in e for e in errors)
        assert any("contentType" in e for e in errors)

    def test_whitespace_padding_does_not_satisfy_minimum(self, job_description):
        with pytest.raises(ValidationError):
            validate_input(
                {"jobDescription": job_description, "bio": "x" + " " * 200, "contentType": "cv"},
                GenerationRequest,
            )

    def test_missing_fields_are_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input({}, GenerationRequest)
        assert len(exc_info.value.errors) == 3

    def test_non_object_input_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_input("not a dict", GenerationRequest)


class TestRevisionRequest:

    def _raw(self, job_description, bio, **overrides):
        raw = {
            "jobDescription": job_description,
            "bio": bio,
            "originalResponse": "Dear Hiring Manager, ...",
            "revisionComments": "make it more formal",
            "contentType": "coverLetter",
        }
        raw.update(overrides)
        return raw

    def test_object_original_response_is_serialized(self, job_description, bio):
        original = {"qaPairs": [{"question": "Why us?", "answer": "Because."}]}
        request = validate_input(
            self._raw(job_description, bio, originalResponse=original, contentType="qAndA"),
            RevisionRequest,
        )
        assert json.loads(request.original_response) == original

    def test_short_comments_rejected(self, job_description, bio):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(self._raw(job_description, bio, revisionComments="ok"), RevisionRequest)
        assert "feedback" in exc_info.value.errors[0]

    def test_non_revisable_type_passes_schema(self, job_description, bio):
        # The revision gateway, not the schema, rejects cv/deepAnalysis.
        request = validate_input(self._raw(job_description, bio, contentType="cv"), RevisionRequest)
        assert request.content_type == ContentType.CV


class TestOutputs:

    def test_cover_letter_requires_text(self):
        with pytest.raises(OutputShapeError):
            validate_output(ContentType.COVER_LETTER, {"text": "   "})
        with pytest.raises(OutputShapeError):
            validate_output(ContentType.COVER_LETTER, {"responses": "Dear..."})

    def test_validate_output_picks_model_by_content_type(self, cv_payload, deep_analysis_payload):
        assert isinstance(validate_output(ContentType.COVER_LETTER, {"text": "Hi"}), CoverLetterOutput)
        assert isinstance(validate_output(ContentType.CV, cv_payload), CvOutput)
        assert isinstance(validate_output(ContentType.DEEP_ANALYSIS, deep_analysis_payload), DeepAnalysisOutput)
        assert isinstance(validate_output(ContentType.Q_AND_A, {"qaPairs": []}), QAndAOutput)

    def test_cv_blank_contact_fields_become_sentinels(self, cv_payload):
        cv_payload.update({"fullName": "", "email": None, "phone": "  ", "location": ""})
        cv = validate_output(ContentType.CV, cv_payload)
        assert cv.full_name == NAME_NOT_FOUND
        assert cv.email == INFORMATION_NOT_FOUND
        assert cv.phone == INFORMATION_NOT_FOUND
        assert cv.location == INFORMATION_NOT_FOUND

    def test_cv_missing_education_year_is_filled(self, cv_payload):
        cv_payload["education"] = [{"degree": "BSc Computer Science", "institution": "State University"}]
        cv = validate_output(ContentType.CV, cv_payload)
        assert cv.education[0].year == INFORMATION_NOT_FOUND

    def test_cv_dump_always_carries_every_field(self, cv_payload):
        cv = validate_output(ContentType.CV, cv_payload)
        dumped = cv.model_dump(by_alias=True)
        assert set(dumped) == {
            "fullName", "email", "phone", "location", "summary",
            "workExperience", "education", "skills",
        }
        assert all(value is not None for value in dumped.values())

    def test_cv_missing_required_field_is_output_error(self, cv_payload):
        del cv_payload["summary"]
        del cv_payload["skills"]
        with pytest.raises(OutputShapeError) as exc_info:
            validate_output(ContentType.CV, cv_payload)
        assert len(exc_info.value.errors) == 2

    def test_blank_answer_becomes_sentinel(self):
        result = validate_output(
            ContentType.Q_AND_A, {"qaPairs": [{"question": "Salary expectations?", "answer": ""}]}
        )
        assert result.qa_pairs[0].answer == ANSWER_NOT_FOUND

    def test_deep_analysis_requires_every_section(self, deep_analysis_payload):
        del deep_analysis_payload["gaps"]
        with pytest.raises(OutputShapeError):
            validate_output(ContentType.DEEP_ANALYSIS, deep_analysis_payload)
