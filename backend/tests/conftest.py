import json
from unittest.mock import AsyncMock, MagicMock

import pytest


JOB_DESCRIPTION = (
    "Acme Corp is hiring a Senior Python Engineer to build data pipelines on AWS and Postgres."
)

BIO = (
    "Jane Doe, backend engineer. Six years of Python at Globex building ETL pipelines "
    "and FastAPI REST APIs. Mentored two junior developers. Email: jane@example.com"
)

COVER_LETTER = (
    "Dear Hiring Manager,\n\nI am applying for the **Senior Python Engineer** role at Acme Corp. "
    "At Globex I spent six years building **ETL pipelines** and FastAPI REST APIs.\n\nSincerely,\nJane Doe"
)


def make_reply(payload, provider="openai"):
    """Shape of LLMService.generate_response output."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return {
        "content": content,
        "usage": {"input_tokens": 100, "output_tokens": 50, "total_tokens": 150},
        "model": "gpt-4o",
        "provider": provider,
    }


@pytest.fixture
def llm_reply():
    return make_reply


@pytest.fixture
def job_description():
    return JOB_DESCRIPTION


@pytest.fixture
def bio():
    return BIO


@pytest.fixture
def cover_letter_text():
    return COVER_LETTER


@pytest.fixture
def cv_payload():
    """Valid CvOutput JSON as the model would return it."""
    return {
        "fullName": "Jane Doe",
        "email": "jane@example.com",
        "phone": "[Information not found in bio]",
        "location": "[Information not found in bio]",
        "summary": "Backend engineer with six years of Python experience building ETL pipelines.",
        "workExperience": [
            {
                "jobTitle": "Backend Engineer",
                "company": "Globex",
                "duration": "[Information not found in bio]",
                "responsibilities": [
                    "Built ETL pipelines in Python",
                    "Built REST APIs with FastAPI",
                    "Mentored two junior developers",
                ],
            }
        ],
        "education": [],
        "skills": ["Python", "FastAPI", "ETL"],
    }


@pytest.fixture
def deep_analysis_payload():
    return {
        "overallAlignment": {"score": "80% Match", "justification": "Strong Python and pipeline background."},
        "keyStrengths": {"details": ["**Experience Match:** Six years of Python at Globex."]},
        "gaps": {"details": ["**Missing Skill:** AWS is not mentioned in the bio."]},
        "improvementAreas": {"details": ["**Actionable Advice:** Mention any cloud work."]},
        "languageAndTone": {"analysis": "Direct and technical.", "suggestion": "Keep sentences short."},
    }


@pytest.fixture
def mock_llm_service():
    """LLMService stand-in; tests set generate_response.return_value/side_effect."""
    service = MagicMock()
    service.generate_response = AsyncMock()
    return service
