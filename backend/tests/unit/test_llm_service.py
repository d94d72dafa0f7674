import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.job_assist.config import Settings
from backend.job_assist.core.errors import ConfigurationError, ModelInvocationError
from backend.job_assist.services.llm_service import JSON_ONLY_INSTRUCTION, LLMService


def _settings(with_openai=True, with_gemini=True, tracking=False, timeout_seconds=5):
    return Settings(
        _env_file=None,
        openai_api_key="fake-openai-key" if with_openai else None,
        gemini_api_key="fake-gemini-key" if with_gemini else None,
        openai_model="gpt-4o",
        gemini_model="gemini-2.5-flash",
        timeout_seconds=timeout_seconds,
        mlflow_tracking_enabled=tracking,
        mlflow_tracking_uri="file:./test_mlruns",
        experiment_name="test-exp",
    )


def _client(content=None, side_effect=None):
    """LangChain chat model stand-in; model_copy returns itself."""
    client = MagicMock()
    client.model_copy.return_value = client
    response = MagicMock()
    response.content = content
    client.ainvoke = AsyncMock(return_value=response, side_effect=side_effect)
    return client


@patch("backend.job_assist.services.llm_service.tiktoken")
@patch("backend.job_assist.services.llm_service.mlflow")
@patch("backend.job_assist.services.llm_service.ChatOpenAI")
@patch("backend.job_assist.services.llm_service.ChatGoogleGenerativeAI")
class TestLLMService:

    def test_no_providers_is_configuration_error(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        with pytest.raises(ConfigurationError):
            LLMService(_settings(with_openai=False, with_gemini=False))

    def test_generate_response_success(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        """Test successful response generation using OpenAI."""
        openai_client = _client(content="This is a mock response from OpenAI")
        gemini_client = _client(content="unused")
        mock_openai.return_value = openai_client
        mock_gemini.return_value = gemini_client
        mock_tiktoken.encoding_for_model.return_value.encode.return_value = [1, 2, 3]

        service = LLMService(_settings())
        result = asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert result["content"] == "This is a mock response from OpenAI"
        assert result["provider"] == "openai"
        assert result["model"] == "gpt-4o"
        assert result["usage"]["total_tokens"] == 6

        openai_client.ainvoke.assert_awaited_once()
        # Gemini should NOT have been called (no fallback needed)
        gemini_client.ainvoke.assert_not_called()

    def test_fallback_to_gemini(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        """Test fallback to Gemini when OpenAI fails."""
        openai_client = _client(side_effect=Exception("OpenAI API error"))
        gemini_client = _client(content="This is a mock response from Gemini")
        mock_openai.return_value = openai_client
        mock_gemini.return_value = gemini_client

        service = LLMService(_settings())
        result = asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert result["content"] == "This is a mock response from Gemini"
        assert result["provider"] == "gemini"
        openai_client.ainvoke.assert_awaited_once()
        gemini_client.ainvoke.assert_awaited_once()

    def test_all_providers_fail(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_openai.return_value = _client(side_effect=Exception("OpenAI down"))
        mock_gemini.return_value = _client(side_effect=Exception("Gemini down"))

        service = LLMService(_settings())
        with pytest.raises(ModelInvocationError) as exc_info:
            asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert "OpenAI down" in str(exc_info.value)
        assert "Gemini down" in str(exc_info.value)

    def test_no_retry_on_single_provider_failure(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        openai_client = _client(side_effect=Exception("rate limited"))
        mock_openai.return_value = openai_client

        service = LLMService(_settings(with_gemini=False))
        with pytest.raises(ModelInvocationError):
            asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert openai_client.ainvoke.await_count == 1

    def test_timeout_becomes_model_invocation_error(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_openai.return_value = _client(side_effect=asyncio.TimeoutError())

        service = LLMService(_settings(with_gemini=False))
        with pytest.raises(ModelInvocationError) as exc_info:
            asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert "timed out" in str(exc_info.value)

    def test_primary_timeout_does_not_fall_back(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        gemini_client = _client(content="late answer")
        mock_openai.return_value = _client(side_effect=asyncio.TimeoutError())
        mock_gemini.return_value = gemini_client

        service = LLMService(_settings())
        with pytest.raises(ModelInvocationError) as exc_info:
            asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert "openai timed out" in str(exc_info.value)
        gemini_client.ainvoke.assert_not_called()

    def test_fallback_only_gets_the_remaining_time(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        async def slow_failure(messages):
            await asyncio.sleep(0.15)
            raise Exception("OpenAI API error")

        async def slow_answer(messages):
            await asyncio.sleep(0.3)
            response = MagicMock()
            response.content = "too late"
            return response

        mock_openai.return_value = _client(side_effect=slow_failure)
        mock_gemini.return_value = _client(side_effect=slow_answer)

        service = LLMService(_settings(timeout_seconds=0.25))
        with pytest.raises(ModelInvocationError) as exc_info:
            asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert "gemini timed out" in str(exc_info.value)

    def test_json_mode_per_provider(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        openai_client = _client(side_effect=Exception("OpenAI API error"))
        gemini_client = _client(content='{"text": "ok"}')
        mock_openai.return_value = openai_client
        mock_gemini.return_value = gemini_client

        service = LLMService(_settings())
        asyncio.run(
            service.generate_response(
                "System prompt",
                "User prompt",
                temperature=0.2,
                max_tokens=300,
                response_format={"type": "json_object"},
            )
        )

        openai_update = openai_client.model_copy.call_args.kwargs["update"]
        assert openai_update["model_kwargs"] == {"response_format": {"type": "json_object"}}
        assert openai_update["temperature"] == 0.2
        assert openai_update["max_tokens"] == 300

        gemini_update = gemini_client.model_copy.call_args.kwargs["update"]
        assert gemini_update["max_output_tokens"] == 300
        system_message = gemini_client.ainvoke.call_args.args[0][0]
        assert system_message.content.endswith(JSON_ONLY_INSTRUCTION)

    def test_gemini_content_parts_are_joined(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_gemini.return_value = _client(content=[{"type": "text", "text": '{"a": '}, "1}"])

        service = LLMService(_settings(with_openai=False))
        result = asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert result["content"] == '{"a": 1}'

    def test_mlflow_run_logged_when_enabled(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_openai.return_value = _client(content="hello")

        service = LLMService(_settings(with_gemini=False, tracking=True))
        asyncio.run(service.generate_response("System prompt", "User prompt", operation="generate_cv"))

        mock_mlflow.set_experiment.assert_called_once_with("test-exp")
        mock_mlflow.start_run.assert_called_once()
        mock_mlflow.log_param.assert_any_call("operation", "generate_cv")

    def test_mlflow_failure_does_not_fail_the_call(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_openai.return_value = _client(content="hello")
        mock_mlflow.start_run.side_effect = Exception("tracking server down")

        service = LLMService(_settings(with_gemini=False, tracking=True))
        result = asyncio.run(service.generate_response("System prompt", "User prompt"))

        assert result["content"] == "hello"

    def test_count_tokens_falls_back_to_word_estimate(self, mock_gemini, mock_openai, mock_mlflow, mock_tiktoken):
        mock_openai.return_value = _client(content="hello")
        mock_tiktoken.encoding_for_model.side_effect = Exception("no network")

        service = LLMService(_settings(with_gemini=False))
        count = service.count_tokens("one two three four five six seven eight nine ten")

        assert isinstance(count, int)
        assert count == 13
