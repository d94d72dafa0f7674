"""
LLM Service with Multi-Provider Fallback (OpenAI → Gemini)

Architecture:
- Primary: OpenAI (gpt-4o)
- Fallback: Google Gemini (gemini-2.5-flash)
- Uses LangChain for provider abstraction

Every call is one round trip to one provider (two only when the primary
fails and the fallback takes over). Nothing is retried: a failed generation
is reported to the caller, who decides whether to ask again.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import mlflow
import tiktoken
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from backend.job_assist.config import Settings, get_settings
from backend.job_assist.core.errors import ConfigurationError, ModelInvocationError
from backend.job_assist.utils.prometheus_metrics import record_llm_call, record_llm_usage

logger = logging.getLogger(__name__)

JSON_ONLY_INSTRUCTION = (
    "\n\nIMPORTANT: You MUST respond with valid JSON only. "
    "No additional text before or after the JSON."
)


class LLMProvider(str, Enum):
    """Available LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


def _content_to_text(content: Any) -> str:
    """Gemini may answer with a list of parts instead of a plain string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict):
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content or "")


class LLMService:
    """
    Multi-provider LLM service with automatic fallback.

    Flow:
    1. Try OpenAI (primary)
    2. If OpenAI fails → fallback to Gemini
    3. If both fail → raise ModelInvocationError

    Per-call parameters are applied to a copy of the provider client, so one
    service instance can be shared by concurrent requests.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        self.openai_available = self._init_openai()
        self.gemini_available = self._init_gemini()

        if not self.openai_available and not self.gemini_available:
            raise ConfigurationError(
                "No LLM providers configured. Set OPENAI_API_KEY or GEMINI_API_KEY"
            )

        self._encoding = None

        if self.settings.mlflow_tracking_enabled:
            mlflow.set_tracking_uri(self.settings.mlflow_tracking_uri)
            mlflow.set_experiment(self.settings.experiment_name)

        logger.info(
            f"LLM Service initialized: "
            f"OpenAI={self.openai_available}, Gemini={self.gemini_available}"
        )

    def _init_openai(self) -> bool:
        """Initialize OpenAI provider if API key available."""
        try:
            if self.settings.openai_api_key is None:
                logger.warning("OPENAI_API_KEY not set - OpenAI unavailable")
                return False

            self.openai_client = ChatOpenAI(
                model=self.settings.openai_model,
                api_key=self.settings.openai_api_key.get_secret_value(),
                temperature=0.7,  # Default, overridden per call
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
            logger.info(f"OpenAI initialized: {self.settings.openai_model}")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI: {e}")
            return False

    def _init_gemini(self) -> bool:
        """Initialize Gemini provider if API key available."""
        try:
            if self.settings.gemini_api_key is None:
                logger.warning("GEMINI_API_KEY not set - Gemini unavailable")
                return False

            self.gemini_client = ChatGoogleGenerativeAI(
                model=self.settings.gemini_model,
                google_api_key=self.settings.gemini_api_key.get_secret_value(),
                temperature=0.7,  # Default, overridden per call
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
            logger.info(f"Gemini initialized: {self.settings.gemini_model}")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize Gemini: {e}")
            return False

    def count_tokens(self, text: str) -> int:
        """
        Estimate token count for usage tracking.
        Note: Approximation for both OpenAI and Gemini.
        """
        try:
            if self._encoding is None:
                self._encoding = tiktoken.encoding_for_model("gpt-4")
            return len(self._encoding.encode(text))
        except Exception as e:
            logger.warning(f"Token counting failed: {e}. Using word estimate.")
            return int(len(text.split()) * 1.3)

    def _providers(self) -> List[Tuple[LLMProvider, str]]:
        providers = []
        if self.openai_available:
            providers.append((LLMProvider.OPENAI, self.settings.openai_model))
        if self.gemini_available:
            providers.append((LLMProvider.GEMINI, self.settings.gemini_model))
        return providers

    def _configured_client(
        self,
        provider: LLMProvider,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ):
        if provider == LLMProvider.OPENAI:
            model_kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
            return self.openai_client.model_copy(
                update={
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                    "model_kwargs": model_kwargs,
                }
            )
        return self.gemini_client.model_copy(
            update={"temperature": temperature, "max_output_tokens": max_tokens}
        )

    async def _call_provider(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
        timeout: float,
    ) -> str:
        """
        Call one provider via LangChain, bounded by ``timeout`` seconds.

        OpenAI gets native JSON mode; Gemini gets the JSON instruction appended
        to its system prompt instead.
        """
        if provider == LLMProvider.GEMINI and json_mode:
            system_prompt += JSON_ONLY_INSTRUCTION

        client = self._configured_client(provider, temperature, max_tokens, json_mode)
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        response = await asyncio.wait_for(
            client.ainvoke(messages), timeout=timeout
        )
        return _content_to_text(response.content)

    async def generate_response(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
        operation: str = "generation",
    ) -> Dict[str, Any]:
        """
        Generate LLM response with automatic fallback.

        One deadline of ``timeout_seconds`` covers the whole call: the fallback
        only gets the time the primary left over, and a timed-out provider ends
        the call since it may still be producing a result.

        Args:
            system_prompt: System/instruction prompt
            user_prompt: User input
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate
            response_format: Optional format spec (e.g., {"type": "json_object"})
            operation: Label used for logging and metrics

        Returns:
            Dict with:
            - content: Generated text
            - usage: Token counts
            - model: Model used
            - provider: Provider used

        Raises:
            ModelInvocationError: every configured provider failed or timed out
        """
        max_tokens = max_tokens or self.settings.default_max_tokens
        json_mode = bool(response_format and response_format.get("type") == "json_object")
        start_time = time.time()
        deadline = time.monotonic() + self.settings.timeout_seconds
        error_chain: List[str] = []

        for index, (provider, model) in enumerate(self._providers()):
            if index > 0:
                logger.warning(f"→ Falling back to {provider.value}...")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                error_chain.append(f"{provider.value} skipped: no time left before the deadline")
                break
            call_start = time.time()
            try:
                content = await self._call_provider(
                    provider, system_prompt, user_prompt, temperature, max_tokens, json_mode, remaining
                )
            except asyncio.TimeoutError:
                error_msg = f"{provider.value} timed out after {self.settings.timeout_seconds}s"
                logger.warning(error_msg)
                error_chain.append(error_msg)
                record_llm_call(provider.value, model, "timeout", time.time() - call_start)
                break
            except Exception as e:
                error_msg = f"{provider.value} failed: {str(e)}"
                logger.warning(error_msg)
                error_chain.append(error_msg)
                record_llm_call(provider.value, model, "failure", time.time() - call_start)
                continue

            record_llm_call(provider.value, model, "success", time.time() - call_start)
            logger.info(f"✓ {provider.value} succeeded ({operation})")
            return self._finish(
                operation=operation,
                provider=provider,
                model=model,
                content=content,
                input_text=system_prompt + user_prompt,
                temperature=temperature,
                duration=time.time() - start_time,
                error_chain=error_chain,
            )

        logger.error(f"LLM generation failed ({operation}): {'; '.join(error_chain)}")
        raise ModelInvocationError(f"All providers failed: {'; '.join(error_chain)}")

    def _finish(
        self,
        *,
        operation: str,
        provider: LLMProvider,
        model: str,
        content: str,
        input_text: str,
        temperature: float,
        duration: float,
        error_chain: List[str],
    ) -> Dict[str, Any]:
        input_tokens = self.count_tokens(input_text)
        output_tokens = self.count_tokens(content)
        total_tokens = input_tokens + output_tokens

        record_llm_usage(operation, input_tokens, output_tokens)
        self._log_run(
            operation=operation,
            provider=provider,
            model=model,
            temperature=temperature,
            duration=duration,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            error_chain=error_chain,
        )

        return {
            "content": content,
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": total_tokens,
            },
            "model": model,
            "provider": provider.value,
        }

    def _log_run(
        self,
        *,
        operation: str,
        provider: LLMProvider,
        model: str,
        temperature: float,
        duration: float,
        input_tokens: int,
        output_tokens: int,
        error_chain: List[str],
    ) -> None:
        """Log a finished call to MLflow in one block, with no awaits inside the run."""
        if not self.settings.mlflow_tracking_enabled:
            return
        try:
            with mlflow.start_run(nested=True, run_name="llm_generation"):
                mlflow.log_param("operation", operation)
                mlflow.log_param("provider", provider.value)
                mlflow.log_param("model", model)
                mlflow.log_param("temperature", temperature)
                mlflow.log_param("fallback_used", bool(error_chain))
                mlflow.log_metric("duration_seconds", duration)
                mlflow.log_metric("input_tokens", input_tokens)
                mlflow.log_metric("output_tokens", output_tokens)
                mlflow.log_metric("total_tokens", input_tokens + output_tokens)
                if error_chain:
                    mlflow.log_param("errors_before_success", "; ".join(error_chain)[:500])
        except Exception as e:
            logger.warning(f"MLflow logging failed: {e}")
