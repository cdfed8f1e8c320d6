"""OpenAI and OpenAI-compatible (StepFun) LLM providers."""

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError

STEPFUN_BASE_URL = "https://api.stepfun.com/v1"

# Lazy exception references: set when package available
_openai_exceptions = None


def _get_openai_exceptions():
    global _openai_exceptions
    if _openai_exceptions is None:
        try:
            from openai import APIError, AuthenticationError, RateLimitError

            _openai_exceptions = (AuthenticationError, RateLimitError, APIError)
        except ImportError:
            _openai_exceptions = ()
    return _openai_exceptions


def _handle_openai_error(e: Exception, label: str):
    exc = _get_openai_exceptions()
    if exc:
        AuthErr, RateErr, ApiErr = exc
        if isinstance(e, AuthErr):
            raise LLMAuthError(f"{label} auth failed: {e}") from e
        if isinstance(e, RateErr):
            raise LLMRateLimitError(f"{label} rate limit: {e}") from e
        if isinstance(e, ApiErr):
            raise LLMError(f"{label} API error: {e}") from e
    raise LLMError(f"{label} error: {e}") from e


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions provider. ``base_url`` points it at any compatible API."""

    provider_name = "openai"
    default_model = "gpt-4o"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        base_url: str | None = None,
    ):
        self.model = model or self.default_model

        if client:
            self.client = client
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install openai")

        self.client = OpenAI(api_key=api_key, base_url=base_url)

    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> str:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(messages)

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": full_messages,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content or ""
        except Exception as e:
            _handle_openai_error(e, self.provider_name)


class StepFunProvider(OpenAIProvider):
    """StepFun chat models over the OpenAI-compatible endpoint."""

    provider_name = "stepfun"
    default_model = "step-1-8k"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        base_url: str | None = None,
    ):
        super().__init__(
            api_key=api_key, model=model, client=client, base_url=base_url or STEPFUN_BASE_URL
        )
