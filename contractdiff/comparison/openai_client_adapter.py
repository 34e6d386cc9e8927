import httpx
import openai

from contractdiff.comparison.client_base import BaseComparisonClient
from contractdiff.comparison.exceptions import ComparisonError, ComparisonNetworkError


class OpenAIClientAdapter(BaseComparisonClient):
    """Comparison AI client built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        max_tokens: int = 2000,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._max_tokens = max_tokens

    def request_report(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        report_schema: dict[str, object],
    ) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=self._max_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "comparison_report",
                        "strict": True,
                        "schema": report_schema,
                    },
                },
                messages=messages,
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ComparisonNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ComparisonNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ComparisonError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ComparisonError("AI returned empty response")
        return content
