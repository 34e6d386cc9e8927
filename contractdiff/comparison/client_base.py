from abc import ABC, abstractmethod


class BaseComparisonClient(ABC):
    """Sends one comparison prompt to an AI provider."""

    @abstractmethod
    def request_report(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        report_schema: dict[str, object],
    ) -> str:
        """Raw model output, expected to be a JSON report matching report_schema.

        Raises:
            ComparisonNetworkError: if the provider cannot be reached or rejects the call.
            ComparisonError: if the provider returns no content.
        """
