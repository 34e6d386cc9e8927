from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.heuristic_engine import HeuristicComparisonEngine
from contractdiff.comparison.llm_engine import LlmComparisonEngine
from contractdiff.comparison.openai_client_adapter import OpenAIClientAdapter
from contractdiff.config.settings import Settings


class ComparisonEngineFactory:
    """Creates the configured comparison engine."""

    ENGINES = ("heuristic", "openai", "openai_compatible")

    @classmethod
    def create(cls, settings: Settings) -> BaseComparisonEngine:
        """Create a configured comparison engine from application settings."""
        engine = settings.comparison_engine.lower()
        if engine == "heuristic":
            return HeuristicComparisonEngine()
        if engine == "openai":
            client = OpenAIClientAdapter(
                api_key=settings.comparison_openai_api_key,
                timeout_seconds=settings.comparison_openai_timeout_seconds,
            )
            return LlmComparisonEngine(
                client=client,
                model=settings.comparison_openai_model_name,
                temperature=settings.comparison_openai_temperature,
            )
        if engine == "openai_compatible":
            base_url = settings.comparison_openai_compatible_base_url.strip()
            if not base_url:
                raise ValueError(
                    "comparison_openai_compatible_base_url is required for "
                    "comparison_engine=openai_compatible"
                )
            client = OpenAIClientAdapter(
                api_key=settings.comparison_openai_compatible_api_key,
                timeout_seconds=settings.comparison_openai_timeout_seconds,
                base_url=base_url,
            )
            return LlmComparisonEngine(
                client=client,
                model=settings.comparison_openai_compatible_model_name
                or settings.comparison_openai_model_name,
                temperature=settings.comparison_openai_temperature,
            )
        raise ValueError(
            f"Unknown comparison engine '{engine}'. Choose from: {list(cls.ENGINES)}"
        )
