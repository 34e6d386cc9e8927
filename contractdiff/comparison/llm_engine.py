"""AI-powered contract comparison engine."""

import json
from pathlib import Path

from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.client_base import BaseComparisonClient
from contractdiff.comparison.exceptions import ComparisonError
from contractdiff.comparison.models import ComparisonReport
from contractdiff.comparison.prompt_loader import load_json_schema, load_prompt_template
from contractdiff.comparison.sections import jaccard_similarity
from contractdiff.comparison.validator import validate_and_build
from contractdiff.logging.logger import Log


class LlmComparisonEngine(BaseComparisonEngine):
    """Asks a chat model for the differences and validates its JSON answer."""

    name = "llm"

    def __init__(
        self,
        *,
        client: BaseComparisonClient,
        model: str,
        temperature: float = 0.1,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = "You are a contract review assistant. Answer with JSON only.",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def compare(self, standard_text: str, third_party_text: str) -> ComparisonReport:
        prompt = self._build_prompt(standard_text, third_party_text)
        Log.debug(
            "Comparison prompt built",
            standard_chars=len(standard_text),
            third_party_chars=len(third_party_text),
            prompt_chars=len(prompt),
        )

        raw_response = self._call_ai(prompt)
        Log.debug(f"AI raw response:\n{raw_response}")

        parsed = self._parse_json(raw_response)
        report = validate_and_build(
            parsed,
            engine=f"{self.name}:{self._model}",
            similarity_score=round(jaccard_similarity(standard_text, third_party_text), 2),
        )

        Log.info(
            f"AI comparison complete: {len(report.sections)} differences found",
            overall_risk=report.overall_risk.value,
        )
        return report

    def _build_prompt(self, standard_text: str, third_party_text: str) -> str:
        return self._prompt_template.format(
            standard_text=standard_text,
            third_party_text=third_party_text,
            json_schema=self._json_schema,
        )

    def _call_ai(self, prompt: str) -> str:
        return self._client.request_report(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            report_schema=self._json_schema_dict,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ComparisonError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ComparisonError("JSON response must be an object")
        return parsed
