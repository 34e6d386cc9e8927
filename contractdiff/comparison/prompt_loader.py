from pathlib import Path

from contractdiff.comparison.exceptions import ComparisonError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the comparison prompt template.

    Defaults to the bundled comparison_prompt.txt. The template uses
    {standard_text}, {third_party_text} and {json_schema} placeholders.

    Raises:
        ComparisonError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "comparison_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ComparisonError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the response JSON schema, bundled comparison_schema.json by default.

    Raises:
        ComparisonError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "comparison_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ComparisonError(f"Failed to load JSON schema: {exc}") from exc
