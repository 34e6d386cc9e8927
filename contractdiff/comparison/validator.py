"""Validates a parsed AI response and builds a ComparisonReport from it."""

from typing import Any

from contractdiff.comparison.exceptions import ComparisonValidationError
from contractdiff.comparison.models import (
    ChangeType,
    ComparisonReport,
    SectionDifference,
    Severity,
    max_severity,
)

_MAX_DIFFERENCES = 200
_VALID_SEVERITIES = frozenset(s.value for s in Severity)
_VALID_CHANGE_TYPES = frozenset(c.value for c in ChangeType)


def validate_and_build(
    data: dict[str, Any], *, engine: str, similarity_score: float | None = None
) -> ComparisonReport:
    """Validate raw parsed JSON and build a ComparisonReport.

    The overall risk is recomputed from the section severities rather than
    taken from the response.

    Raises:
        ComparisonValidationError: on any validation failure.
    """
    _require_top_level_fields(data)
    summary = data["summary"]
    if not isinstance(summary, str) or not summary.strip():
        raise ComparisonValidationError("'summary' must be a non-empty string")
    sections = _build_sections(data["differences"])
    return ComparisonReport(
        summary=summary.strip(),
        overall_risk=max_severity(sections),
        key_differences=[
            f"{s.section}: {s.differences[0]}"
            for s in sorted(sections, key=lambda s: -s.severity.rank)
            if s.severity != Severity.LOW and s.differences
        ],
        sections=sections,
        similarity_score=similarity_score,
        engine=engine,
    )


def _require_top_level_fields(data: dict[str, Any]) -> None:
    for field in ("summary", "differences"):
        if field not in data:
            raise ComparisonValidationError(f"Missing required top-level field: {field}")


def _build_sections(raw: Any) -> list[SectionDifference]:
    if not isinstance(raw, list):
        raise ComparisonValidationError("'differences' must be a list")
    if len(raw) > _MAX_DIFFERENCES:
        raise ComparisonValidationError(
            f"Too many differences: {len(raw)} (max {_MAX_DIFFERENCES})"
        )
    return [_build_section(item, i) for i, item in enumerate(raw)]


def _build_section(raw: Any, index: int) -> SectionDifference:
    if not isinstance(raw, dict):
        raise ComparisonValidationError(f"Difference at index {index} must be an object")
    section = raw.get("section")
    if not section or not isinstance(section, str):
        raise ComparisonValidationError(
            f"Difference at index {index}: 'section' must be a non-empty string"
        )
    severity = raw.get("severity")
    if severity not in _VALID_SEVERITIES:
        raise ComparisonValidationError(
            f"Difference at index {index}: 'severity' must be one of "
            f"{sorted(_VALID_SEVERITIES)}, got {severity!r}"
        )
    change_type = raw.get("change_type", ChangeType.CHANGED.value)
    if change_type not in _VALID_CHANGE_TYPES:
        raise ComparisonValidationError(
            f"Difference at index {index}: 'change_type' must be one of "
            f"{sorted(_VALID_CHANGE_TYPES)}, got {change_type!r}"
        )
    standard_text = _optional_string(raw, "standard_text", index)
    third_party_text = _optional_string(raw, "third_party_text", index)
    description = _optional_string(raw, "description", index)
    suggestion = _optional_string(raw, "suggestion", index)
    return SectionDifference(
        section=section,
        differences=[description] if description else [],
        severity=Severity(severity),
        suggestions=[suggestion] if suggestion else [],
        change_type=ChangeType(change_type),
        standard_text=standard_text,
        third_party_text=third_party_text,
    )


def _optional_string(raw: dict[str, Any], key: str, index: int) -> str | None:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise ComparisonValidationError(
            f"Difference at index {index}: '{key}' must be a string or null"
        )
    return value
