import pytest

from contractdiff.comparison.exceptions import ComparisonValidationError
from contractdiff.comparison.models import ChangeType, ComparisonReport, Severity
from contractdiff.comparison.validator import validate_and_build


def _difference(**overrides: object) -> dict:
    item = {
        "section": "Confidentiality",
        "change_type": "changed",
        "standard_text": "five (5) years",
        "third_party_text": "two (2) years",
        "description": "Confidentiality period shortened",
        "severity": "high",
        "suggestion": "Restore the five year period",
    }
    item.update(overrides)
    return item


class TestValidateAndBuild:
    def test_builds_report(self) -> None:
        report = validate_and_build(
            {"summary": " One high risk change. ", "differences": [_difference()]},
            engine="llm:test",
            similarity_score=80.0,
        )

        assert report.summary == "One high risk change."
        assert report.overall_risk == Severity.HIGH
        assert report.engine == "llm:test"
        assert report.similarity_score == 80.0
        section = report.sections[0]
        assert section.differences == ["Confidentiality period shortened"]
        assert section.suggestions == ["Restore the five year period"]
        assert section.change_type == ChangeType.CHANGED
        assert report.key_differences == ["Confidentiality: Confidentiality period shortened"]

    def test_overall_risk_is_recomputed(self) -> None:
        report = validate_and_build(
            {
                "summary": "s",
                "overall_risk": "high",
                "differences": [_difference(severity="low"), _difference(severity="medium")],
            },
            engine="llm:test",
        )
        assert report.overall_risk == Severity.MEDIUM

    def test_no_differences_is_low(self) -> None:
        report = validate_and_build({"summary": "Identical.", "differences": []}, engine="e")
        assert report.overall_risk == Severity.LOW
        assert report.sections == []

    def test_change_type_defaults_to_changed(self) -> None:
        item = _difference()
        del item["change_type"]
        report = validate_and_build({"summary": "s", "differences": [item]}, engine="e")
        assert report.sections[0].change_type == ChangeType.CHANGED

    def test_null_texts_are_allowed(self) -> None:
        item = _difference(change_type="missing", third_party_text=None, suggestion=None)
        report = validate_and_build({"summary": "s", "differences": [item]}, engine="e")
        assert report.sections[0].third_party_text is None
        assert report.sections[0].suggestions == []

    def test_result_survives_dict_round_trip(self) -> None:
        report = validate_and_build(
            {"summary": "s", "differences": [_difference()]}, engine="e", similarity_score=1.5
        )
        assert ComparisonReport.from_dict(report.to_dict()) == report


class TestValidationErrors:
    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ({"differences": []}, "Missing required top-level field: summary"),
            ({"summary": "s"}, "Missing required top-level field: differences"),
            ({"summary": "  ", "differences": []}, "non-empty string"),
            ({"summary": "s", "differences": {}}, "must be a list"),
            ({"summary": "s", "differences": ["x"]}, "must be an object"),
            ({"summary": "s", "differences": [_difference(section="")]}, "'section'"),
            ({"summary": "s", "differences": [_difference(severity="critical")]}, "'severity'"),
            ({"summary": "s", "differences": [_difference(change_type="moved")]}, "'change_type'"),
            ({"summary": "s", "differences": [_difference(description=3)]}, "'description'"),
        ],
    )
    def test_rejects_invalid_payload(self, data: dict, message: str) -> None:
        with pytest.raises(ComparisonValidationError, match=message):
            validate_and_build(data, engine="e")

    def test_rejects_too_many_differences(self) -> None:
        data = {"summary": "s", "differences": [_difference()] * 201}
        with pytest.raises(ComparisonValidationError, match="Too many differences"):
            validate_and_build(data, engine="e")
