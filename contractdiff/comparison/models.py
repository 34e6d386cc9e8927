from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class ChangeType(str, Enum):
    CHANGED = "changed"
    MISSING = "missing"
    ADDITIONAL = "additional"


@dataclass(frozen=True)
class SectionDifference:
    """Differences found in one section of the compared documents."""

    section: str
    differences: list[str]
    severity: Severity
    suggestions: list[str] = field(default_factory=list)
    change_type: ChangeType = ChangeType.CHANGED
    standard_text: str | None = None
    third_party_text: str | None = None


@dataclass(frozen=True)
class ComparisonReport:
    """Output of a comparison engine."""

    summary: str
    overall_risk: Severity
    key_differences: list[str] = field(default_factory=list)
    sections: list[SectionDifference] = field(default_factory=list)
    similarity_score: float | None = None
    engine: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "overall_risk": self.overall_risk.value,
            "key_differences": list(self.key_differences),
            "sections": [
                {
                    "section": s.section,
                    "differences": list(s.differences),
                    "severity": s.severity.value,
                    "suggestions": list(s.suggestions),
                    "change_type": s.change_type.value,
                    "standard_text": s.standard_text,
                    "third_party_text": s.third_party_text,
                }
                for s in self.sections
            ],
            "similarity_score": self.similarity_score,
            "engine": self.engine,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComparisonReport":
        sections = [
            SectionDifference(
                section=s["section"],
                differences=list(s.get("differences", [])),
                severity=Severity(s["severity"]),
                suggestions=list(s.get("suggestions", [])),
                change_type=ChangeType(s.get("change_type", ChangeType.CHANGED.value)),
                standard_text=s.get("standard_text"),
                third_party_text=s.get("third_party_text"),
            )
            for s in data.get("sections", [])
        ]
        return cls(
            summary=data["summary"],
            overall_risk=Severity(data["overall_risk"]),
            key_differences=list(data.get("key_differences", [])),
            sections=sections,
            similarity_score=data.get("similarity_score"),
            engine=data.get("engine", ""),
        )


def max_severity(sections: list[SectionDifference]) -> Severity:
    """Highest severity across sections; low when there are none."""
    if not sections:
        return Severity.LOW
    return max((s.severity for s in sections), key=lambda s: s.rank)
