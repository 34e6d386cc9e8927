"""Rule-based contract comparison.

Sections are paired by label, then by fuzzy similarity of label or body.
Paired bodies are diffed word by word and graded:

- changed numbers or durations in a risk-bearing clause: high
- any other substantive change: medium
- case, punctuation or filler-word changes only: low

Clauses missing from the third-party document are high when risk-bearing and
medium otherwise; additional clauses are medium when risk-bearing, else low.
"""

import re
from collections import Counter
from difflib import SequenceMatcher

from rapidfuzz import fuzz

from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.models import (
    ChangeType,
    ComparisonReport,
    SectionDifference,
    Severity,
    max_severity,
)
from contractdiff.comparison.sections import Section, jaccard_similarity, split_sections
from contractdiff.logging.logger import Log

RISK_KEYWORDS = (
    "confidential",
    "non-disclosure",
    "liabilit",
    "liable",
    "indemn",
    "governing law",
    "jurisdiction",
    "terminat",
    "term of",
    "duration",
    "damages",
    "penalt",
    "warrant",
    "non-compete",
    "non-solicit",
    "intellectual property",
    "injunct",
    "arbitrat",
    "assign",
)

_FILLER_WORDS = frozenset(
    {"the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "by", "with", "any", "all"}
)

_NUMBER_WORDS = (
    "one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|thirteen|"
    "fourteen|fifteen|sixteen|seventeen|eighteen|nineteen|twenty|thirty|forty|"
    "fifty|sixty|seventy|eighty|ninety|hundred|thousand|million"
)
_TERM_RE = re.compile(
    rf"(?:[$€£]\s?)?\b(?:\d+(?:[.,]\d+)*%?|(?:{_NUMBER_WORDS})(?:[\s-](?:{_NUMBER_WORDS}))*)\b"
    r"(?:\s*\(\d+\))?"
    r"(?:\s+(?:calendar\s+|business\s+|working\s+)?(?:days?|weeks?|months?|years?))?",
    re.IGNORECASE,
)
_TOKEN_NORMALIZE_RE = re.compile(r"[^\w%$€£-]")

LABEL_MATCH_THRESHOLD = 80.0
BODY_MATCH_THRESHOLD = 70.0
MAX_DIFFERENCES_PER_SECTION = 10
MAX_EXCERPT_CHARS = 500


def is_risk_bearing(*texts: str) -> bool:
    joined = " ".join(texts).lower()
    return any(keyword in joined for keyword in RISK_KEYWORDS)


def extract_terms(text: str) -> list[str]:
    """Numbers, amounts and durations in text, normalized for comparison."""
    return [" ".join(m.group(0).lower().split()) for m in _TERM_RE.finditer(text)]


def _excerpt(text: str) -> str:
    if len(text) <= MAX_EXCERPT_CHARS:
        return text
    return text[: MAX_EXCERPT_CHARS - 3].rstrip() + "..."


def _tokens(text: str) -> tuple[list[str], list[str]]:
    """Raw words and their normalized forms, skipping punctuation-only tokens."""
    raw: list[str] = []
    normalized: list[str] = []
    for token in text.split():
        norm = _TOKEN_NORMALIZE_RE.sub("", token.lower())
        if norm:
            raw.append(token)
            normalized.append(norm)
    return raw, normalized


class HeuristicComparisonEngine(BaseComparisonEngine):
    """Offline comparison engine built on section pairing and word diffs."""

    name = "heuristic"

    def compare(self, standard_text: str, third_party_text: str) -> ComparisonReport:
        standard_sections = split_sections(standard_text)
        third_party_sections = split_sections(third_party_text)
        pairs, missing, additional = self._pair_sections(
            standard_sections, third_party_sections
        )

        differences: list[SectionDifference] = []
        for standard, third_party in pairs:
            difference = self._diff_pair(standard, third_party)
            if difference is not None:
                differences.append(difference)
        differences.extend(self._missing(section) for section in missing)
        differences.extend(self._additional(section) for section in additional)

        similarity = round(jaccard_similarity(standard_text, third_party_text), 2)
        overall_risk = max_severity(differences)
        Log.info(
            "Heuristic comparison complete",
            sections=len(differences),
            overall_risk=overall_risk.value,
            similarity=similarity,
        )
        return ComparisonReport(
            summary=self._summary(differences, similarity),
            overall_risk=overall_risk,
            key_differences=self._key_differences(differences),
            sections=differences,
            similarity_score=similarity,
            engine=self.name,
        )

    def _pair_sections(
        self, standard: list[Section], third_party: list[Section]
    ) -> tuple[list[tuple[Section, Section]], list[Section], list[Section]]:
        pairs: dict[int, int] = {}
        used: set[int] = set()

        for i, section in enumerate(standard):
            if section.key is None:
                continue
            for j, candidate in enumerate(third_party):
                if j not in used and candidate.key == section.key:
                    pairs[i] = j
                    used.add(j)
                    break

        scored: list[tuple[float, int, int]] = []
        for i, section in enumerate(standard):
            if i in pairs:
                continue
            for j, candidate in enumerate(third_party):
                if j in used:
                    continue
                score = self._match_score(section, candidate)
                if score is not None:
                    scored.append((score, i, j))
        for _, i, j in sorted(scored, key=lambda item: (-item[0], item[1], item[2])):
            if i in pairs or j in used:
                continue
            pairs[i] = j
            used.add(j)

        matched = [(standard[i], third_party[j]) for i, j in sorted(pairs.items())]
        missing = [s for i, s in enumerate(standard) if i not in pairs]
        additional = [s for j, s in enumerate(third_party) if j not in used]
        return matched, missing, additional

    @staticmethod
    def _match_score(standard: Section, third_party: Section) -> float | None:
        if standard.key is not None and third_party.key is not None:
            label_score = fuzz.token_sort_ratio(standard.key, third_party.key)
            if label_score >= LABEL_MATCH_THRESHOLD:
                return label_score
        body_score = fuzz.token_set_ratio(standard.body.lower(), third_party.body.lower())
        if body_score >= BODY_MATCH_THRESHOLD:
            return body_score * 0.9
        return None

    def _diff_pair(self, standard: Section, third_party: Section) -> SectionDifference | None:
        if standard.body == third_party.body:
            return None

        raw_a, norm_a = _tokens(standard.body)
        raw_b, norm_b = _tokens(third_party.body)
        changes = self._word_changes(raw_a, norm_a, raw_b, norm_b)
        risk_bearing = is_risk_bearing(standard.label, standard.body, third_party.body)
        terms_a = extract_terms(standard.body)
        terms_b = extract_terms(third_party.body)
        label = standard.label

        if Counter(terms_a) != Counter(terms_b):
            severity = Severity.HIGH if risk_bearing else Severity.MEDIUM
            suggestion = (
                f"{label} mismatch: the standard specifies "
                f"{self._describe_terms(terms_a)} but the third-party document specifies "
                f"{self._describe_terms(terms_b)}. Align with the standard terms."
            )
        elif self._is_cosmetic(changes):
            severity = Severity.LOW
            suggestion = f"{label} wording differs only cosmetically; no change needed."
        else:
            severity = Severity.MEDIUM
            suggestion = (
                f"{label} wording mismatch with the standard; review the changed terms."
            )

        differences = [self._describe_change(change) for change in changes]
        if not differences:
            differences = ["Formatting or punctuation differs"]

        return SectionDifference(
            section=label,
            differences=differences[:MAX_DIFFERENCES_PER_SECTION],
            severity=severity,
            suggestions=[suggestion],
            change_type=ChangeType.CHANGED,
            standard_text=_excerpt(standard.body),
            third_party_text=_excerpt(third_party.body),
        )

    @staticmethod
    def _word_changes(
        raw_a: list[str], norm_a: list[str], raw_b: list[str], norm_b: list[str]
    ) -> list[tuple[str, list[str], list[str], list[str], list[str]]]:
        """Non-equal opcodes as (tag, raw_a, raw_b, norm_a, norm_b) word runs."""
        matcher = SequenceMatcher(a=norm_a, b=norm_b, autojunk=False)
        return [
            (tag, raw_a[i1:i2], raw_b[j1:j2], norm_a[i1:i2], norm_b[j1:j2])
            for tag, i1, i2, j1, j2 in matcher.get_opcodes()
            if tag != "equal"
        ]

    @staticmethod
    def _is_cosmetic(
        changes: list[tuple[str, list[str], list[str], list[str], list[str]]],
    ) -> bool:
        return all(
            set(norm_a) | set(norm_b) <= _FILLER_WORDS
            for _, _, _, norm_a, norm_b in changes
        )

    @staticmethod
    def _describe_change(
        change: tuple[str, list[str], list[str], list[str], list[str]],
    ) -> str:
        tag, words_a, words_b, _, _ = change
        before = " ".join(words_a)
        after = " ".join(words_b)
        if tag == "replace":
            return f"'{before}' changed to '{after}'"
        if tag == "delete":
            return f"'{before}' removed"
        return f"'{after}' added"

    @staticmethod
    def _describe_terms(terms: list[str]) -> str:
        return ", ".join(f"'{term}'" for term in terms) if terms else "no explicit term"

    @staticmethod
    def _missing(section: Section) -> SectionDifference:
        risk_bearing = is_risk_bearing(section.label, section.body)
        return SectionDifference(
            section=section.label,
            differences=["Clause present in the standard is missing from the third-party document"],
            severity=Severity.HIGH if risk_bearing else Severity.MEDIUM,
            suggestions=[f"Add the {section.label} clause from the standard."],
            change_type=ChangeType.MISSING,
            standard_text=_excerpt(section.body),
            third_party_text=None,
        )

    @staticmethod
    def _additional(section: Section) -> SectionDifference:
        risk_bearing = is_risk_bearing(section.label, section.body)
        return SectionDifference(
            section=section.label,
            differences=["Clause not present in the standard"],
            severity=Severity.MEDIUM if risk_bearing else Severity.LOW,
            suggestions=[f"Review the additional {section.label} clause against the standard."],
            change_type=ChangeType.ADDITIONAL,
            standard_text=None,
            third_party_text=_excerpt(section.body),
        )

    @staticmethod
    def _summary(differences: list[SectionDifference], similarity: float) -> str:
        if not differences:
            return f"No material differences found. Similarity {similarity:.1f}%."
        counts = Counter(d.severity for d in differences)
        return (
            f"{len(differences)} section(s) differ from the standard "
            f"({counts[Severity.HIGH]} high, {counts[Severity.MEDIUM]} medium, "
            f"{counts[Severity.LOW]} low risk). Similarity {similarity:.1f}%."
        )

    @staticmethod
    def _key_differences(differences: list[SectionDifference]) -> list[str]:
        ranked = sorted(differences, key=lambda d: -d.severity.rank)
        return [
            f"{d.section}: {d.differences[0]}"
            for d in ranked
            if d.severity != Severity.LOW and d.differences
        ]
