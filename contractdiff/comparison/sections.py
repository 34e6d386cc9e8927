"""Splitting contract text into labelled sections, plus text statistics."""

import re
from dataclasses import dataclass

_NUMBERED_HEADING = re.compile(r"^\d+(?:\.\d+)*[.)]?\s+[A-Z][^.]{0,80}\.?$")
_UPPERCASE_HEADING = re.compile(r"^[A-Z][A-Z\s&,'/-]{2,80}$")
_KEYWORD_HEADING = re.compile(
    r"^(?:ARTICLE|SECTION|CLAUSE)\s+(?:\d+|[IVX]+)\b.{0,80}$", re.IGNORECASE
)
_LABEL_PREFIX = re.compile(
    r"^(?P<label>[A-Za-z0-9][\w .,&'/()-]{1,60}?)\s*:\s*(?P<rest>.*)$", re.S
)
_HEADING_NUMBER = re.compile(
    r"^(?:(?:article|section|clause)\s+)?(?:\d+(?:\.\d+)*|[ivx]+)(?:[.):]\s*|\s+)(?:[-:]\s*)?",
    re.IGNORECASE,
)
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")

PREAMBLE_LABEL = "Preamble"


@dataclass(frozen=True)
class Section:
    """One labelled block of a contract.

    ``key`` is the normalized label used for pairing; None for paragraphs that
    carry no label of their own and can only be paired by content.
    """

    label: str
    body: str
    key: str | None


def normalize_label(label: str) -> str:
    """Lower-case a heading and drop its numbering, e.g. '2. TERM' -> 'term'."""
    stripped = _HEADING_NUMBER.sub("", label.strip())
    return " ".join(stripped.lower().split()) or " ".join(label.lower().split())


def is_heading(line: str) -> bool:
    line = line.strip()
    if not line or len(line) > 90:
        return False
    return bool(
        _NUMBERED_HEADING.match(line)
        or _UPPERCASE_HEADING.match(line)
        or _KEYWORD_HEADING.match(line)
    )


def split_sections(text: str) -> list[Section]:
    """Split text at headings, or into labelled paragraphs when there are none."""
    lines = text.splitlines()
    if not any(is_heading(line) for line in lines):
        return _split_paragraphs(text)

    sections: list[Section] = []
    label = PREAMBLE_LABEL
    body: list[str] = []
    for line in lines:
        if is_heading(line):
            _append_section(sections, label, body)
            label, inline_body = _split_heading(line.strip())
            body = [inline_body] if inline_body else []
        else:
            body.append(line)
    _append_section(sections, label, body)
    return sections


def _split_heading(line: str) -> tuple[str, str]:
    """Separate 'Label: text' headings into label and inline body."""
    match = _LABEL_PREFIX.match(line)
    if match and match.group("rest"):
        return match.group("label").strip(), match.group("rest").strip()
    return line, ""


def _append_section(sections: list[Section], label: str, body_lines: list[str]) -> None:
    body = "\n".join(body_lines).strip()
    if label == PREAMBLE_LABEL and not body:
        return
    sections.append(Section(label=label, body=body, key=normalize_label(label)))


def _split_paragraphs(text: str) -> list[Section]:
    sections = []
    for index, paragraph in enumerate(_PARAGRAPH_SPLIT.split(text.strip()), start=1):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        match = _LABEL_PREFIX.match(paragraph)
        if match:
            label = match.group("label").strip()
            sections.append(
                Section(label=label, body=match.group("rest").strip(), key=normalize_label(label))
            )
        else:
            sections.append(Section(label=f"Paragraph {index}", body=paragraph, key=None))
    return sections


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Jaccard index of the words longer than three characters, as a percentage."""
    words_a = {w for w in text_a.lower().split() if len(w) > 3}
    words_b = {w for w in text_b.lower().split() if len(w) > 3}
    union = words_a | words_b
    if not union:
        return 100.0
    return len(words_a & words_b) / len(union) * 100


@dataclass(frozen=True)
class TextStats:
    words: int
    characters: int
    characters_no_spaces: int
    sentences: int
    paragraphs: int
    average_word_length: float


def text_stats(text: str) -> TextStats:
    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    paragraphs = [p for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]
    average = round(sum(len(w) for w in words) / len(words), 1) if words else 0.0
    return TextStats(
        words=len(words),
        characters=len(text),
        characters_no_spaces=len("".join(text.split())),
        sentences=len(sentences),
        paragraphs=len(paragraphs),
        average_word_length=average,
    )
