import re
from pathlib import PurePath

_UNSAFE_KEY_CHARS = re.compile(r"[^\w.@+-]")


def safe_segment(value: str, default: str = "_") -> str:
    """Make a value usable as one path segment of a blob key."""
    cleaned = _UNSAFE_KEY_CHARS.sub("_", value).strip(".")
    return cleaned or default


def document_key(owner: str, content_hash: str, filename: str) -> str:
    """documents/<owner>/<hash>/<filename>"""
    name = safe_segment(PurePath(filename).name, default="document")
    return f"documents/{safe_segment(owner)}/{content_hash}/{name}"


def export_key(owner: str, comparison_id: int) -> str:
    """exports/<owner>/comparison-<id>.json"""
    return f"exports/{safe_segment(owner)}/comparison-{comparison_id}.json"
