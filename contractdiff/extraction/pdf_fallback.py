import base64
import binascii
import re
import zlib

from contractdiff.extraction.exceptions import PdfExtractionError
from contractdiff.extraction.models import ParsedPdf
from contractdiff.logging.logger import Log

_STREAM_RE = re.compile(
    rb"<<(?P<dict>(?:(?!>>).)*)>>\s*stream\r?\n(?P<body>.*?)\r?\n?endstream",
    re.S,
)
_PAGE_RE = re.compile(rb"/Type\s*/Page(?![a-zA-Z])")

# Text showing operators and the operators that move to a new line.
_CONTENT_TOKEN_RE = re.compile(
    rb"\((?P<tj>(?:\\.|[^\\)])*)\)\s*Tj"
    rb"|\[(?P<tj_array>(?:\\.|\((?:\\.|[^\\)])*\)|[^\]\\(])*)\]\s*TJ"
    rb"|(?P<newline>\bT\*|\bTd\b|\bTD\b|\bET\b)",
    re.S,
)
_ARRAY_STRING_RE = re.compile(rb"\(((?:\\.|[^\\)])*)\)", re.S)
_ESCAPE_RE = re.compile(rb"\\([0-7]{1,3}|\r\n|\r|\n|.)", re.S)
_SIMPLE_ESCAPES = {
    b"n": b"\n",
    b"r": b"\r",
    b"t": b"\t",
    b"b": b"\b",
    b"f": b"\f",
    b"(": b"(",
    b")": b")",
    b"\\": b"\\",
}
_SPACES_RE = re.compile(r"[ \t]+")


def unescape_pdf_string(raw: bytes) -> str:
    """Decode a PDF literal string body (octal and backslash escapes)."""

    def _replace(match: re.Match[bytes]) -> bytes:
        escaped = match.group(1)
        if escaped[:1].isdigit():
            return bytes([int(escaped, 8) & 0xFF])
        if escaped in (b"\r\n", b"\r", b"\n"):
            return b""
        return _SIMPLE_ESCAPES.get(escaped, escaped)

    return _ESCAPE_RE.sub(_replace, raw).decode("latin-1")


def count_pages(pdf_bytes: bytes) -> int:
    return max(1, len(_PAGE_RE.findall(pdf_bytes)))


class RawPdfStreamScanner:
    """Recovers text from PDF bytes without a PDF parser.

    Content streams are located directly in the file, decoded when they use
    FlateDecode or ASCII85Decode, and scanned for Tj and TJ operators. Used
    only when the regular parser fails.
    """

    def scan(self, pdf_bytes: bytes) -> ParsedPdf:
        lines: list[str] = []
        for stream_dict, body in self._streams(pdf_bytes):
            content = self._decode(stream_dict, body)
            if content is None:
                continue
            lines.extend(self._text_lines(content))

        text = "\n".join(line for line in lines if line)
        if not text.strip():
            raise PdfExtractionError("No text found in raw PDF content streams")
        return ParsedPdf(text=text, page_count=count_pages(pdf_bytes))

    def _streams(self, pdf_bytes: bytes) -> list[tuple[bytes, bytes]]:
        return [(m.group("dict"), m.group("body")) for m in _STREAM_RE.finditer(pdf_bytes)]

    def _decode(self, stream_dict: bytes, body: bytes) -> bytes | None:
        data = body
        try:
            if b"ASCII85Decode" in stream_dict or b"/A85" in stream_dict:
                data = base64.a85decode(data.strip(), adobe=data.strip().endswith(b"~>"))
            if b"FlateDecode" in stream_dict or b"/Fl" in stream_dict:
                data = zlib.decompress(data)
        except (ValueError, binascii.Error, zlib.error) as exc:
            Log.debug(f"Skipping undecodable PDF stream: {exc}")
            return None
        return data

    def _text_lines(self, content: bytes) -> list[str]:
        lines: list[str] = []
        current: list[str] = []
        for match in _CONTENT_TOKEN_RE.finditer(content):
            if match.group("newline") is not None:
                if current:
                    lines.append(self._join(current))
                    current = []
            elif match.group("tj") is not None:
                current.append(unescape_pdf_string(match.group("tj")))
            else:
                parts = _ARRAY_STRING_RE.findall(match.group("tj_array"))
                current.append("".join(unescape_pdf_string(p) for p in parts))
        if current:
            lines.append(self._join(current))
        return lines

    @staticmethod
    def _join(fragments: list[str]) -> str:
        return _SPACES_RE.sub(" ", " ".join(fragments)).strip()
