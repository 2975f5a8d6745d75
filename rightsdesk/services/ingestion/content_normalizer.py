"""Normalization of submitted content into indexable text.

Callers may submit document content as plain text or as a ``data:`` URI
(``data:<mime>[;charset=...][;base64],<payload>``) produced by a browser
file picker.  :func:`normalize_content` turns either into the text that is
checksummed, chunked and embedded:

* plain text is used as given;
* textual payloads (``text/*``, JSON, XML, markup) are decoded to UTF-8;
* images and PDFs, for which no text extractor is wired in, become a short
  descriptive placeholder and are flagged so the caller can tell;
* Word documents are rejected with an instruction to convert them;
* other binary payloads are accepted only if they decode as UTF-8.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

import structlog

from rightsdesk.utils.errors import UnsupportedFormatError, ValidationError

logger = structlog.get_logger(logger_name=__name__)

_DATA_URI_PREFIX = "data:"

WORD_UNSUPPORTED_MESSAGE = (
    "Word documents (.doc, .docx) are not yet supported. "
    "Please convert your document to PDF or TXT format and try again."
)

_WORD_MIME_MARKERS = ("msword", "wordprocessingml")
_WORD_EXTENSIONS = (".doc", ".docx")

_TEXTUAL_MIME_TYPES = frozenset(
    {
        "application/json",
        "application/xml",
        "application/xhtml+xml",
        "application/javascript",
        "application/x-ndjson",
        "application/rtf",
    }
)


@dataclass(frozen=True)
class NormalizedContent:
    """Text ready for ingestion.

    Attributes
    ----------
    text:
        The normalized content.
    mime_type:
        MIME type from the data URI, or ``None`` for plain text input.
    placeholder:
        ``True`` when *text* describes a binary file instead of holding its
        content.
    """

    text: str
    mime_type: str | None = None
    placeholder: bool = False


def _image_placeholder(title: str, mime_type: str) -> str:
    return (
        f"[Image File: {title}]\n"
        f"File Type: {mime_type}\n"
        "This is an image document stored in the corpus.\n"
        f"Original filename: {title}"
    )


def _pdf_placeholder(title: str, mime_type: str) -> str:
    return (
        f"[PDF File: {title}]\n"
        f"File Type: {mime_type}\n"
        "This is a PDF document stored in the corpus.\n"
        f"Original filename: {title}"
    )


def _is_textual(mime_type: str) -> bool:
    return (
        mime_type.startswith("text/")
        or mime_type in _TEXTUAL_MIME_TYPES
        or mime_type.endswith(("+json", "+xml"))
    )


def _is_word(mime_type: str, title: str) -> bool:
    return any(marker in mime_type for marker in _WORD_MIME_MARKERS) or title.lower().endswith(
        _WORD_EXTENSIONS
    )


def normalize_content(content: str, title: str) -> NormalizedContent:
    """Return the indexable text for *content*.

    Parameters
    ----------
    content:
        Plain text or a ``data:`` URI.
    title:
        Document title, used as the filename in placeholders and to spot
        Word files sent with a generic MIME type.

    Raises
    ------
    ValidationError
        If a data URI has no payload or its base64 is malformed.
    UnsupportedFormatError
        For Word documents and binary payloads that are not UTF-8 text.
    """
    if not content.startswith(_DATA_URI_PREFIX):
        return NormalizedContent(text=content)

    header, sep, payload = content.partition(",")
    if not sep or not payload.strip():
        raise ValidationError("Invalid base64 data")

    params = [p.strip() for p in header[len(_DATA_URI_PREFIX) :].split(";")]
    mime_type = params[0].lower() or "text/plain"
    is_base64 = any(p.lower() == "base64" for p in params[1:])
    charset = "utf-8"
    for p in params[1:]:
        if p.lower().startswith("charset="):
            charset = p.split("=", 1)[1] or "utf-8"

    if _is_word(mime_type, title):
        logger.warning("word_document_rejected", title=title, mime_type=mime_type)
        raise UnsupportedFormatError(WORD_UNSUPPORTED_MESSAGE)

    if mime_type.startswith("image/"):
        logger.info("binary_content_placeholder", title=title, mime_type=mime_type)
        return NormalizedContent(
            text=_image_placeholder(title, mime_type), mime_type=mime_type, placeholder=True
        )
    if mime_type == "application/pdf":
        logger.info("binary_content_placeholder", title=title, mime_type=mime_type)
        return NormalizedContent(
            text=_pdf_placeholder(title, mime_type), mime_type=mime_type, placeholder=True
        )

    raw = _decode_payload(payload, is_base64)

    if _is_textual(mime_type):
        try:
            text = raw.decode(charset, errors="replace")
        except LookupError as exc:
            raise ValidationError(f"Unknown charset: {charset}") from exc
        return NormalizedContent(text=text, mime_type=mime_type)

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnsupportedFormatError(
            f"Unsupported file type: {mime_type}. "
            "Please convert your document to PDF or TXT format and try again."
        ) from exc
    return NormalizedContent(text=text, mime_type=mime_type)


def _decode_payload(payload: str, is_base64: bool) -> bytes:
    if not is_base64:
        return unquote_to_bytes(payload)
    try:
        return base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Invalid base64 data") from exc
