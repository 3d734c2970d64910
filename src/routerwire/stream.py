"""Stream decoding: one event-stream line in, zero or more typed events out.

The decoder is stateless per call; line framing belongs to the transport.
Within one chunk, facts are extracted in a fixed order:

1. error (top level, per choice, per delta, or ``finish_reason == "error"``)
   short-circuits to exactly one ``ErrorEvent``
2. usage (top level or per choice)
3. ``delta.reasoning_details`` fragments
4. ``delta.reasoning`` then ``delta.reasoning_content`` text
5. ``delta.images`` / ``delta.image``
6. ``delta.content``
7. ``message.content`` (same normalization as ``delta.content``)
8. ``attachments``
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Literal

from routerwire._http import coerce_status_code, is_retryable_status
from routerwire.errors import DecodeError
from routerwire.usage import normalize_usage

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from routerwire.usage import UsageMetrics

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
DEFAULT_ERROR_MESSAGE = "Upstream stream error"
DEFAULT_ERROR_CODE = "StreamError"
FINISH_REASON_ERROR_CODE = "FinishReasonError"

_BARE_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")
# Shorter strings are far more likely to be plain words than image bytes.
_MIN_BARE_BASE64_LEN = 101
_MAX_IMAGE_NESTING = 8
_TEXT_BLOCK_TYPES = frozenset({"text", "output_text"})


# --- Events ---


@dataclass(frozen=True)
class TextEvent:
    content: str
    type: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True)
class ReasoningTextEvent:
    """Free-form reasoning text meant for display."""

    text: str
    type: Literal["reasoning_stream_text"] = field(
        default="reasoning_stream_text", init=False
    )


@dataclass(frozen=True)
class ReasoningDetail:
    """Structured reasoning fragment, replayed verbatim on a later turn."""

    id: str | None = None
    type: str = "unknown"
    text: str = ""
    summary: str = ""
    data: str = ""
    format: str = ""
    index: int | None = None


@dataclass(frozen=True)
class ReasoningDetailEvent:
    detail: ReasoningDetail
    type: Literal["reasoning_detail"] = field(default="reasoning_detail", init=False)


@dataclass(frozen=True)
class ImageEvent:
    #: Data URI or http(s) URL.
    content: str
    type: Literal["image"] = field(default="image", init=False)


@dataclass(frozen=True)
class UsageEvent:
    usage: dict[str, Any]
    request_id: str | None = None
    type: Literal["usage"] = field(default="usage", init=False)

    @property
    def metrics(self) -> UsageMetrics | None:
        return normalize_usage(self.usage)


@dataclass(frozen=True)
class ErrorEvent:
    """Upstream-reported error. Retry policy is the caller's decision."""

    message: str
    code: str = DEFAULT_ERROR_CODE
    status_code: int | None = None
    retryable: bool = False
    details: Any = None
    type: Literal["error"] = field(default="error", init=False)


StreamEvent = (
    TextEvent
    | ReasoningTextEvent
    | ReasoningDetailEvent
    | ImageEvent
    | UsageEvent
    | ErrorEvent
)


@dataclass(frozen=True)
class DecodeResult:
    events: tuple[StreamEvent, ...] = ()
    is_done: bool = False
    error: DecodeError | None = None


# --- Image normalization ---


def _as_data_uri(b64: str, mime_type: str = "image/png") -> str | None:
    b64 = b64.strip()
    if not b64:
        return None
    if b64.startswith("data:"):
        return b64
    return f"data:{mime_type};base64,{b64}"


def normalize_image(payload: Any, _depth: int = 0) -> str | None:
    """Normalize an inline image payload to a data URI or URL.

    Accepts a URL or data URI string, a long bare base64 string, or an object
    carrying one under ``url``, ``image_url`` (string or ``{url}``),
    ``b64_json``, ``data``, ``image_base64``, ``inline_data{data, mime_type}``,
    ``asset_pointer``, or a nested ``image``.
    """
    if not payload or _depth > _MAX_IMAGE_NESTING:
        return None

    if isinstance(payload, str):
        value = payload.strip()
        if value.startswith(("data:", "https://", "http://")):
            return value
        if len(value) >= _MIN_BARE_BASE64_LEN and _BARE_BASE64_RE.match(value):
            return f"data:image/png;base64,{value}"
        return None

    if not isinstance(payload, dict):
        return None

    nested = _depth + 1
    if isinstance(payload.get("url"), str):
        return normalize_image(payload["url"], nested)

    image_url = payload.get("image_url")
    if isinstance(image_url, str) and image_url:
        return normalize_image(image_url, nested)
    if isinstance(image_url, dict) and image_url.get("url"):
        return normalize_image(image_url["url"], nested)

    if isinstance(payload.get("b64_json"), str):
        normalized = _as_data_uri(payload["b64_json"])
        if normalized:
            return normalized

    if isinstance(payload.get("data"), str):
        return normalize_image(payload["data"], nested)

    if isinstance(payload.get("image_base64"), str):
        normalized = _as_data_uri(payload["image_base64"])
        if normalized:
            return normalized

    inline = payload.get("inline_data")
    if isinstance(inline, dict) and isinstance(inline.get("data"), str):
        mime_type = inline.get("mime_type")
        if not isinstance(mime_type, str) or not mime_type:
            mime_type = "image/png"
        normalized = _as_data_uri(inline["data"], mime_type)
        if normalized:
            return normalized

    if isinstance(payload.get("asset_pointer"), str):
        return normalize_image(payload["asset_pointer"], nested)

    if payload.get("image"):
        return normalize_image(payload["image"], nested)

    return None


# --- Chunk decomposition ---


def _error_event(
    error: Any, *, code: str | None = None, message: str | None = None
) -> ErrorEvent:
    raw_code: Any = None
    status_code: int | None = None
    if isinstance(error, dict):
        if message is None and isinstance(error.get("message"), str) and error["message"]:
            message = error["message"]
        raw_code = error.get("code")
        for candidate in (error.get("status_code"), error.get("status"), raw_code):
            status_code = coerce_status_code(candidate)
            if status_code is not None:
                break
    elif isinstance(error, str) and error and message is None:
        message = error

    if code is None:
        code = str(raw_code) if raw_code not in (None, "") else DEFAULT_ERROR_CODE
    return ErrorEvent(
        message=message or DEFAULT_ERROR_MESSAGE,
        code=code,
        status_code=status_code,
        retryable=is_retryable_status(status_code),
        details=error,
    )


def _find_error(chunk: dict[str, Any], choice: dict[str, Any] | None) -> ErrorEvent | None:
    if chunk.get("error"):
        return _error_event(chunk["error"])
    if choice is None:
        return None
    if choice.get("error"):
        return _error_event(choice["error"])
    delta = choice.get("delta")
    if isinstance(delta, dict) and delta.get("error"):
        return _error_event(delta["error"])
    if choice.get("finish_reason") == "error":
        return _error_event(
            choice,
            code=FINISH_REASON_ERROR_CODE,
            message="Upstream finished the stream with an error",
        )
    return None


def _request_id(chunk: dict[str, Any], choice: dict[str, Any] | None) -> str | None:
    for candidate in (
        chunk.get("id"),
        chunk.get("request_id"),
        choice.get("id") if choice else None,
    ):
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def _str_field(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def _reasoning_detail(raw: dict[str, Any]) -> ReasoningDetail:
    index = raw.get("index")
    raw_id = raw.get("id")
    return ReasoningDetail(
        id=str(raw_id) if raw_id is not None else None,
        type=_str_field(raw, "type") or "unknown",
        text=_str_field(raw, "text"),
        summary=_str_field(raw, "summary"),
        data=_str_field(raw, "data"),
        format=_str_field(raw, "format"),
        index=index if isinstance(index, int) and not isinstance(index, bool) else None,
    )


def _image_events(items: Iterable[Any]) -> list[StreamEvent]:
    events: list[StreamEvent] = []
    for item in items:
        normalized = normalize_image(item)
        if normalized:
            events.append(ImageEvent(normalized))
    return events


def _content_events(content: Any) -> list[StreamEvent]:
    """Normalize string | block list | object content into text/image events."""
    match content:
        case str() if content:
            return [TextEvent(content)]
        case list() | tuple():
            events: list[StreamEvent] = []
            for block in content:
                if isinstance(block, str):
                    if block:
                        events.append(TextEvent(block))
                    continue
                if (
                    isinstance(block, dict)
                    and isinstance(block.get("type"), str)
                    and block["type"] in _TEXT_BLOCK_TYPES
                    and isinstance(block.get("text"), str)
                    and block["text"]
                ):
                    events.append(TextEvent(block["text"]))
                    continue
                events.extend(_image_events([block]))
            return events
        case {"text": str(text)} if text:
            return [TextEvent(text)]
        case dict():
            return _image_events([content])
        case _:
            return []


def decode_chunk(chunk: Any) -> list[StreamEvent]:
    """Decompose one parsed stream payload into events, in fixed precedence."""
    if not isinstance(chunk, dict):
        return []

    choices = chunk.get("choices")
    choice = (
        choices[0]
        if isinstance(choices, list) and choices and isinstance(choices[0], dict)
        else None
    )

    error = _find_error(chunk, choice)
    if error is not None:
        return [error]

    events: list[StreamEvent] = []

    usage = chunk.get("usage")
    if not isinstance(usage, dict) and choice is not None:
        usage = choice.get("usage")
    if isinstance(usage, dict):
        events.append(UsageEvent(usage=usage, request_id=_request_id(chunk, choice)))

    if choice is None:
        return events

    delta = choice.get("delta")
    if not isinstance(delta, dict):
        delta = {}

    details = delta.get("reasoning_details")
    if isinstance(details, list):
        events.extend(
            ReasoningDetailEvent(_reasoning_detail(d)) for d in details if isinstance(d, dict)
        )

    reasoning = delta.get("reasoning")
    if isinstance(reasoning, str) and reasoning:
        events.append(ReasoningTextEvent(reasoning))
    elif isinstance(reasoning, dict) and isinstance(reasoning.get("summary"), str):
        if reasoning["summary"]:
            events.append(ReasoningTextEvent(reasoning["summary"]))

    reasoning_content = delta.get("reasoning_content")
    if isinstance(reasoning_content, str) and reasoning_content:
        events.append(ReasoningTextEvent(reasoning_content))

    images = delta.get("images")
    if isinstance(images, list):
        events.extend(_image_events(images))
    if delta.get("image"):
        events.extend(_image_events([delta["image"]]))

    events.extend(_content_events(delta.get("content")))

    message = choice.get("message")
    if isinstance(message, dict):
        events.extend(_content_events(message.get("content")))

    attachments = choice.get("attachments")
    if isinstance(attachments, list):
        events.extend(_image_events(attachments))

    return events


def decode_line(line: str | bytes) -> DecodeResult:
    """Decode one framed event-stream line. Never raises for bad input."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    stripped = line.strip()
    if not stripped or stripped.startswith(":"):
        return DecodeResult()
    if not stripped.startswith("data:"):
        return DecodeResult()

    payload = stripped[len("data:") :].strip()
    if payload == DONE_SENTINEL:
        return DecodeResult(is_done=True)

    try:
        chunk = json.loads(payload)
    except (ValueError, RecursionError) as e:
        return DecodeResult(
            error=DecodeError(
                f"Could not parse stream payload: {e}",
                hint="The line is skipped; the rest of the stream is unaffected.",
                line=line,
            )
        )
    return DecodeResult(events=tuple(decode_chunk(chunk)))


def iter_events(lines: Iterable[str | bytes]) -> Iterator[StreamEvent]:
    """Yield events from *lines* until the termination sentinel.

    Undecodable lines are logged and skipped.
    """
    for line in lines:
        result = decode_line(line)
        if result.error is not None:
            logger.debug("Skipping undecodable stream line: %s", result.error)
            continue
        yield from result.events
        if result.is_done:
            return
