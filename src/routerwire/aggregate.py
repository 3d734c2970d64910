"""Fold a stream of events into the final response parts."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from routerwire.stream import (
    ErrorEvent,
    ImageEvent,
    ReasoningDetailEvent,
    ReasoningTextEvent,
    TextEvent,
    UsageEvent,
    decode_line,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from routerwire.stream import ReasoningDetail, StreamEvent
    from routerwire.usage import UsageMetrics

logger = logging.getLogger(__name__)


@dataclass
class StreamAccumulator:
    """Mutable accumulator for one response; create one per request.

    Reasoning details are de-duplicated by id, or by type, text and summary
    when the upstream sends no id.

    Example:
        acc = StreamAccumulator()
        for line in transport_lines:
            if acc.feed_line(line):
                break
        print(acc.text)
    """

    text_parts: list[str] = field(default_factory=list)
    reasoning_parts: list[str] = field(default_factory=list)
    reasoning_details: list[ReasoningDetail] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    usage: UsageEvent | None = None
    error: ErrorEvent | None = None
    done: bool = False
    decode_errors: int = 0
    _detail_keys: set[str] = field(default_factory=set, repr=False)

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    @property
    def reasoning_text(self) -> str:
        return "".join(self.reasoning_parts)

    @property
    def usage_metrics(self) -> UsageMetrics | None:
        return self.usage.metrics if self.usage is not None else None

    def add(self, event: StreamEvent) -> None:
        match event:
            case TextEvent(content=content):
                self.text_parts.append(content)
            case ReasoningTextEvent(text=text):
                self.reasoning_parts.append(text)
            case ReasoningDetailEvent(detail=detail):
                self._add_detail(detail)
            case ImageEvent(content=content):
                if content not in self.images:
                    self.images.append(content)
            case UsageEvent():
                self.usage = event
            case ErrorEvent():
                # The first error is the one that ended the stream.
                if self.error is None:
                    self.error = event

    def extend(self, events: Iterable[StreamEvent]) -> None:
        for event in events:
            self.add(event)

    def feed_line(self, line: str | bytes) -> bool:
        """Decode and fold one line; return True once the stream is done."""
        result = decode_line(line)
        if result.error is not None:
            self.decode_errors += 1
            logger.debug("Skipping undecodable stream line: %s", result.error)
            return self.done
        self.extend(result.events)
        if result.is_done:
            self.done = True
        return self.done

    def _add_detail(self, detail: ReasoningDetail) -> None:
        key = detail.id or f"{detail.type}|{detail.text}|{detail.summary}"
        if key in self._detail_keys:
            return
        self._detail_keys.add(key)
        self.reasoning_details.append(detail)
