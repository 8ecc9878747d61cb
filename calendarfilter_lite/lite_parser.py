"""Line-oriented ICS parser - calendarfilter_lite.

Splits a feed into the lines before the first event, the VEVENT blocks and the
lines after the last event. Each physical line is one record: folded lines are
not joined and nothing is decoded, so every kept line can be written back out
exactly as it arrived.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .lite_models import FeedEvent, ParsedCalendar

logger = logging.getLogger(__name__)

BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"

# Property prefixes in the order they are tested; a line feeds at most one field.
SUMMARY_PREFIX = "SUMMARY:"
DTSTART_PREFIX = "DTSTART"
DTEND_PREFIX = "DTEND"
UID_PREFIX = "UID:"


class ParserState(Enum):
    """Where the parser is relative to a VEVENT block."""

    OUTSIDE = "outside"
    IN_EVENT = "in_event"


@dataclass
class _EventAccumulator:
    """Collects one open VEVENT block until its END line arrives."""

    raw_lines: list[str] = field(default_factory=list)
    summary: str | None = None
    dtstart: str | None = None
    dtend: str | None = None
    uid: str | None = None

    def add_line(self, raw_line: str, line: str) -> None:
        """Append a raw line and capture the first occurrence of each known property.

        Args:
            raw_line: Line as it appeared in the feed
            line: Same line stripped of surrounding whitespace
        """
        self.raw_lines.append(raw_line)

        if line.startswith(SUMMARY_PREFIX):
            if self.summary is None:
                self.summary = line[len(SUMMARY_PREFIX) :]
        elif line.startswith(DTSTART_PREFIX):
            if self.dtstart is None:
                self.dtstart = line
        elif line.startswith(DTEND_PREFIX):
            if self.dtend is None:
                self.dtend = line
        elif line.startswith(UID_PREFIX):
            if self.uid is None:
                self.uid = line[len(UID_PREFIX) :]

    def freeze(self) -> FeedEvent:
        """Snapshot the block as an immutable event."""
        return FeedEvent(
            uid=self.uid or "",
            summary=self.summary or "",
            dtstart=self.dtstart or "",
            dtend=self.dtend or "",
            raw_lines=tuple(self.raw_lines),
        )


def split_lines(text: str) -> list[str]:
    """Split feed text on newlines, keeping any carriage returns on the lines."""
    return text.split("\n")


def _find_footer_start(lines: list[str]) -> int:
    """Index just past the last END:VEVENT line, or len(lines) if there is none."""
    for index in range(len(lines) - 1, -1, -1):
        if lines[index].strip() == END_EVENT:
            return index + 1
    return len(lines)


def _collect_footer(lines: list[str]) -> list[str]:
    """Lines after the last END:VEVENT, stopping at a block that is never closed."""
    footer = []
    for raw_line in lines[_find_footer_start(lines) :]:
        if raw_line.strip() == BEGIN_EVENT:
            # No END:VEVENT follows, so this block runs unterminated to the end
            break
        footer.append(raw_line)
    return footer


def parse_calendar(text: str) -> ParsedCalendar:
    """Parse ICS text into header, events and footer.

    A ``BEGIN:VEVENT`` always opens a fresh block; a block that is never closed
    by ``END:VEVENT`` is discarded together with all of its lines. An
    ``END:VEVENT`` seen outside a block is ignored.

    Args:
        text: Complete ICS document

    Returns:
        ParsedCalendar with the header, complete events in feed order, and footer.
        This function never raises for malformed content.
    """
    lines = split_lines(text)

    header: list[str] = []
    events: list[FeedEvent] = []
    in_header = True
    dropped_blocks = 0

    state = ParserState.OUTSIDE
    current: _EventAccumulator | None = None

    for raw_line in lines:
        line = raw_line.strip()

        if line == BEGIN_EVENT:
            in_header = False
            if state is ParserState.IN_EVENT:
                dropped_blocks += 1
            state = ParserState.IN_EVENT
            current = _EventAccumulator()
            current.add_line(raw_line, line)
            continue

        if in_header:
            header.append(raw_line)
            continue

        if state is not ParserState.IN_EVENT or current is None:
            continue

        if line == END_EVENT:
            current.raw_lines.append(raw_line)
            events.append(current.freeze())
            current = None
            state = ParserState.OUTSIDE
        else:
            current.add_line(raw_line, line)

    if state is ParserState.IN_EVENT:
        dropped_blocks += 1

    # Without a complete event any END:VEVENT sits inside the header already.
    footer = _collect_footer(lines) if events else []

    if dropped_blocks:
        logger.debug("Dropped %d unterminated VEVENT block(s)", dropped_blocks)
    logger.debug(
        "Parsed feed: %d lines, %d header, %d events, %d footer",
        len(lines),
        len(header),
        len(events),
        len(footer),
    )

    return ParsedCalendar(
        header=tuple(header),
        events=tuple(events),
        footer=tuple(footer),
        dropped_blocks=dropped_blocks,
    )
