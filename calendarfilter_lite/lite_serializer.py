"""Reassembly of filtered ICS feeds - calendarfilter_lite."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from itertools import chain

from .event_filter import EventFilter
from .lite_models import FeedEvent, FilterRules
from .lite_parser import parse_calendar

logger = logging.getLogger(__name__)

LINE_SEPARATOR = "\n"


def serialize_calendar(
    header: Sequence[str],
    events: Iterable[FeedEvent],
    footer: Sequence[str],
) -> str:
    """Join header lines, each event's raw lines and footer lines into one document.

    Lines are written exactly as stored; derived event fields are never used.
    """
    event_lines = chain.from_iterable(event.raw_lines for event in events)
    return LINE_SEPARATOR.join(chain(header, event_lines, footer))


def filter_calendar(text: str, rules: FilterRules) -> str:
    """Parse a feed, drop the events the rules reject and serialize the rest.

    Args:
        text: Complete ICS document
        rules: Rule set built for this request

    Returns:
        ICS document with the header, retained events and footer
    """
    calendar = parse_calendar(text)
    kept = EventFilter(rules).filter_events(calendar.events)

    logger.info(
        "Filtered feed: kept %d of %d events (%d unterminated dropped)",
        len(kept),
        calendar.event_count,
        calendar.dropped_blocks,
    )
    return serialize_calendar(calendar.header, kept, calendar.footer)
