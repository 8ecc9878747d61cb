"""Event filtering for calendarfilter_lite.

Include rules are a positive gate (an event must match at least one entry of
every non-empty include list), exclude rules a negative gate (any match
rejects). The two gates are ANDed, so ``include=OnCall&exclude=Secondary``
keeps on-call events that are not secondary.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .lite_models import FeedEvent, FilterRules

logger = logging.getLogger(__name__)

# Query parameter names understood by parse_filter_rules
INCLUDE_PARAM = "include"
EXCLUDE_PARAM = "exclude"
INCLUDE_PATTERN_PARAM = "includePattern"
EXCLUDE_PATTERN_PARAM = "excludePattern"


def split_rule_list(value: str | None) -> list[str]:
    """Split a comma-separated parameter into trimmed entries.

    Blank entries are kept: a present but empty parameter yields ``[""]``,
    an empty keyword or pattern that matches every summary.

    Args:
        value: Raw parameter value, e.g. ``"TeamB, Secondary"``, or None if absent

    Returns:
        List of entries, e.g. ``["TeamB", "Secondary"]``
    """
    if value is None:
        return []
    return [entry.strip() for entry in value.split(",")]


def parse_filter_rules(params: Mapping[str, str]) -> FilterRules:
    """Build FilterRules from request query parameters.

    Recognizes ``include``, ``exclude``, ``includePattern`` and
    ``excludePattern``; every other key is ignored.

    Args:
        params: Mapping of query parameter names to values

    Returns:
        FilterRules with patterns already compiled

    Raises:
        FilterRuleError: If any pattern is not a valid regular expression
    """
    rules = FilterRules(
        include=split_rule_list(params.get(INCLUDE_PARAM)),
        exclude=split_rule_list(params.get(EXCLUDE_PARAM)),
        include_patterns=split_rule_list(params.get(INCLUDE_PATTERN_PARAM)),
        exclude_patterns=split_rule_list(params.get(EXCLUDE_PATTERN_PARAM)),
    )
    logger.debug(
        "Filter rules: include=%s exclude=%s include_patterns=%s exclude_patterns=%s",
        list(rules.include),
        list(rules.exclude),
        [p.pattern for p in rules.include_patterns],
        [p.pattern for p in rules.exclude_patterns],
    )
    return rules


def _contains_any(summary: str, keywords: Iterable[str]) -> bool:
    lowered = summary.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def is_event_included(event: FeedEvent, rules: FilterRules) -> bool:
    """Decide whether an event survives the rules.

    Checks run in order and stop at the first rejection: include keywords,
    include patterns, exclude keywords, exclude patterns. Empty lists are
    skipped, so empty rules keep everything. An empty summary never satisfies
    a non-empty include group, not even a blank keyword or pattern.

    Args:
        event: Parsed event; only its summary is consulted
        rules: Rule set to apply

    Returns:
        True if the event should be kept
    """
    summary = event.summary or ""

    if rules.include and not (summary and _contains_any(summary, rules.include)):
        return False

    if rules.include_patterns and not (
        summary and any(p.search(summary) for p in rules.include_patterns)
    ):
        return False

    if rules.exclude and _contains_any(summary, rules.exclude):
        return False

    if rules.exclude_patterns and any(p.search(summary) for p in rules.exclude_patterns):
        return False

    return True


class EventFilter:
    """Applies one FilterRules instance to sequences of events."""

    def __init__(self, rules: FilterRules):
        """Initialize event filter.

        Args:
            rules: Rule set used for every call to filter_events
        """
        self.rules = rules

    def should_include(self, event: FeedEvent) -> bool:
        """Check a single event against the rules."""
        return is_event_included(event, self.rules)

    def filter_events(self, events: Sequence[FeedEvent]) -> list[FeedEvent]:
        """Keep the events that pass the rules, in their original order.

        Args:
            events: Events in feed order

        Returns:
            The retained events
        """
        if self.rules.is_empty:
            return list(events)

        kept = [event for event in events if self.should_include(event)]
        logger.debug("Kept %d of %d events", len(kept), len(events))
        return kept
