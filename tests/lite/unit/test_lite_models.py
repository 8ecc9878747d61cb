"""Validation tests for calendarfilter_lite.lite_models."""

import re

import pytest
from pydantic import ValidationError

from calendarfilter_lite.exceptions import CalendarFilterError, FilterRuleError
from calendarfilter_lite.lite_models import (
    FeedEvent,
    FilterRules,
    LiteFeedResponse,
    ParsedCalendar,
)

pytestmark = pytest.mark.unit


class TestFilterRules:
    def test_defaults_are_empty(self):
        rules = FilterRules()

        assert rules.is_empty
        assert rules.include == ()
        assert rules.include_patterns == ()

    def test_patterns_compiled_case_insensitive(self):
        rules = FilterRules(include_patterns=["primary"])

        assert rules.include_patterns[0].flags & re.IGNORECASE
        assert rules.include_patterns[0].search("PRIMARY OnCall")

    def test_single_string_accepted(self):
        rules = FilterRules(include="OnCall", exclude_patterns="^Secondary")

        assert rules.include == ("OnCall",)
        assert len(rules.exclude_patterns) == 1

    def test_precompiled_pattern_kept(self):
        pattern = re.compile("Exact")

        rules = FilterRules(exclude_patterns=[pattern])

        assert rules.exclude_patterns[0] is pattern

    def test_none_lists_become_empty(self):
        rules = FilterRules(include=None, include_patterns=None)

        assert rules.is_empty

    def test_any_single_list_makes_rules_non_empty(self):
        assert not FilterRules(exclude=["x"]).is_empty
        assert not FilterRules(exclude_patterns=["x"]).is_empty

    def test_invalid_pattern_raises_filter_rule_error(self):
        with pytest.raises(FilterRuleError) as exc_info:
            FilterRules(include_patterns=["ok", "(unbalanced"])

        error = exc_info.value
        assert isinstance(error, CalendarFilterError)
        assert error.field_name == "include_patterns"
        assert error.field_value == "(unbalanced"
        assert "(unbalanced" in error.message
        assert error.details["field_name"] == "include_patterns"

    def test_rules_are_frozen(self):
        rules = FilterRules(include=["a"])

        with pytest.raises(ValidationError):
            rules.include = ("b",)  # type: ignore[misc]


class TestParsedCalendar:
    def test_event_count(self):
        calendar = ParsedCalendar(events=(FeedEvent(summary="a"), FeedEvent(summary="b")))

        assert calendar.event_count == 2

    def test_negative_dropped_blocks_rejected(self):
        with pytest.raises(ValueError):
            ParsedCalendar(dropped_blocks=-1)


class TestLiteFeedResponse:
    def test_unsuccessful_response_carries_status(self):
        response = LiteFeedResponse(success=False, status_code=404, reason_phrase="Not Found")

        assert response.content is None
        assert response.headers == {}


class TestExceptions:
    def test_str_includes_details(self):
        error = CalendarFilterError("Filtering failed", {"stage": "rules"})

        assert str(error) == "Filtering failed: {'stage': 'rules'}"

    def test_str_without_details_is_message(self):
        assert str(CalendarFilterError("plain")) == "plain"
