"""Data models for ICS feed filtering - calendarfilter_lite."""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .exceptions import FilterRuleError


class FeedEvent(BaseModel):
    """One VEVENT block taken verbatim from a feed.

    ``raw_lines`` is the only thing ever written back out. The other fields are
    extracted for filtering and are lossy (``summary`` is the text after the
    literal ``SUMMARY:`` prefix, property parameters are not understood).
    """

    uid: str = ""
    summary: str = ""
    dtstart: str = ""
    dtend: str = ""
    raw_lines: tuple[str, ...] = Field(
        default_factory=tuple, description="Block lines from BEGIN:VEVENT to END:VEVENT"
    )

    model_config = ConfigDict(frozen=True)


class ParsedCalendar(BaseModel):
    """A feed split into header lines, events and footer lines."""

    header: tuple[str, ...] = Field(default_factory=tuple)
    events: tuple[FeedEvent, ...] = Field(default_factory=tuple)
    footer: tuple[str, ...] = Field(default_factory=tuple)

    # Parse statistics
    dropped_blocks: int = Field(
        default=0, ge=0, description="Unterminated VEVENT blocks that were discarded"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def event_count(self) -> int:
        """Number of complete events found in the feed."""
        return len(self.events)


class FilterRules(BaseModel):
    """Keyword and regex rules deciding which events survive.

    Keywords are matched as case-insensitive substrings of the event summary.
    Pattern strings are compiled once, here, with ``re.IGNORECASE``; a bad
    pattern raises :class:`FilterRuleError` and no rule set is produced.

    Example:
        >>> rules = FilterRules(include=["OnCall"], exclude_patterns=["^Secondary"])
        >>> rules.is_empty
        False
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    include_patterns: tuple[re.Pattern[str], ...] = ()
    exclude_patterns: tuple[re.Pattern[str], ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("include_patterns", "exclude_patterns", mode="before")
    @classmethod
    def compile_patterns(cls, v: Any, info: ValidationInfo) -> tuple[re.Pattern[str], ...]:
        """Compile pattern strings case-insensitively.

        Already compiled patterns are kept as they are.

        Raises:
            FilterRuleError: If a pattern string is not a valid regular expression
        """
        if v is None:
            return ()
        if isinstance(v, (str, re.Pattern)):
            v = [v]

        compiled = []
        for pattern in v:
            if isinstance(pattern, re.Pattern):
                compiled.append(pattern)
                continue
            try:
                compiled.append(re.compile(str(pattern), re.IGNORECASE))
            except re.error as e:
                raise FilterRuleError(
                    f"{pattern!r}: {e}",
                    field_name=info.field_name,
                    field_value=pattern,
                    validation_errors=[str(e)],
                ) from e
        return tuple(compiled)

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def normalize_keywords(cls, v: Any) -> tuple[str, ...]:
        """Accept a single keyword or any iterable of keywords."""
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        return tuple(str(keyword) for keyword in v)

    @property
    def is_empty(self) -> bool:
        """True when no rule list is set, so every event is kept."""
        return not (self.include or self.exclude or self.include_patterns or self.exclude_patterns)


class LiteFeedResponse(BaseModel):
    """Response from a feed fetch operation."""

    success: bool
    content: Optional[str] = None
    status_code: Optional[int] = None
    reason_phrase: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    error_message: Optional[str] = None
