"""aiohttp server for calendarfilter_lite."""
