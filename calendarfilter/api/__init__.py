"""HTTP layer for calendarfilter: aiohttp app factory and routes."""
