"""Core infrastructure: configuration, HTTP client pool and timezone helpers."""
