"""Structured logging for parts search monitoring."""

import json
import logging
from typing import Optional


class StructuredLogger:
    """Structured logger emitting one JSON object per line."""

    def __init__(self, name: str = "parts_finder", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, source, key, part, status, error, elapsed_ms,
                      count, group, cb_state
        """
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def marketplace_request(self, source: str, keywords: str) -> None:
        self.log("marketplace_request", level=logging.DEBUG, source=source, keywords=keywords)

    def marketplace_success(self, source: str, elapsed_ms: float) -> None:
        self.log("marketplace_success", source=source, elapsed_ms=round(elapsed_ms, 1))

    def listings_parsed(self, source: str, count: int) -> None:
        self.log("listings_parsed", level=logging.DEBUG, source=source, count=count)

    def marketplace_error(self, source: str, status: Optional[int], error: str) -> None:
        self.log("marketplace_error", level=logging.WARNING, source=source, status=status, error=error)

    def marketplace_skipped(self, source: str, reason: str) -> None:
        self.log("marketplace_skipped", level=logging.DEBUG, source=source, reason=reason)

    def circuit_breaker_state(self, source: str, state: str) -> None:
        self.log("circuit_breaker", level=logging.WARNING, source=source, cb_state=state)

    def cache_event(self, event: str, key: str) -> None:
        self.log(event, level=logging.DEBUG, key=key)

    def part_failed(self, part: str, error: str) -> None:
        self.log("part_failed", level=logging.ERROR, part=part, error=error)

    def batch_group(self, group: int, size: int) -> None:
        self.log("batch_group", level=logging.DEBUG, group=group, size=size)
