"""Interfaces for the two I/O boundaries of the schedule cache."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date


class ScheduleStore(ABC):
    """Byte store holding one serialized schedule per area code."""

    @abstractmethod
    def read(self, area_code: str) -> bytes:
        """Return the stored bytes for *area_code*.

        Raises ``CacheNotFoundError`` when nothing was ever stored and
        ``CacheReadError`` for any other failure.
        """

    @abstractmethod
    def write(self, area_code: str, raw: bytes) -> None:
        """Replace the stored bytes for *area_code*. Raises ``CacheWriteError``."""


class ScheduleFetcher(ABC):
    """Source of a day's raw price list."""

    @abstractmethod
    def build_url(self, area_code: str, day: date) -> str:
        """Address the price list for *area_code* on *day* is fetched from."""

    @abstractmethod
    def fetch(self, area_code: str, day: date) -> bytes:
        """Download the raw price list for *area_code* on *day*.

        Raises a ``FetchError`` subclass on transport failure or a
        non-success response. The body is returned unparsed.
        """
