from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime

from errors import InvalidAreaCodeError, InvalidThresholdError, PriceNotFoundError


AREA_CODES = ("SE1", "SE2", "SE3", "SE4")
EXPECTED_HOURLY_PRICES = 24


def normalize_area_code(value):
    if not isinstance(value, str) or value.strip().upper() not in AREA_CODES:
        raise InvalidAreaCodeError(
            f"area code has invalid value {value}, valid values are: {', '.join(AREA_CODES)}",
            detail={"area_code": value, "valid": list(AREA_CODES)},
        )
    return value.strip().upper()


def parse_max_price(value):
    if isinstance(value, bool):
        raise InvalidThresholdError(f"{value} is not a valid price")
    try:
        max_price = float(value)
    except (TypeError, ValueError):
        raise InvalidThresholdError(f"{value} is not a valid price") from None
    if not math.isfinite(max_price):
        raise InvalidThresholdError(f"{value} is not a valid price")
    return max_price


def _number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return float(value)


def _parse_timestamp(value):
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        raise ValueError(f"timestamp {value} has no UTC offset")
    return dt


def _as_aware(timestamp):
    # Naive timestamps are taken as local wall clock time.
    if timestamp.tzinfo is None:
        return timestamp.astimezone()
    return timestamp


@dataclass(frozen=True, slots=True)
class Price:
    """One hourly bucket of the day-ahead price list."""

    sek_per_kwh: float
    eur_per_kwh: float
    exchange_rate: float
    start: datetime
    end: datetime

    @classmethod
    def from_payload(cls, item):
        if not isinstance(item, dict):
            raise ValueError(f"price entry must be an object, got {type(item).__name__}")
        try:
            price = cls(
                sek_per_kwh=_number(item["SEK_per_kWh"]),
                eur_per_kwh=_number(item["EUR_per_kWh"]),
                exchange_rate=_number(item["EXR"]),
                start=_parse_timestamp(item["time_start"]),
                end=_parse_timestamp(item["time_end"]),
            )
        except KeyError as exc:
            raise ValueError(f"price entry is missing field {exc.args[0]}") from None
        except TypeError as exc:
            raise ValueError(f"price entry has an invalid value: {exc}") from None
        if price.start >= price.end:
            raise ValueError(f"price entry starting {item['time_start']} does not end after it starts")
        return price

    def covers(self, timestamp):
        return self.start <= timestamp <= self.end


class Schedule:
    """Today's prices for one area, ordered by the start of each bucket.

    A schedule is *valid* when it holds one bucket per hour of the day and
    *expired* once the reference time reaches the end of its last bucket. An
    invalid schedule is always expired.
    """

    __slots__ = ("prices",)

    def __init__(self, prices=()):
        self.prices = tuple(sorted(prices, key=lambda price: price.start))

    def __len__(self):
        return len(self.prices)

    def __iter__(self):
        return iter(self.prices)

    def __repr__(self):
        if not self.prices:
            return "Schedule([])"
        return f"Schedule({len(self.prices)} prices, {self.prices[0].start.isoformat()}..{self.prices[-1].end.isoformat()})"

    def price_at(self, timestamp):
        timestamp = _as_aware(timestamp)
        # Shared boundaries resolve to the earlier bucket.
        for price in self.prices:
            if price.covers(timestamp):
                return price
        raise PriceNotFoundError(
            f"no price found for {timestamp.isoformat()}",
            detail={"timestamp": timestamp.isoformat()},
        )

    def is_valid(self):
        return len(self.prices) == EXPECTED_HOURLY_PRICES

    def is_expired(self, reference):
        if not self.is_valid():
            return True
        return _as_aware(reference) >= self.prices[-1].end


def parse_schedule(raw):
    """Decode the service's JSON price list. Raises ``ValueError`` when malformed."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"price list is not valid UTF-8: {exc}") from None
    try:
        data = json.loads(raw)
    except RecursionError:
        raise ValueError("price list is nested too deeply") from None
    if not isinstance(data, list):
        raise ValueError(f"price list must be a JSON array, got {type(data).__name__}")
    return Schedule(Price.from_payload(item) for item in data)
