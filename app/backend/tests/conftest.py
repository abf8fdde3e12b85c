import json
import logging
import pathlib
import sys
from datetime import datetime, timedelta, timezone

import pytest


BACKEND_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from errors import CacheNotFoundError, CacheWriteError  # noqa: E402
from services.base import ScheduleFetcher, ScheduleStore  # noqa: E402
from services.schedule_store import FileScheduleStore  # noqa: E402


DATA_DIR = pathlib.Path(__file__).resolve().parent / "data"
CET = timezone(timedelta(hours=1))


def build_payload(day, sek_prices):
    start = datetime(day.year, day.month, day.day, tzinfo=CET)
    entries = []
    for hour, sek in enumerate(sek_prices):
        entries.append(
            {
                "SEK_per_kWh": sek,
                "EUR_per_kWh": round(sek / 11.2, 5),
                "EXR": 11.2,
                "time_start": (start + timedelta(hours=hour)).isoformat(),
                "time_end": (start + timedelta(hours=hour + 1)).isoformat(),
            }
        )
    return json.dumps(entries).encode("utf-8")


class MemoryStore(ScheduleStore):
    def __init__(self, data=None, fail_write=False):
        self.data = dict(data or {})
        self.fail_write = fail_write
        self.reads = []
        self.writes = []

    def read(self, area_code):
        self.reads.append(area_code)
        if area_code not in self.data:
            raise CacheNotFoundError(f"nothing stored for {area_code}")
        return self.data[area_code]

    def write(self, area_code, raw):
        self.writes.append((area_code, raw))
        if self.fail_write:
            raise CacheWriteError(f"disk full while saving {area_code}")
        self.data[area_code] = raw


class StubFetcher(ScheduleFetcher):
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def build_url(self, area_code, day):
        return f"https://prices.test/api/v1/prices/{day.year}/{day.month:02d}-{day.day:02d}_{area_code}.json"

    def fetch(self, area_code, day):
        self.calls.append((area_code, day))
        if self.error is not None:
            raise self.error
        return self.payload


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def sample_payload():
    return (DATA_DIR / "prices-2024-01-05-SE3.json").read_bytes()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 5, 10, 30, tzinfo=CET))


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def file_store(tmp_path):
    return FileScheduleStore(tmp_path / "cache", logger=logging.getLogger("test.store"))


@pytest.fixture
def fetcher(sample_payload):
    return StubFetcher(payload=sample_payload)
