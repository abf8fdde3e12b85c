import logging
import threading
from datetime import datetime

from errors import CacheNotFoundError, CacheParseError, CacheWriteError, FetchParseError
from pricing import normalize_area_code, parse_schedule


def local_clock(tzinfo=None):
    def now():
        return datetime.now(tzinfo).astimezone(tzinfo)

    return now


class ScheduleCache:
    """Today's price schedule for one area, backed by a store and a fetcher.

    The stored schedule is trusted while it is valid and not expired. Anything
    else triggers exactly one fetch, whose raw body is persisted verbatim.
    A failed fetch is fatal; there is no fallback to stale data. A stored
    schedule that cannot be parsed is reported as ``CacheParseError`` rather
    than silently replaced.

    Loading and refreshing are serialized per instance. Readers of
    ``current`` always see a complete schedule, either the old or the new one.
    """

    def __init__(self, area_code, store, fetcher, logger=None, clock=None):
        self.area_code = normalize_area_code(area_code)
        self.store = store
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger("tpir")
        self.clock = clock or local_clock()
        self.last_write_error = None
        self._current = None
        self._lock = threading.Lock()

    @classmethod
    def open(cls, area_code, store, fetcher, logger=None, clock=None):
        cache = cls(area_code, store, fetcher, logger=logger, clock=clock)
        cache.load()
        return cache

    @property
    def current(self):
        return self._current

    @property
    def is_loaded(self):
        return self._current is not None

    def is_expired(self, now=None):
        current = self._current
        return current is None or current.is_expired(now or self.clock())

    def load(self):
        with self._lock:
            return self._load_locked()

    def refresh(self):
        with self._lock:
            return self._refresh_locked(self.clock())

    def get_schedule(self, now=None):
        now = now or self.clock()
        current = self._current
        if current is not None and not current.is_expired(now):
            return current
        with self._lock:
            # Another thread may have refreshed while we waited.
            if self._current is None:
                return self._load_locked(now)
            if self._current.is_expired(now):
                self.logger.debug("Price list for %s has expired, will download a new one", self.area_code)
                return self._refresh_locked(now)
            return self._current

    def price_today(self, timestamp=None):
        now = self.clock()
        schedule = self.get_schedule(now)
        return schedule.price_at(timestamp or now)

    def _load_locked(self, now=None):
        now = now or self.clock()
        cached = self._read_cached()
        if cached is None:
            return self._refresh_locked(now)
        if not cached.is_valid():
            self.logger.debug(
                "Cache for %s found but it was invalid (%s prices), will download a new one",
                self.area_code,
                len(cached),
            )
            return self._refresh_locked(now)
        if cached.is_expired(now):
            self.logger.debug("Cache for %s found but has expired, will download a new one", self.area_code)
            return self._refresh_locked(now)
        self.logger.debug("Found valid, and current, price list cache for %s", self.area_code)
        self._current = cached
        return cached

    def _read_cached(self):
        try:
            raw = self.store.read(self.area_code)
        except CacheNotFoundError:
            return None
        self.logger.debug("Reading cached price list for %s", self.area_code)
        try:
            return parse_schedule(raw)
        except ValueError as exc:
            raise CacheParseError(
                f"error while parsing price list cache for {self.area_code}: {exc}",
                detail={"area_code": self.area_code},
            ) from exc

    def _refresh_locked(self, now):
        day = now.date()
        raw = self.fetcher.fetch(self.area_code, day)
        try:
            schedule = parse_schedule(raw)
        except ValueError as exc:
            url = self.fetcher.build_url(self.area_code, day)
            raise FetchParseError(
                f"error while parsing price list for {self.area_code} on {day.isoformat()}: {exc}",
                url,
            ) from exc
        self.logger.debug("New price list for %s read without errors (%s prices)", self.area_code, len(schedule))
        try:
            self.store.write(self.area_code, raw)
            self.last_write_error = None
        except CacheWriteError as exc:
            self.logger.warning("Could not save price list cache for %s: %s", self.area_code, exc)
            self.last_write_error = exc
        self._current = schedule
        return schedule
