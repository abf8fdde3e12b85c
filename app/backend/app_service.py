import logging
import os
import threading
from dataclasses import dataclass

from api import get_local_tz, to_rfc3339
from cache import ScheduleCache, local_clock
from pricing import AREA_CODES, Price, normalize_area_code, parse_max_price
from services.price_fetcher import PriceFetcher
from services.schedule_store import FileScheduleStore


APP_VERSION = os.getenv("TPIR_VERSION", "0.3.0")
logger = logging.getLogger("tpir")


@dataclass(frozen=True)
class PriceCheck:
    area_code: str
    price: Price
    max_price: float

    @property
    def is_right(self):
        return self.price.sek_per_kwh <= self.max_price


def price_to_dict(price):
    return {
        "sek_per_kwh": price.sek_per_kwh,
        "eur_per_kwh": price.eur_per_kwh,
        "exchange_rate": price.exchange_rate,
        "start": to_rfc3339(price.start),
        "end": to_rfc3339(price.end),
    }


class PriceService:
    """Keeps one ``ScheduleCache`` per area for the life of the process."""

    def __init__(self, store, fetcher, tzinfo=None, logger=logger, clock=None):
        self.store = store
        self.fetcher = fetcher
        self.tzinfo = tzinfo
        self.logger = logger
        self.clock = clock or local_clock(tzinfo)
        self._caches = {}
        self._caches_guard = threading.Lock()

    @classmethod
    def from_container(cls, container, logger=logger):
        settings = container.settings
        store = FileScheduleStore(container.cache_dir, logger=logger)
        fetcher = PriceFetcher(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            logger=logger,
        )
        tzinfo = get_local_tz(settings.timezone) if settings.timezone else None
        return cls(store, fetcher, tzinfo=tzinfo, logger=logger)

    def now(self):
        return self.clock()

    def cache_for(self, area_code):
        area_code = normalize_area_code(area_code)
        with self._caches_guard:
            cache = self._caches.get(area_code)
            if cache is None:
                cache = ScheduleCache(area_code, self.store, self.fetcher, logger=self.logger, clock=self.clock)
                self._caches[area_code] = cache
            return cache

    def schedule(self, area_code):
        return self.cache_for(area_code).get_schedule()

    def current_price(self, area_code, at=None):
        cache = self.cache_for(area_code)
        price = cache.price_today(at)
        self.logger.debug(
            "Current price for electricity in area code %s is %s SEK/kWh",
            cache.area_code,
            price.sek_per_kwh,
        )
        return price

    def check_price(self, area_code, max_price, at=None):
        max_price = parse_max_price(max_price)
        cache = self.cache_for(area_code)
        self.logger.debug(
            "Will evaluate if the electricity price for area code %s is lower than %s SEK/kWh",
            cache.area_code,
            max_price,
        )
        check = PriceCheck(cache.area_code, self.current_price(cache.area_code, at), max_price)
        if check.is_right:
            self.logger.debug(
                "The Price Is Right! Current electricity price at %s SEK/kWh is lower than the given maximum price at %s SEK/kWh",
                check.price.sek_per_kwh,
                max_price,
            )
        else:
            self.logger.debug(
                "The Price Is NOT Right! Current electricity price at %s SEK/kWh is higher than the given maximum price at %s SEK/kWh",
                check.price.sek_per_kwh,
                max_price,
            )
        return check

    def refresh(self, area_code):
        cache = self.cache_for(area_code)
        schedule = cache.refresh()
        self.logger.info("Refreshed price list for %s (%s prices)", cache.area_code, len(schedule))
        return schedule

    def last_write_error(self, area_code):
        return self.cache_for(area_code).last_write_error

    def cache_status(self):
        status = self.store.status() if hasattr(self.store, "status") else {}
        with self._caches_guard:
            caches = dict(self._caches)
        now = self.now()
        status["areas"] = {
            code: {
                "loaded": cache.is_loaded,
                "expired": cache.is_expired(now),
            }
            for code, cache in sorted(caches.items())
        }
        return status

    def log_cache_status(self):
        status = self.cache_status()
        self.logger.info(
            "Prices cache status: dir=%s count=%s latest=%s size_bytes=%s",
            status.get("dir"),
            status.get("count"),
            status.get("latest"),
            status.get("size_bytes"),
        )


def area_codes():
    return list(AREA_CODES)
