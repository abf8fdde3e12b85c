import logging

import requests

from errors import FetchStatusError, FetchTransportError
from services.base import ScheduleFetcher


DEFAULT_API_BASE_URL = "https://www.elprisetjustnu.se"
DEFAULT_REQUEST_TIMEOUT = 10


class PriceFetcher(ScheduleFetcher):
    def __init__(self, base_url=DEFAULT_API_BASE_URL, timeout=DEFAULT_REQUEST_TIMEOUT, session=None, logger=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger("tpir")

    def build_url(self, area_code, day):
        return f"{self.base_url}/api/v1/prices/{day.year}/{day.month:02d}-{day.day:02d}_{area_code}.json"

    def fetch(self, area_code, day):
        url = self.build_url(area_code, day)
        self.logger.debug("Fetching new price list from %s", url)
        try:
            response = self.session.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchTransportError(f"could not fetch daily prices from {url}: {exc}", url) from exc
        if response.status_code != requests.codes.ok:
            raise FetchStatusError(
                f"calling {url} responded with status code {response.status_code}, expected status {requests.codes.ok}",
                url,
                response.status_code,
            )
        self.logger.debug("Downloaded price list from %s (%s bytes)", url, len(response.content))
        return response.content
