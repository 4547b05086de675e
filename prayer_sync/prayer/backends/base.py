import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional

import requests

from prayer_sync.core.cache_helper import CacheHelper
from prayer_sync.prayer.errors import NetworkFailure

DEFAULT_TIMEOUT = 10
USER_AGENT = "prayer-sync/1.0"


class PrayerBackend(ABC):
    """Base class for prayer time sources.

    fetch_times() returns the six-key time map or raises a PrayerSourceError.
    """

    name = "base"

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self.timeout = float(config.get('request_timeout', DEFAULT_TIMEOUT))
        self.cache_helper = CacheHelper(config.get('cache_dir'), "prayer_times")
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        # certificate validation stays on for every request
        self.session.verify = True

    @abstractmethod
    def fetch_times(self, settings: Any, day: date) -> Dict[str, str]:
        """Return {fajr..isha: "HH:MM"} for day, or raise PrayerSourceError."""
        pass

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """GET with the per-call timeout; any transport problem or non-2xx becomes NetworkFailure."""
        try:
            self.logger.info(f"Requesting {url} with params {params}")
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            raise NetworkFailure(f"{self.name}: {e}") from e

    def _fetch_page_content(self, url: str, force_fetch: bool = False, today: Optional[date] = None) -> str:
        """Fetch page text, preferring a fresh cached copy unless force_fetch."""
        if not force_fetch:
            cached_content = self.cache_helper.get_cached_content(url, today=today)
            if cached_content:
                self.logger.debug(f"Using cached content for {url}")
                return cached_content

        self.logger.info(f"Fetching fresh content from {url}")
        response = self._get(url)
        response.encoding = response.encoding or 'utf-8'
        return response.text
