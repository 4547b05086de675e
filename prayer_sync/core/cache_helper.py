import os
import json
from datetime import date, datetime
import logging
from typing import Optional
import hashlib

logger = logging.getLogger(__name__)


class CacheHelper:
    DEFAULT_CACHE_DIR = ".cache"

    def __init__(self, cache_dir: Optional[str] = None, component_name: str = ""):
        """Initialize cache helper with specific cache directory
        Args:
            cache_dir: Base cache directory from config, if None uses DEFAULT_CACHE_DIR
            component_name: Component specific subdirectory
        """
        base_dir = os.path.expanduser(cache_dir or self.DEFAULT_CACHE_DIR)
        self.cache_dir = os.path.join(base_dir, component_name) if component_name else base_dir
        os.makedirs(self.cache_dir, exist_ok=True)

    def _get_cache_file(self, url: str) -> str:
        """Generate cache filename from URL"""
        url_hash = hashlib.md5(url.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{url_hash}.json")

    def get_cached_content(self, url: str, today: Optional[date] = None) -> Optional[str]:
        """Get cached content if it is still fresh.

        Without an 'expires' date an entry is fresh only on the day it was written.
        With one, it is fresh until that (exclusive) date.
        """
        today = today or datetime.now().date()
        try:
            cache_file = self._get_cache_file(url)
            if not os.path.exists(cache_file):
                return None

            with open(cache_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)

            expires = cached.get('expires')
            if expires:
                if today < datetime.strptime(expires, '%Y-%m-%d').date():
                    return cached['content']
                return None

            cache_date = datetime.strptime(cached['date'], '%Y-%m-%d').date()
            if cache_date == today:
                return cached['content']

            return None

        except Exception as e:
            logger.error(f"Error reading cache: {e}")
            return None

    def save_to_cache(self, url: str, content: str, expires: Optional[date] = None) -> None:
        """Save content to cache with today's date and an optional expiry date"""
        try:
            cache_data = {
                'date': datetime.now().strftime('%Y-%m-%d'),
                'content': content
            }
            if expires is not None:
                cache_data['expires'] = expires.strftime('%Y-%m-%d')

            cache_file = self._get_cache_file(url)
            with open(cache_file, 'w', encoding='utf-8') as f:
                json.dump(cache_data, f, ensure_ascii=False)

        except Exception as e:
            logger.error(f"Error saving to cache: {e}")

    def clear(self, url: str) -> None:
        try:
            cache_file = self._get_cache_file(url)
            if os.path.exists(cache_file):
                os.remove(cache_file)
        except Exception as e:
            logger.error(f"Error clearing cache: {e}")
