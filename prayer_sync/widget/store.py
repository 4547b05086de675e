"""
Key/value store over the shared SQLite table. Errors are logged, never raised.
"""
import logging
from typing import Optional

from prayer_sync.core.models import get_value, put_value


class KeyValueStore:
    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, key: str) -> Optional[str]:
        try:
            return get_value(key)
        except Exception as e:
            self.logger.error(f"Failed to read {key}: {e}")
            return None

    def put(self, key: str, value: str) -> bool:
        try:
            put_value(key, value)
            return True
        except Exception as e:
            self.logger.error(f"Failed to write {key}: {e}")
            return False
