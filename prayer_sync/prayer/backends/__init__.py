from .base import PrayerBackend
from .aladhan import AladhanBackend
from .ministry import MinistryBackend
from .offline import AdhanpyCalculator, OfflineBackend, OfflineCalculator

__all__ = [
    "PrayerBackend",
    "AladhanBackend",
    "MinistryBackend",
    "OfflineBackend",
    "OfflineCalculator",
    "AdhanpyCalculator",
]

_BACKENDS = {
    "ministry": MinistryBackend,
    "aladhan": AladhanBackend,
    "offline": OfflineBackend,
}


def get_backend(backend_type: str, config: dict, **kwargs):
    """Factory: return backend instance for given type, or None if unknown."""
    cls = _BACKENDS.get((backend_type or "").lower())
    if not cls:
        return None
    return cls(config, **kwargs)
