from .bridge import WidgetSyncBridge
from .record import DisplaySettings, WidgetCacheRecord

__all__ = ["WidgetSyncBridge", "DisplaySettings", "WidgetCacheRecord"]
