"""
Prayer API. Mounted at /api/prayer/.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from prayer_sync.prayer.errors import PrayerSourceError


class WidgetRecordResponse(BaseModel):
    """Pydantic view of WidgetCacheRecord; serializes from the dataclass attributes."""

    model_config = ConfigDict(from_attributes=True)

    fajr: str
    sunrise: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str
    source: str
    location: str
    hue: float
    is_dark_mode: bool
    bg_transparency: float
    cache_date: str
    cache_timestamp_ms: int


class RefreshResponse(BaseModel):
    source: str
    date: str
    times: Dict[str, str]
    input_settings: Dict[str, Any] = {}
    city_name: Optional[str] = None
    scheduled: int = 0


class PrayerDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hijri_day: str
    gregorian_date: Optional[date] = None
    day_of_week: str
    fajr: str
    sunrise: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str
    solar_month: str
    solar_day: int
    hijri_month: str


class CalendarResponse(BaseModel):
    city_id: str
    hijri_month: str
    hijri_month_latin: str
    solar_months: List[str]
    first_date: Optional[str] = None
    last_date: Optional[str] = None
    expires_at: Optional[str] = None
    days: List[PrayerDayResponse]


class NotificationEntryResponse(BaseModel):
    kind: str
    prayer: str
    fire_at: str
    channel_id: str
    title: str
    notification_id: int
    vibration: bool
    sound: bool


def get_router(prayer_app) -> Optional[APIRouter]:
    """Return router for the prayer endpoints; mounted with prefix /api/prayer."""
    router = APIRouter(tags=["Prayer Times"])

    @router.get("/times", response_model=WidgetRecordResponse)
    def get_times() -> WidgetRecordResponse:
        """Return the persisted widget record."""
        record = prayer_app.widget_bridge.read()
        if record is None:
            raise HTTPException(status_code=404, detail="No prayer times data available")
        return WidgetRecordResponse.model_validate(record)

    @router.post("/refresh", response_model=RefreshResponse)
    def refresh() -> RefreshResponse:
        """Resolve now, reschedule alarms and rewrite the widget record."""
        resolved = prayer_app.refresh()
        return RefreshResponse(
            source=resolved.source_used.value,
            date=resolved.date,
            times=resolved.times,
            input_settings=resolved.input_settings,
            city_name=resolved.city_name,
            scheduled=prayer_app.last_scheduled_count if resolved.ok else 0,
        )

    @router.get("/calendar", response_model=CalendarResponse)
    def get_calendar(force: bool = False) -> CalendarResponse:
        """Return the current Hijri month, fetched when the held one has expired."""
        try:
            calendar = prayer_app.get_calendar(force_fetch=force)
        except PrayerSourceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return CalendarResponse(
            city_id=str(calendar.city_id),
            hijri_month=calendar.hijri_month,
            hijri_month_latin=calendar.hijri_month_latin,
            solar_months=list(calendar.solar_months),
            first_date=calendar.first_date.isoformat() if calendar.first_date else None,
            last_date=calendar.last_date.isoformat() if calendar.last_date else None,
            expires_at=calendar.expires_at.isoformat() if calendar.expires_at else None,
            days=[PrayerDayResponse.model_validate(day) for day in calendar.all_days()],
        )

    @router.get("/notifications", response_model=List[NotificationEntryResponse])
    def get_notifications() -> List[NotificationEntryResponse]:
        """Entries armed by the latest scheduling cycle."""
        return [
            NotificationEntryResponse(
                kind=entry.kind,
                prayer=entry.prayer,
                fire_at=entry.fire_at.isoformat(),
                channel_id=entry.channel_id,
                title=entry.title,
                notification_id=entry.notification_id,
                vibration=entry.vibration,
                sound=entry.sound,
            )
            for entry in prayer_app.scheduler.last_entries
        ]

    return router
