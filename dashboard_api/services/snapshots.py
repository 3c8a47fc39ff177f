import logging
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from ..models import ForecastDay, Location, WeatherSnapshot

logger = logging.getLogger("weather")

MAX_FORECAST_DAYS = 7

SNAPSHOT_FIELDS = (
    "temperature",
    "feels_like",
    "humidity",
    "pressure",
    "wind_speed",
    "wind_direction",
    "visibility",
    "cloudiness",
    "main_weather",
    "description",
    "icon",
)

FORECAST_FIELDS = (
    "date",
    "temp_high",
    "temp_low",
    "description",
    "icon",
    "humidity",
    "wind_speed",
    "precipitation",
    "precipitation_chance",
)


def record_snapshot(location: Location, reading: dict) -> WeatherSnapshot:
    """
    Store a reading as the location's only snapshot, dropping the previous one.
    """
    values = {field: reading.get(field) for field in SNAPSHOT_FIELDS if field in reading}
    values.setdefault("timestamp", reading.get("timestamp") or timezone.now())

    with transaction.atomic():
        WeatherSnapshot.objects.filter(location=location).delete()
        snapshot = WeatherSnapshot.objects.create(location=location, **values)

    logger.info(
        "Weather snapshot recorded",
        extra={
            'event': 'snapshot_recorded',
            'location_id': location.id,
            'lat': location.latitude,
            'lon': location.longitude,
        }
    )
    return snapshot


def latest_snapshot(location: Location) -> Optional[WeatherSnapshot]:
    return WeatherSnapshot.objects.filter(location=location).first()


def replace_forecast(location: Location, days: Iterable[dict]) -> List[ForecastDay]:
    """
    Swap the location's forecast for `days` (first seven, in the given order).
    Delete and insert share one transaction so readers see either set, never both.
    """
    rows = [
        ForecastDay(
            location=location,
            **{field: day[field] for field in FORECAST_FIELDS if field in day}
        )
        for day in list(days)[:MAX_FORECAST_DAYS]
    ]

    with transaction.atomic():
        removed, _ = ForecastDay.objects.filter(location=location).delete()
        ForecastDay.objects.bulk_create(rows)

    logger.info(
        "Forecast replaced",
        extra={
            'event': 'forecast_replaced',
            'location_id': location.id,
            'lat': location.latitude,
            'lon': location.longitude,
        }
    )
    logger.debug(f"forecast_replaced location_id={location.id} removed={removed} stored={len(rows)}")

    return forecast_for(location)


def forecast_for(location: Location) -> List[ForecastDay]:
    return list(ForecastDay.objects.filter(location=location).order_by("date"))
