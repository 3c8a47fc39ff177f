from django.db import transaction
import logging

from ..models import Location, WeatherSnapshot
from .forecast_aggregation import aggregate_daily
from .location_matcher import resolve_or_create
from .rate_limiter import check_rate_limit
from .snapshots import record_snapshot, replace_forecast
from .weather_provider import UpstreamError, get_weather_provider

logger = logging.getLogger("weather")


def _log_extra(event: str, lat: float, lon: float, ip_address: str = None, **extra) -> dict:
    return {
        'ip': ip_address or 'unknown',
        'event': event,
        'lat': lat,
        'lon': lon,
        **extra,
    }


def _fetch(kind: str, fetch, lat: float, lon: float, ip_address: str = None) -> dict:
    logger.info(
        f"Fetching {kind} weather from provider",
        extra=_log_extra('weather_fetch', lat, lon, ip_address),
    )
    try:
        return fetch(lat, lon)
    except UpstreamError as e:
        logger.error(
            f"Error fetching {kind} weather from provider",
            extra=_log_extra('api_error', lat, lon, ip_address, error=str(e)),
        )
        raise
    except Exception as e:
        logger.error(
            f"Unexpected provider failure for {kind} weather",
            extra=_log_extra('api_error', lat, lon, ip_address, error=str(e)),
        )
        raise UpstreamError(str(e)) from e


def get_current_weather(lat: float, lon: float, ip_address: str = None) -> tuple[Location, WeatherSnapshot]:
    """
    Current conditions for the coordinates:
    1. Per-IP rate limit
    2. Provider fetch (nothing is stored if this fails)
    3. Resolve the shared location and overwrite its snapshot
    """
    check_rate_limit(ip_address)

    provider = get_weather_provider()
    raw_data = _fetch("current", provider.fetch_current, lat, lon, ip_address)

    location_data = provider.normalize_location_data(raw_data)
    reading = provider.normalize_weather_data(raw_data)

    with transaction.atomic():
        # Stored coordinates are the query's, not the provider's station
        location, created = resolve_or_create(
            lat,
            lon,
            name=location_data.get("name") or "Unknown",
            country_code=location_data.get("country_code") or "",
        )
        snapshot = record_snapshot(location, reading)

    logger.info(
        "Current weather stored",
        extra=_log_extra('weather_stored', lat, lon, ip_address, location_id=location.id),
    )
    return location, snapshot


def get_forecast(lat: float, lon: float, ip_address: str = None) -> tuple[Location, list]:
    """
    Daily forecast for the coordinates. Provider samples are grouped into
    calendar days and replace whatever forecast the location had.
    """
    check_rate_limit(ip_address)

    provider = get_weather_provider()
    raw_data = _fetch("forecast", provider.fetch_forecast, lat, lon, ip_address)

    location_data = provider.normalize_forecast_location(raw_data)
    days = aggregate_daily(raw_data.get("list", []))

    with transaction.atomic():
        location, created = resolve_or_create(
            lat,
            lon,
            name=location_data.get("name") or "Unknown",
            country_code=location_data.get("country_code") or "",
        )
        forecasts = replace_forecast(location, days)

    logger.info(
        "Forecast stored",
        extra=_log_extra('forecast_stored', lat, lon, ip_address, location_id=location.id),
    )
    return location, forecasts


def search_locations(query: str, ip_address: str = None) -> list:
    check_rate_limit(ip_address)

    provider = get_weather_provider()
    try:
        return provider.search_cities(query)
    except UpstreamError as e:
        logger.error(
            "Location search failed",
            extra={'ip': ip_address or 'unknown', 'event': 'search_error', 'error': str(e)},
        )
        raise
