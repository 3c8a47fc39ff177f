"""Client-side orchestration of the dashboard.

The session resolves a location (device position or the fallback city),
fetches current weather and forecast for it side by side, and keeps the
favorites backend in line with the sign-in state.
"""
from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Optional

from .api import ApiError, WeatherApiClient
from .favorites import FavoriteEntry, FavoritesBackend, select_favorites_backend
from .geolocation import DEFAULT_TIMEOUT, GeolocationError, Locator, locate_device
from .storage import LocalStorage

logger = logging.getLogger("weather.client")


class SessionState(enum.Enum):
    IDLE = "idle"
    LOCATING_DEVICE = "locating_device"
    LOCATION_RESOLVED = "location_resolved"
    FETCHING_WEATHER = "fetching_weather"
    READY = "ready"


@dataclass(frozen=True)
class SelectedLocation:
    lat: float
    lon: float
    name: Optional[str] = None


FALLBACK_LOCATION = SelectedLocation(lat=37.7749, lon=-122.4194, name="San Francisco, CA")
FALLBACK_NOTICE = "Unable to access your location. Showing default location."

CURRENT = "current"
FORECAST = "forecast"


class WeatherFetch:
    """The current + forecast request pair issued for one selection."""

    def __init__(self, location: SelectedLocation) -> None:
        self.location = location
        self.pending = {CURRENT, FORECAST}
        self.done = threading.Event()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.done.wait(timeout)


class DashboardSession:
    def __init__(
        self,
        api: WeatherApiClient,
        storage: Optional[LocalStorage] = None,
        locator: Optional[Locator] = None,
        geolocation_timeout: float = DEFAULT_TIMEOUT,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.api = api
        self.storage = storage or LocalStorage()
        self.locator = locator
        self.geolocation_timeout = geolocation_timeout

        self.state = SessionState.IDLE
        self.selected_location: Optional[SelectedLocation] = None
        self.location: Optional[Dict[str, Any]] = None
        self.current_weather: Optional[Dict[str, Any]] = None
        self.forecast: Optional[List[Dict[str, Any]]] = None
        self.errors: Dict[str, str] = {}
        self.notices: List[str] = []
        self.user: Optional[Dict[str, Any]] = None

        self._lock = threading.RLock()
        self._fetch: Optional[WeatherFetch] = None
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="dashboard-fetch")

    # Location -----------------------------------------------------------
    def start(self) -> WeatherFetch:
        """Locate the device (or fall back) and load its weather."""
        return self.select_location(self.resolve_device_location())

    def use_my_location(self) -> WeatherFetch:
        return self.start()

    def resolve_device_location(self) -> SelectedLocation:
        with self._lock:
            self.state = SessionState.LOCATING_DEVICE

        try:
            position = locate_device(self.locator, timeout=self.geolocation_timeout)
            location = SelectedLocation(position.latitude, position.longitude, "Current Location")
        except GeolocationError as exc:
            logger.info(
                "Geolocation unavailable, using fallback location",
                extra=self._log_extra('geolocation_fallback', FALLBACK_LOCATION, error=exc.reason),
            )
            location = FALLBACK_LOCATION
            with self._lock:
                self.notices.append(FALLBACK_NOTICE)

        with self._lock:
            self.selected_location = location
            self.state = SessionState.LOCATION_RESOLVED
        return location

    def select_location(self, location: SelectedLocation) -> WeatherFetch:
        """Fetch weather for `location`; results still in flight for an earlier pick are dropped."""
        fetch = WeatherFetch(location)
        with self._lock:
            self._fetch = fetch
            self.selected_location = location
            # nothing from the previous selection may outlive it
            self.location = None
            self.current_weather = None
            self.forecast = None
            self.errors = {}
            self.state = SessionState.FETCHING_WEATHER

        calls = (
            (CURRENT, self.api.get_current_weather),
            (FORECAST, self.api.get_forecast),
        )
        for kind, call in calls:
            future = self._executor.submit(call, location.lat, location.lon)
            future.add_done_callback(partial(self._on_fetched, fetch, kind))
        return fetch

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the latest selection is READY; False on timeout."""
        with self._lock:
            fetch = self._fetch
        if fetch is None:
            return True
        return fetch.wait(timeout)

    def _on_fetched(self, fetch: WeatherFetch, kind: str, future: Future) -> None:
        result = error = None
        try:
            result = future.result()
        except ApiError as exc:
            error = exc.message
        except Exception as exc:
            logger.exception(
                f"Unexpected error fetching {kind} weather",
                extra=self._log_extra('weather_fetch_error', fetch.location, error=str(exc)),
            )
            error = str(exc) or f"Failed to fetch {kind} weather"

        finished = False
        try:
            with self._lock:
                fetch.pending.discard(kind)
                finished = not fetch.pending

                if fetch is not self._fetch:
                    logger.debug(
                        f"Discarding stale {kind} response",
                        extra=self._log_extra('stale_response_discarded', fetch.location),
                    )
                else:
                    try:
                        self._apply(kind, fetch.location, result, error)
                    finally:
                        if finished:
                            self.state = SessionState.READY
        finally:
            if finished:
                fetch.done.set()

    def _apply(
        self,
        kind: str,
        location: SelectedLocation,
        result: Optional[Dict[str, Any]],
        error: Optional[str],
    ) -> None:
        if error is None:
            try:
                if kind == CURRENT:
                    payload = (result["location"], result["weather"])
                else:
                    payload = result["forecasts"]
            except (KeyError, TypeError) as exc:
                error = f"Malformed {kind} weather response"
                logger.error(
                    error,
                    extra=self._log_extra('malformed_response', location, error=repr(exc)),
                )

        if error is not None:
            logger.warning(
                f"Failed to fetch {kind} weather",
                extra=self._log_extra('weather_fetch_failed', location, error=error),
            )
            self.errors[kind] = error
        elif kind == CURRENT:
            self.location, self.current_weather = payload
        else:
            self.forecast = payload

    @staticmethod
    def _log_extra(event: str, location: Optional[SelectedLocation] = None, **extra) -> dict:
        values = {'event': event, **extra}
        if location is not None:
            values['lat'] = location.lat
            values['lon'] = location.lon
        return values

    # Auth ---------------------------------------------------------------
    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def restore_session(self) -> Optional[Dict[str, Any]]:
        self.user = self.api.me()
        return self.user

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        self.user = self.api.login(email, password)
        return self.user

    def sign_up(self, username: str, email: str, password: str) -> Dict[str, Any]:
        self.user = self.api.register(username, email, password)
        return self.user

    def sign_out(self) -> None:
        try:
            self.api.logout()
        finally:
            self.user = None

    # Favorites ----------------------------------------------------------
    @property
    def favorites_backend(self) -> FavoritesBackend:
        return select_favorites_backend(self.is_authenticated, self.api, self.storage)

    def list_favorites(self) -> List[FavoriteEntry]:
        return self.favorites_backend.list()

    def add_favorite(self, lat: float, lon: float, name: str, country: str = "") -> FavoriteEntry:
        return self.favorites_backend.add(lat, lon, name, country)

    def remove_favorite(self, handle: int) -> bool:
        return self.favorites_backend.remove(handle)

    def select_favorite(self, favorite: FavoriteEntry) -> WeatherFetch:
        return self.select_location(SelectedLocation(favorite.lat, favorite.lon, favorite.name))

    def close(self) -> None:
        self._executor.shutdown(wait=False)


__all__ = [
    "FALLBACK_LOCATION",
    "FALLBACK_NOTICE",
    "DashboardSession",
    "SelectedLocation",
    "SessionState",
    "WeatherFetch",
]
