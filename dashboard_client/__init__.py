"""Python client for the weather dashboard service."""
from .api import ApiError, WeatherApiClient
from .favorites import (
    FAVORITES_KEY,
    FavoriteEntry,
    LocalFavorite,
    LocalFavorites,
    RemoteFavorites,
    dump_local_favorites,
    load_local_favorites,
)
from .geolocation import GeolocationError, Position
from .session import FALLBACK_LOCATION, DashboardSession, SelectedLocation, SessionState
from .storage import LocalStorage

__all__ = [
    "ApiError",
    "DashboardSession",
    "FALLBACK_LOCATION",
    "FAVORITES_KEY",
    "FavoriteEntry",
    "GeolocationError",
    "LocalFavorite",
    "LocalFavorites",
    "LocalStorage",
    "Position",
    "RemoteFavorites",
    "SelectedLocation",
    "SessionState",
    "WeatherApiClient",
    "dump_local_favorites",
    "load_local_favorites",
]
