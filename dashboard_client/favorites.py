"""Favorite locations for signed-in and anonymous users.

Signed-in users keep favorites on the server, addressed by location id.
Anonymous users keep them in local storage, addressed by list position;
the two backends share an interface but not an identity scheme.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from .api import ApiError, WeatherApiClient
from .storage import LocalStorage

logger = logging.getLogger("weather.client")

FAVORITES_KEY = "weatherFavorites"


@dataclass(frozen=True)
class LocalFavorite:
    lat: float
    lon: float
    name: str
    country: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalFavorite":
        return cls(
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            name=str(data.get("name", "")),
            country=str(data.get("country", "")),
        )


def dump_local_favorites(favorites: Iterable[LocalFavorite]) -> str:
    return json.dumps([favorite.to_dict() for favorite in favorites])


def load_local_favorites(raw: Optional[str]) -> List[LocalFavorite]:
    if not raw:
        return []
    try:
        items = json.loads(raw)
        return [LocalFavorite.from_dict(item) for item in items]
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning(
            "Ignoring unreadable local favorites",
            extra={'event': 'local_favorites_unreadable', 'error': str(exc)},
        )
        return []


@dataclass(frozen=True)
class FavoriteEntry:
    """A favorite as shown in the list.

    `handle` is what `remove` expects: the server location id for remote
    favorites, the list index for local ones.
    """

    handle: int
    lat: float
    lon: float
    name: str
    country: str = ""
    weather: Optional[Dict[str, Any]] = None


class FavoritesBackend(ABC):
    is_remote = False

    @abstractmethod
    def list(self) -> List[FavoriteEntry]:
        ...

    @abstractmethod
    def add(self, lat: float, lon: float, name: str, country: str = "") -> FavoriteEntry:
        ...

    @abstractmethod
    def remove(self, handle: int) -> bool:
        ...


class RemoteFavorites(FavoritesBackend):
    is_remote = True

    def __init__(self, api: WeatherApiClient) -> None:
        self.api = api

    def list(self) -> List[FavoriteEntry]:
        return [
            self._entry(item["location"], item.get("weather"))
            for item in self.api.list_favorites()
        ]

    def add(self, lat: float, lon: float, name: str, country: str = "") -> FavoriteEntry:
        return self._entry(self.api.add_favorite(lat, lon, name, country))

    def remove(self, handle: int) -> bool:
        try:
            self.api.remove_favorite(handle)
        except ApiError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    @staticmethod
    def _entry(location: Dict[str, Any], weather: Optional[Dict[str, Any]] = None) -> FavoriteEntry:
        return FavoriteEntry(
            handle=location["id"],
            lat=location["lat"],
            lon=location["lon"],
            name=location["name"],
            country=location.get("country", ""),
            weather=weather,
        )


class LocalFavorites(FavoritesBackend):
    def __init__(self, storage: LocalStorage, key: str = FAVORITES_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> List[LocalFavorite]:
        return load_local_favorites(self.storage.get_item(self.key))

    def save(self, favorites: Iterable[LocalFavorite]) -> None:
        self.storage.set_item(self.key, dump_local_favorites(favorites))

    def list(self) -> List[FavoriteEntry]:
        return [
            FavoriteEntry(handle=index, lat=fav.lat, lon=fav.lon, name=fav.name, country=fav.country)
            for index, fav in enumerate(self.load())
        ]

    def add(self, lat: float, lon: float, name: str, country: str = "") -> FavoriteEntry:
        favorites = self.load()
        favorite = LocalFavorite(lat=lat, lon=lon, name=name, country=country)
        favorites.append(favorite)
        self.save(favorites)
        return FavoriteEntry(handle=len(favorites) - 1, lat=lat, lon=lon, name=name, country=country)

    def remove(self, handle: int) -> bool:
        favorites = self.load()
        if not 0 <= handle < len(favorites):
            return False
        del favorites[handle]
        self.save(favorites)
        return True


def select_favorites_backend(
    authenticated: bool, api: WeatherApiClient, storage: LocalStorage
) -> FavoritesBackend:
    if authenticated:
        return RemoteFavorites(api)
    return LocalFavorites(storage)


__all__ = [
    "FAVORITES_KEY",
    "FavoriteEntry",
    "FavoritesBackend",
    "LocalFavorite",
    "LocalFavorites",
    "RemoteFavorites",
    "dump_local_favorites",
    "load_local_favorites",
    "select_favorites_backend",
]
