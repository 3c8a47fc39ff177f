"""HTTP client for the weather dashboard API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger("weather.client")

UNSAFE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class ApiError(Exception):
    """Non-2xx answer or transport failure talking to the dashboard API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WeatherApiClient:
    """Thin wrapper over a `requests.Session`, which also carries the login cookie."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()
        self.timeout = timeout

    # Auth ---------------------------------------------------------------
    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        payload = {"username": username, "email": email, "password": password}
        return self._request("POST", "/api/auth/register", json=payload)["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        payload = {"email": email, "password": password}
        return self._request("POST", "/api/auth/login", json=payload)["user"]

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")

    def me(self) -> Optional[Dict[str, Any]]:
        try:
            return self._request("GET", "/api/auth/me")["user"]
        except ApiError as exc:
            if exc.status_code == 401:
                return None
            raise

    # Weather ------------------------------------------------------------
    def search_locations(self, query: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/locations/search", params={"q": query})

    def get_current_weather(self, lat: float, lon: float) -> Dict[str, Any]:
        return self._request("GET", "/api/weather/current", params={"lat": lat, "lon": lon})

    def get_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        return self._request("GET", "/api/weather/forecast", params={"lat": lat, "lon": lon})

    # Favorites ----------------------------------------------------------
    def list_favorites(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/locations/favorites")

    def add_favorite(self, lat: float, lon: float, name: str, country: str) -> Dict[str, Any]:
        payload = {"lat": lat, "lon": lon, "name": name, "country": country}
        return self._request("POST", "/api/locations/favorites", json=payload)

    def remove_favorite(self, location_id: int) -> None:
        self._request("DELETE", f"/api/locations/favorites/{location_id}")

    # Helpers ------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        csrf_token = self.http.cookies.get("csrftoken")
        if method in UNSAFE_METHODS and csrf_token:
            headers["X-CSRFToken"] = csrf_token

        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error(
                f"Request to {path} failed",
                extra={'event': 'api_request_failed', 'error': str(exc)},
            )
            raise ApiError(f"Network error: {exc}") from exc

        if not response.ok:
            raise ApiError(self._error_message(response), status_code=response.status_code)
        return response.json()

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                if body.get(key):
                    return str(body[key])
        return f"Request failed with status {response.status_code}"


__all__ = ["ApiError", "WeatherApiClient"]
