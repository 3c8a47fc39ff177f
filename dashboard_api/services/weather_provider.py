import math
import random
import time

import requests
from django.conf import settings


class UpstreamError(Exception):
    """The weather provider could not deliver data."""


class WeatherProvider:
    """
    Source of raw weather payloads in OpenWeatherMap's response format.
    Subclasses fetch; the normalizers convert to the application's field names.
    """

    name = "base"

    def fetch_current(self, lat: float, lon: float) -> dict:
        raise NotImplementedError

    def fetch_forecast(self, lat: float, lon: float) -> dict:
        raise NotImplementedError

    def search_cities(self, query: str) -> list:
        raise NotImplementedError

    def check_health(self) -> str:
        return "healthy"

    @staticmethod
    def normalize_weather_data(data: dict) -> dict:
        main = data.get("main", {})
        wind = data.get("wind", {})
        weather = data.get("weather", [{}])[0]
        visibility = data.get("visibility")

        return {
            "temperature": main.get("temp"),
            "feels_like": main.get("feels_like"),
            "pressure": main.get("pressure"),
            "humidity": main.get("humidity"),
            "wind_speed": wind.get("speed"),
            "wind_direction": wind.get("deg"),
            # metres -> km
            "visibility": visibility / 1000 if visibility is not None else None,
            "cloudiness": data.get("clouds", {}).get("all"),
            "main_weather": weather.get("main", ""),
            "description": weather.get("description", ""),
            "icon": weather.get("icon", ""),
        }

    @staticmethod
    def normalize_location_data(data: dict) -> dict:
        return {
            "name": data.get("name"),
            "country_code": data.get("sys", {}).get("country", ""),
            "latitude": data.get("coord", {}).get("lat"),
            "longitude": data.get("coord", {}).get("lon"),
        }

    @staticmethod
    def normalize_forecast_location(data: dict) -> dict:
        city = data.get("city", {})
        return {
            "name": city.get("name"),
            "country_code": city.get("country", ""),
            "latitude": city.get("coord", {}).get("lat"),
            "longitude": city.get("coord", {}).get("lon"),
        }


class OpenWeatherAPI(WeatherProvider):
    """
    Adapter for OpenWeatherMap API with error handling.
    Transport failures and non-2xx answers surface as UpstreamError.
    """

    name = "openweather"

    def __init__(self, api_key=None, base_url=None, geo_url=None, timeout=None):
        self.api_key = api_key or settings.OPENWEATHER_API_KEY
        self.base_url = (base_url or settings.OPENWEATHER_BASE_URL).rstrip("/")
        self.geo_url = (geo_url or settings.OPENWEATHER_GEO_URL).rstrip("/")
        self.timeout = timeout or settings.WEATHER_API_TIMEOUT

    def _get(self, url: str, params: dict):
        if not self.api_key:
            raise UpstreamError("Weather API key not configured")

        try:
            response = requests.get(
                url,
                params={**params, "appid": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.RequestException as e:
            raise UpstreamError(f"Weather API error: {str(e)}") from e
        except ValueError as e:
            raise UpstreamError(f"Weather API returned invalid JSON: {str(e)}") from e

    def fetch_current(self, lat: float, lon: float) -> dict:
        return self._get(
            f"{self.base_url}/weather",
            {"lat": lat, "lon": lon, "units": "metric", "lang": "en"},
        )

    def fetch_forecast(self, lat: float, lon: float) -> dict:
        return self._get(
            f"{self.base_url}/forecast",
            {"lat": lat, "lon": lon, "units": "metric", "lang": "en"},
        )

    def search_cities(self, query: str) -> list:
        results = self._get(f"{self.geo_url}/direct", {"q": query, "limit": 5})
        return [
            {
                "name": item.get("name"),
                "country": item.get("country", ""),
                "lat": item.get("lat"),
                "lon": item.get("lon"),
            }
            for item in results
        ]

    def check_health(self) -> str:
        if not self.api_key:
            return "unhealthy: API key not configured"
        try:
            response = requests.get(
                f"{self.base_url}/weather",
                params={"q": "London", "appid": self.api_key, "units": "metric"},
                timeout=3,
            )
        except requests.exceptions.Timeout:
            return "unhealthy: timeout"
        except requests.exceptions.ConnectionError:
            return "unhealthy: connection failed"

        if response.status_code == 200:
            return "healthy"
        if response.status_code == 401:
            return "unhealthy: invalid API key"
        return f"unhealthy: HTTP {response.status_code}"


# (name, country, lat, lon)
KNOWN_CITIES = [
    ("New York", "US", 40.7128, -74.0060),
    ("London", "GB", 51.5074, -0.1278),
    ("Tokyo", "JP", 35.6762, 139.6503),
    ("Paris", "FR", 48.8566, 2.3522),
    ("Sydney", "AU", -33.8688, 151.2093),
    ("San Francisco", "US", 37.7749, -122.4194),
    ("Los Angeles", "US", 34.0522, -118.2437),
    ("Chicago", "US", 41.8781, -87.6298),
    ("Mumbai", "IN", 19.0760, 72.8777),
    ("Berlin", "DE", 52.5200, 13.4050),
    ("Toronto", "CA", 43.6532, -79.3832),
    ("Dubai", "AE", 25.2048, 55.2708),
    ("Singapore", "SG", 1.3521, 103.8198),
    ("Hong Kong", "HK", 22.3193, 114.1694),
    ("Moscow", "RU", 55.7558, 37.6176),
    ("Barcelona", "ES", 41.3851, 2.1734),
    ("Rome", "IT", 41.9028, 12.4964),
    ("Amsterdam", "NL", 52.3676, 4.9041),
    ("Seoul", "KR", 37.5665, 126.9780),
    ("Bangkok", "TH", 13.7563, 100.5018),
]

# Cities used to name arbitrary coordinates
NAMING_CITIES = ["New York", "London", "Tokyo", "Paris", "Sydney", "San Francisco", "Mumbai", "Berlin"]

CONDITIONS = [
    {"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"},
    {"id": 801, "main": "Clouds", "description": "few clouds", "icon": "02d"},
    {"id": 802, "main": "Clouds", "description": "scattered clouds", "icon": "03d"},
    {"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"},
    {"id": 200, "main": "Thunderstorm", "description": "thunderstorm with light rain", "icon": "11d"},
]

FORECAST_STEP_SECONDS = 3 * 3600
FORECAST_SAMPLES = 40


def nearest_city_name(lat: float, lon: float) -> str:
    cities = [city for city in KNOWN_CITIES if city[0] in NAMING_CITIES]
    closest = min(cities, key=lambda city: abs(lat - city[2]) + abs(lon - city[3]))
    return closest[0]


def guess_country(lat: float, lon: float) -> str:
    if lat > 45 and lon < -60:
        return "CA"
    if 25 < lat < 50 and -125 < lon < -65:
        return "US"
    if 35 < lat < 70 and -10 < lon < 40:
        return "GB"
    if 30 < lat < 45 and 100 < lon < 145:
        return "JP"
    if -45 < lat < -10 and 110 < lon < 155:
        return "AU"
    if 5 < lat < 35 and 68 < lon < 98:
        return "IN"
    return "XX"


class DemoWeatherAPI(WeatherProvider):
    """
    Simulated provider producing OpenWeatherMap-shaped payloads without network
    access. Temperatures follow latitude, the rest is randomized.
    """

    name = "demo"

    def __init__(self, rng=None, clock=time.time):
        self.rng = rng or random.Random()
        self.clock = clock

    def _base_temp(self, lat: float) -> float:
        return 20 + math.sin(lat * 0.1) * 15

    def fetch_current(self, lat: float, lon: float) -> dict:
        condition = CONDITIONS[int(abs(lat + lon) * 10) % len(CONDITIONS)]
        base_temp = self._base_temp(lat)

        return {
            "coord": {"lon": lon, "lat": lat},
            "weather": [condition],
            "main": {
                "temp": round(base_temp + self.rng.uniform(-2.5, 2.5), 1),
                "feels_like": round(base_temp + self.rng.uniform(-1.5, 1.5), 1),
                "temp_min": round(base_temp - 3, 1),
                "temp_max": round(base_temp + 4, 1),
                "pressure": round(1013 + self.rng.uniform(-10, 10)),
                "humidity": self.rng.randint(50, 79),
            },
            "visibility": 10000,
            "wind": {
                "speed": round(self.rng.uniform(2, 12), 1),
                "deg": self.rng.randint(0, 359),
            },
            "clouds": {"all": self.rng.randint(0, 99)},
            "dt": int(self.clock()),
            "sys": {"country": guess_country(lat, lon)},
            "name": nearest_city_name(lat, lon),
        }

    def fetch_forecast(self, lat: float, lon: float) -> dict:
        base_temp = self._base_temp(lat)
        start = int(self.clock())
        samples = []

        for step in range(FORECAST_SAMPLES):
            sample_temp = base_temp + self.rng.uniform(-5, 5)
            sample = {
                "dt": start + step * FORECAST_STEP_SECONDS,
                "main": {
                    "temp": round(sample_temp, 1),
                    "feels_like": round(sample_temp + self.rng.uniform(-1, 1), 1),
                    "temp_min": round(sample_temp - 3, 1),
                    "temp_max": round(sample_temp + 4, 1),
                    "pressure": round(1013 + self.rng.uniform(-10, 10)),
                    "humidity": self.rng.randint(50, 79),
                },
                "weather": [self.rng.choice(CONDITIONS)],
                "wind": {
                    "speed": round(self.rng.uniform(2, 12), 1),
                    "deg": self.rng.randint(0, 359),
                },
                "pop": round(self.rng.uniform(0, 0.8), 2),
            }
            if self.rng.random() > 0.7:
                sample["rain"] = {"3h": round(self.rng.uniform(0, 5), 2)}
            samples.append(sample)

        return {
            "list": samples,
            "city": {
                "name": nearest_city_name(lat, lon),
                "country": guess_country(lat, lon),
                "coord": {"lat": lat, "lon": lon},
            },
        }

    def search_cities(self, query: str) -> list:
        term = query.strip().lower()
        matches = [
            {"name": name, "country": country, "lat": lat, "lon": lon}
            for name, country, lat, lon in KNOWN_CITIES
            if term in name.lower() or term in country.lower()
        ]
        return matches[:5]

    def check_health(self) -> str:
        return "healthy"


PROVIDERS = {
    DemoWeatherAPI.name: DemoWeatherAPI,
    OpenWeatherAPI.name: OpenWeatherAPI,
}


def get_weather_provider() -> WeatherProvider:
    provider_class = PROVIDERS.get(getattr(settings, "WEATHER_PROVIDER", "demo"), DemoWeatherAPI)
    return provider_class()
