from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from unittest.mock import MagicMock, patch

from ..models import ForecastDay, Location, WeatherSnapshot
from ..services.favorites import add_favorite, list_favorites
from ..services.rate_limiter import RateLimitExceeded, check_rate_limit
from ..services.weather_provider import UpstreamError, WeatherProvider
from ..services.weather_service import get_current_weather, get_forecast, search_locations

User = get_user_model()

FORECAST_START = 1748736000  # 2025-06-01T00:00:00Z


def current_payload(lat=51.5074, lon=-0.1278, temp=20.5):
    return {
        'coord': {'lat': lat, 'lon': lon},
        'main': {
            'temp': temp,
            'feels_like': 19.0,
            'pressure': 1015,
            'humidity': 70
        },
        'wind': {
            'speed': 4.2,
            'deg': 180
        },
        'clouds': {'all': 40},
        'visibility': 10000,
        'weather': [{
            'main': 'Clouds',
            'description': 'scattered clouds',
            'icon': '03d'
        }],
        'name': 'London',
        'sys': {'country': 'GB'},
    }


def forecast_payload(days=3, lat=51.5074, lon=-0.1278):
    samples = []
    for i in range(days * 8):
        samples.append({
            'dt': FORECAST_START + i * 3 * 3600,
            'main': {'temp': 15, 'temp_max': 15 + i % 8, 'temp_min': 10 - i % 8, 'humidity': 60},
            'weather': [{'main': 'Rain', 'description': 'light rain', 'icon': '10d'}],
            'wind': {'speed': 3.0, 'deg': 90},
            'pop': 0.485,
            'rain': {'3h': 0.5},
        })
    return {
        'list': samples,
        'city': {'name': 'London', 'country': 'GB', 'coord': {'lat': lat, 'lon': lon}},
    }


def mock_provider(current=None, forecast=None, error=None):
    provider = MagicMock(spec=WeatherProvider)
    provider.name = "mock"
    provider.normalize_weather_data.side_effect = WeatherProvider.normalize_weather_data
    provider.normalize_location_data.side_effect = WeatherProvider.normalize_location_data
    provider.normalize_forecast_location.side_effect = WeatherProvider.normalize_forecast_location
    if error is not None:
        provider.fetch_current.side_effect = error
        provider.fetch_forecast.side_effect = error
    else:
        provider.fetch_current.return_value = current or current_payload()
        provider.fetch_forecast.return_value = forecast or forecast_payload()
    return provider


class WeatherServiceTests(TestCase):
    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_current_weather_creates_shared_location_and_snapshot(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider()

        location, snapshot = get_current_weather(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual(location.name, 'London')
        self.assertEqual(location.country_code, 'GB')
        self.assertIsNone(location.user)
        self.assertFalse(location.is_favorite)
        self.assertEqual(snapshot.temperature, 20.5)
        self.assertEqual(snapshot.visibility, 10.0)
        self.assertEqual(snapshot.cloudiness, 40)
        self.assertEqual(snapshot.location, location)

        mock_get_provider.return_value.fetch_current.assert_called_once_with(51.5074, -0.1278)

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_repeated_lookup_reuses_location_and_replaces_snapshot(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider()
        location1, snapshot1 = get_current_weather(51.5074, -0.1278, '127.0.0.1')

        mock_get_provider.return_value = mock_provider(current=current_payload(temp=25.0))
        location2, snapshot2 = get_current_weather(51.5075, -0.1279, '127.0.0.1')

        self.assertEqual(location1.id, location2.id)
        self.assertNotEqual(snapshot1.id, snapshot2.id)
        self.assertEqual(Location.objects.count(), 1)
        self.assertEqual(WeatherSnapshot.objects.get().temperature, 25.0)

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_stored_coordinates_are_the_query(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider(current=current_payload(lat=51.51, lon=-0.13))

        location, _ = get_current_weather(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual((location.latitude, location.longitude), (51.5074, -0.1278))

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_upstream_error_persists_nothing(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider(error=UpstreamError("provider down"))

        with self.assertRaises(UpstreamError):
            get_current_weather(51.5074, -0.1278, '127.0.0.1')
        with self.assertRaises(UpstreamError):
            get_forecast(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual(Location.objects.count(), 0)
        self.assertEqual(WeatherSnapshot.objects.count(), 0)
        self.assertEqual(ForecastDay.objects.count(), 0)

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_unexpected_provider_failure_becomes_upstream_error(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider(error=KeyError('main'))

        with self.assertRaises(UpstreamError):
            get_current_weather(51.5074, -0.1278, '127.0.0.1')

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_forecast_is_aggregated_and_replaced(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider(forecast=forecast_payload(days=3))
        location, days = get_forecast(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual(len(days), 3)
        self.assertEqual(days[0].temp_high, 22)
        self.assertEqual(days[0].temp_low, 3)
        self.assertEqual(days[0].precipitation_chance, 49)
        self.assertAlmostEqual(days[0].precipitation, 4.0)

        mock_get_provider.return_value = mock_provider(forecast=forecast_payload(days=2))
        location2, days = get_forecast(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual(location.id, location2.id)
        self.assertEqual(len(days), 2)
        self.assertEqual(ForecastDay.objects.filter(location=location).count(), 2)

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_current_and_forecast_share_location(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider()

        location1, _ = get_current_weather(51.5074, -0.1278, '127.0.0.1')
        location2, _ = get_forecast(51.5074, -0.1278, '127.0.0.1')

        self.assertEqual(location1.id, location2.id)

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_lookup_weather_reaches_every_users_favorite(self, mock_get_provider):
        alice = User.objects.create_user('alice', 'alice@example.com', 'secret123')
        bob = User.objects.create_user('bob', 'bob@example.com', 'secret123')
        add_favorite(alice, 37.7749, -122.4194, name='San Francisco', country_code='US')
        add_favorite(bob, 37.7749, -122.4194, name='San Francisco', country_code='US')
        mock_get_provider.return_value = mock_provider(
            current=current_payload(lat=37.7749, lon=-122.4194, temp=17.5)
        )

        get_current_weather(37.7749, -122.4194, '127.0.0.1')

        for user in (alice, bob):
            [(location, snapshot)] = list_favorites(user)
            self.assertEqual(location.user, user)
            self.assertIsNotNone(snapshot)
            self.assertEqual(snapshot.temperature, 17.5)

    @override_settings(WEATHER_PROVIDER='demo')
    def test_search_uses_demo_catalogue(self):
        results = search_locations('lon', '127.0.0.1')
        self.assertEqual([city['name'] for city in results], ['London'])


class RateLimiterTests(TestCase):
    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_rate_limit_normal_usage(self):
        ip = '127.0.0.1'

        for i in range(29):
            try:
                check_rate_limit(ip)
            except RateLimitExceeded:
                self.fail(f"Rate limit exceeded at request {i + 1}")

    def test_rate_limit_exceeded(self):
        ip = '127.0.0.1'

        for i in range(30):
            check_rate_limit(ip)

        with self.assertRaises(RateLimitExceeded) as context:
            check_rate_limit(ip)

        self.assertIn("Rate limit exceeded", str(context.exception))

    def test_rate_limit_different_ips(self):
        ip1 = '127.0.0.1'
        ip2 = '192.168.1.1'

        for i in range(30):
            check_rate_limit(ip1)

        with self.assertRaises(RateLimitExceeded):
            check_rate_limit(ip1)

        try:
            check_rate_limit(ip2)
        except RateLimitExceeded:
            self.fail("Rate limit should not affect different IP")

    @override_settings(WEATHER_RATE_LIMIT=2)
    def test_rate_limit_is_configurable(self):
        check_rate_limit('10.0.0.1')
        check_rate_limit('10.0.0.1')
        with self.assertRaises(RateLimitExceeded):
            check_rate_limit('10.0.0.1')

    def test_rate_limit_no_ip(self):
        with self.assertRaises(RateLimitExceeded) as context:
            check_rate_limit(None)

        self.assertIn("IP address missing", str(context.exception))

    @patch('dashboard_api.services.weather_service.get_weather_provider')
    def test_rate_limit_prevents_db_writes(self, mock_get_provider):
        mock_get_provider.return_value = mock_provider()
        ip = '127.0.0.1'

        for i in range(30):
            check_rate_limit(ip)

        with self.assertRaises(RateLimitExceeded):
            get_current_weather(51.5074, -0.1278, ip)

        self.assertEqual(Location.objects.count(), 0)
        mock_get_provider.return_value.fetch_current.assert_not_called()
