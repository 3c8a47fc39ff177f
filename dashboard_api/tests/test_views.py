from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from unittest.mock import patch

from ..models import ForecastDay, Location, WeatherSnapshot
from ..services.favorites import add_favorite
from ..services.weather_provider import UpstreamError
from .test_models import make_snapshot

User = get_user_model()


@override_settings(WEATHER_PROVIDER='demo')
class WeatherViewTests(APITestCase):
    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_current_weather(self):
        response = self.client.get(reverse('weather-current'), {'lat': '37.7749', 'lon': '-122.4194'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location']['name'], 'San Francisco')
        self.assertEqual(response.data['location']['country'], 'US')
        self.assertEqual(response.data['location']['lat'], 37.7749)
        self.assertIn('temperature', response.data['weather'])
        self.assertEqual(response.data['weather']['location_id'], response.data['location']['id'])

    def test_repeated_current_weather_reuses_location(self):
        url = reverse('weather-current')
        first = self.client.get(url, {'lat': '37.7749', 'lon': '-122.4194'})
        second = self.client.get(url, {'lat': '37.7749', 'lon': '-122.4194'})

        self.assertEqual(first.data['location']['id'], second.data['location']['id'])
        self.assertNotEqual(first.data['weather']['id'], second.data['weather']['id'])

        location = Location.objects.get(pk=first.data['location']['id'])
        self.assertEqual(WeatherSnapshot.objects.filter(location=location).count(), 1)
        self.assertEqual(location.snapshot.id, second.data['weather']['id'])

    def test_current_weather_requires_coordinates(self):
        response = self.client.get(reverse('weather-current'), {'lat': '37.7749'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('lon', response.data['errors'])

    def test_current_weather_rejects_garbage(self):
        response = self.client.get(reverse('weather-current'), {'lat': 'north', 'lon': '1'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('dashboard_api.views.get_current_weather')
    def test_current_weather_upstream_failure(self, mock_get_current):
        mock_get_current.side_effect = UpstreamError("provider down")

        response = self.client.get(reverse('weather-current'), {'lat': '1', 'lon': '1'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['message'], 'Failed to fetch weather data')

    @override_settings(WEATHER_RATE_LIMIT=1)
    def test_current_weather_rate_limited(self):
        url = reverse('weather-current')
        self.client.get(url, {'lat': '1', 'lon': '1'})
        response = self.client.get(url, {'lat': '1', 'lon': '1'})

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response.data['error'], 'Rate limit exceeded')

    def test_forecast(self):
        response = self.client.get(reverse('weather-forecast'), {'lat': '51.5074', 'lon': '-0.1278'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location']['name'], 'London')
        forecasts = response.data['forecasts']
        self.assertTrue(1 <= len(forecasts) <= 7)
        dates = [day['date'] for day in forecasts]
        self.assertEqual(dates, sorted(dates))
        for day in forecasts:
            self.assertLessEqual(day['temp_low'], day['temp_high'])
            self.assertTrue(0 <= day['precipitation_chance'] <= 100)

    def test_forecast_refresh_replaces_days(self):
        url = reverse('weather-forecast')
        first = self.client.get(url, {'lat': '51.5074', 'lon': '-0.1278'})
        second = self.client.get(url, {'lat': '51.5074', 'lon': '-0.1278'})

        location_id = second.data['location']['id']
        self.assertEqual(first.data['location']['id'], location_id)
        stored_ids = set(ForecastDay.objects.filter(location_id=location_id).values_list('id', flat=True))
        self.assertEqual(stored_ids, {day['id'] for day in second.data['forecasts']})

    @patch('dashboard_api.views.get_forecast')
    def test_forecast_upstream_failure(self, mock_get_forecast):
        mock_get_forecast.side_effect = UpstreamError("provider down")

        response = self.client.get(reverse('weather-forecast'), {'lat': '1', 'lon': '1'})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_search(self):
        response = self.client.get(reverse('location-search'), {'q': 'san'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0], {
            'name': 'San Francisco', 'country': 'US', 'lat': 37.7749, 'lon': -122.4194
        })

    def test_search_by_country_is_capped_at_five(self):
        response = self.client.get(reverse('location-search'), {'q': 'us'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertLessEqual(len(response.data), 5)
        self.assertIn('New York', [city['name'] for city in response.data])

    def test_search_requires_query(self):
        response = self.client.get(reverse('location-search'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Query parameter required')

    def test_health_check(self):
        response = self.client.get(reverse('health-check'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['components']['database'], 'healthy')
        self.assertEqual(response.data['components']['provider_name'], 'demo')


class AuthViewTests(APITestCase):
    def test_register_logs_in(self):
        response = self.client.post(reverse('auth-register'), {
            'username': 'alice', 'email': 'alice@example.com', 'password': 'secret123'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'alice')
        self.assertEqual(set(response.data['user']), {'id', 'email', 'username'})

        me = self.client.get(reverse('auth-me'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['user']['email'], 'alice@example.com')

    def test_register_duplicate_email(self):
        User.objects.create_user('alice', 'alice@example.com', 'secret123')

        response = self.client.post(reverse('auth-register'), {
            'username': 'alice2', 'email': 'alice@example.com', 'password': 'secret123'
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'User already exists')

    def test_register_invalid_data(self):
        response = self.client.post(reverse('auth-register'), {'username': 'x'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid user data')

    def test_login_and_logout(self):
        User.objects.create_user('bob', 'bob@example.com', 'secret123')

        response = self.client.post(reverse('auth-login'), {'email': 'bob@example.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'bob')

        response = self.client.post(reverse('auth-logout'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Logged out successfully')

        self.assertEqual(self.client.get(reverse('auth-me')).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_bad_credentials(self):
        User.objects.create_user('bob', 'bob@example.com', 'secret123')

        for payload in ({'email': 'bob@example.com', 'password': 'wrong'},
                        {'email': 'nobody@example.com', 'password': 'secret123'}):
            response = self.client.post(reverse('auth-login'), payload)
            self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
            self.assertEqual(response.data['message'], 'Invalid credentials')

    def test_me_without_session(self):
        response = self.client.get(reverse('auth-me'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class FavoriteViewTests(APITestCase):
    def setUp(self):
        self.alice = User.objects.create_user('alice', 'alice@example.com', 'secret123')
        self.bob = User.objects.create_user('bob', 'bob@example.com', 'secret123')

    def test_favorites_require_session(self):
        self.assertEqual(self.client.get(reverse('favorite-list')).status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.client.post(reverse('favorite-list'), {'lat': 1, 'lon': 1, 'name': 'X', 'country': 'XX'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.client.delete(reverse('favorite-detail', args=[1]))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_add_and_list_favorites(self):
        self.client.force_login(self.alice)

        response = self.client.post(reverse('favorite-list'), {
            'lat': 35.6762, 'lon': 139.6503, 'name': 'Tokyo', 'country': 'JP'
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_favorite'])
        self.assertEqual(response.data['user_id'], self.alice.id)

        again = self.client.post(reverse('favorite-list'), {
            'lat': 35.6762, 'lon': 139.6503, 'name': 'Tokyo', 'country': 'JP'
        })
        self.assertEqual(again.data['id'], response.data['id'])

        listing = self.client.get(reverse('favorite-list'))
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(len(listing.data), 1)
        self.assertEqual(listing.data[0]['location']['name'], 'Tokyo')
        self.assertIsNone(listing.data[0]['weather'])

    def test_list_includes_latest_weather(self):
        location = add_favorite(self.alice, 41.9028, 12.4964, name='Rome', country_code='IT')
        make_snapshot(location, temperature=27.0)
        self.client.force_login(self.alice)

        listing = self.client.get(reverse('favorite-list'))

        self.assertEqual(listing.data[0]['weather']['temperature'], 27.0)

    def test_add_favorite_validation(self):
        self.client.force_login(self.alice)

        response = self.client.post(reverse('favorite-list'), {'lat': 'x', 'name': 'Nowhere'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('lat', response.data['errors'])
        self.assertIn('lon', response.data['errors'])

    def test_remove_favorite(self):
        location = add_favorite(self.alice, 41.9028, 12.4964, name='Rome', country_code='IT')
        self.client.force_login(self.alice)

        response = self.client.delete(reverse('favorite-detail', args=[location.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Favorite removed')
        self.assertFalse(Location.objects.filter(pk=location.id).exists())

    def test_remove_other_users_favorite_is_404(self):
        location = add_favorite(self.bob, 41.9028, 12.4964, name='Rome', country_code='IT')
        self.client.force_login(self.alice)

        response = self.client.delete(reverse('favorite-detail', args=[location.id]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Location not found')
        self.assertTrue(Location.objects.filter(pk=location.id).exists())

    def test_remove_unknown_favorite_is_404(self):
        self.client.force_login(self.alice)
        response = self.client.delete(reverse('favorite-detail', args=[424242]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
