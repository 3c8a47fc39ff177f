import logging
from datetime import datetime

from django.contrib.auth import get_user_model, login, logout
from django.db import connection
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    DUPLICATE_USER_MESSAGE,
    CitySerializer,
    CoordinatesSerializer,
    FavoriteCreateSerializer,
    ForecastDaySerializer,
    LocationSerializer,
    LoginSerializer,
    RegisterSerializer,
    SearchQuerySerializer,
    UserSerializer,
    WeatherSnapshotSerializer,
)
from .services.favorites import add_favorite, list_favorites, remove_favorite
from .services.rate_limiter import RateLimitExceeded
from .services.weather_provider import UpstreamError, get_weather_provider
from .services.weather_service import get_current_weather, get_forecast, search_locations

logger = logging.getLogger("weather")

User = get_user_model()


def rate_limited_response(e):
    return Response(
        {"error": "Rate limit exceeded", "message": "Please try again in a minute.", "detail": str(e)},
        status=status.HTTP_429_TOO_MANY_REQUESTS
    )


class ClientIPMixin:
    def get_client_ip(self, request):
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip


class RegisterView(APIView):
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            conflict = any(DUPLICATE_USER_MESSAGE in errors for errors in serializer.errors.values())
            return Response(
                {
                    "message": DUPLICATE_USER_MESSAGE if conflict else "Invalid user data",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        user = serializer.save()
        login(request, user)
        logger.info("User registered", extra={'event': 'user_registered', 'user': user.username})
        return Response({"user": UserSerializer(user).data})


class LoginView(APIView):
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"message": "Email and password required", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        email = serializer.validated_data['email']
        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.is_active or not user.check_password(serializer.validated_data['password']):
            logger.warning("Login rejected", extra={'event': 'login_failed', 'user': email})
            return Response({"message": "Invalid credentials"}, status=status.HTTP_401_UNAUTHORIZED)

        login(request, user)
        logger.info("User logged in", extra={'event': 'user_login', 'user': user.username})
        return Response({"user": UserSerializer(user).data})


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        username = request.user.username
        logout(request)
        logger.info("User logged out", extra={'event': 'user_logout', 'user': username})
        return Response({"message": "Logged out successfully"})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({"user": UserSerializer(request.user).data})


class LocationSearchView(ClientIPMixin, APIView):
    def get(self, request):
        serializer = SearchQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(
                {"message": "Query parameter required", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            cities = search_locations(serializer.validated_data['q'], ip_address=self.get_client_ip(request))
        except RateLimitExceeded as e:
            return rate_limited_response(e)
        except UpstreamError:
            return Response({"message": "Search failed"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(CitySerializer(cities, many=True).data)


class CurrentWeatherView(ClientIPMixin, APIView):
    def get(self, request):
        serializer = CoordinatesSerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(
                {"message": "Latitude and longitude required", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        lat = serializer.validated_data['lat']
        lon = serializer.validated_data['lon']
        ip_address = self.get_client_ip(request)

        try:
            start_time = datetime.now()
            location, snapshot = get_current_weather(lat, lon, ip_address=ip_address)
            latency = (datetime.now() - start_time).total_seconds()

            logger.info(
                f"weather_request_success lat={lat} lon={lon} location_id={location.id} latency={latency:.2f}s",
                extra={
                    'ip': ip_address,
                    'lat': lat,
                    'lon': lon,
                    'location_id': location.id,
                    'latency': latency,
                    'event': 'weather_request_success'
                }
            )

        except RateLimitExceeded as e:
            return rate_limited_response(e)

        except UpstreamError as e:
            return Response(
                {"message": "Failed to fetch weather data", "detail": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({
            "location": LocationSerializer(location).data,
            "weather": WeatherSnapshotSerializer(snapshot).data,
        })


class ForecastView(ClientIPMixin, APIView):
    def get(self, request):
        serializer = CoordinatesSerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(
                {"message": "Latitude and longitude required", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        lat = serializer.validated_data['lat']
        lon = serializer.validated_data['lon']
        ip_address = self.get_client_ip(request)

        try:
            location, forecasts = get_forecast(lat, lon, ip_address=ip_address)

        except RateLimitExceeded as e:
            return rate_limited_response(e)

        except UpstreamError as e:
            return Response(
                {"message": "Failed to fetch forecast data", "detail": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({
            "location": LocationSerializer(location).data,
            "forecasts": ForecastDaySerializer(forecasts, many=True).data,
        })


class FavoriteListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        favorites = list_favorites(request.user)
        return Response([
            {
                "location": LocationSerializer(location).data,
                "weather": WeatherSnapshotSerializer(snapshot).data if snapshot else None,
            }
            for location, snapshot in favorites
        ])

    def post(self, request):
        serializer = FavoriteCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"message": "Invalid location data", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        location = add_favorite(
            request.user,
            data['lat'],
            data['lon'],
            name=data['name'],
            country_code=data['country'],
        )
        return Response(LocationSerializer(location).data, status=status.HTTP_201_CREATED)


class FavoriteDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        if not remove_favorite(request.user, pk):
            return Response({"message": "Location not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response({"message": "Favorite removed"})


class HealthCheckView(APIView):
    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            db_status = "healthy"
        except Exception as e:
            db_status = f"unhealthy: {str(e)}"

        provider = get_weather_provider()
        try:
            api_status = provider.check_health()
        except Exception as e:
            api_status = f"unhealthy: {str(e)}"

        health_data = {
            "status": "healthy" if db_status == "healthy" and api_status == "healthy" else "degraded",
            "timestamp": datetime.now().isoformat(),
            "components": {
                "database": db_status,
                "weather_provider": api_status,
                "provider_name": provider.name,
            }
        }

        status_code = status.HTTP_200_OK if health_data["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE

        return Response(health_data, status=status_code)
