from django.contrib.auth import get_user_model
from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .models import ForecastDay, Location, WeatherSnapshot

User = get_user_model()

DUPLICATE_USER_MESSAGE = "User already exists"


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "username"]


class LocationSerializer(serializers.ModelSerializer):
    country = serializers.CharField(source="country_code")
    lat = serializers.FloatField(source="latitude")
    lon = serializers.FloatField(source="longitude")
    user_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Location
        fields = ["id", "name", "country", "lat", "lon", "user_id", "is_favorite", "created_at"]


class WeatherSnapshotSerializer(serializers.ModelSerializer):
    location_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = WeatherSnapshot
        fields = [
            "id",
            "location_id",
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
            "timestamp",
        ]


class ForecastDaySerializer(serializers.ModelSerializer):
    class Meta:
        model = ForecastDay
        fields = [
            "id",
            "date",
            "temp_high",
            "temp_low",
            "description",
            "icon",
            "humidity",
            "wind_speed",
            "precipitation",
            "precipitation_chance",
        ]


class CitySerializer(serializers.Serializer):
    name = serializers.CharField()
    country = serializers.CharField(allow_blank=True)
    lat = serializers.FloatField()
    lon = serializers.FloatField()


class CoordinatesSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lon = serializers.FloatField(min_value=-180, max_value=180)


class SearchQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=100)

    def validate_q(self, value):
        return value.strip()


class FavoriteCreateSerializer(CoordinatesSerializer):
    name = serializers.CharField(max_length=100)
    country = serializers.CharField(max_length=8, allow_blank=True, default="")

    def validate_name(self, value):
        return value.strip()


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate_username(self, value):
        value = value.strip()
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError(DUPLICATE_USER_MESSAGE)
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(DUPLICATE_USER_MESSAGE)
        return value

    def validate_password(self, value):
        try:
            password_validation.validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data["username"],
            email=validated_data["email"],
            password=validated_data["password"],
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate_email(self, value):
        return value.strip().lower()
