from django.conf import settings
from django.db import models
from django.utils import timezone


class Location(models.Model):
    """
    A place weather has been looked up for or a user has favorited.
    Locations without an owner are shared; favorites always have one.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='locations',
    )
    name = models.CharField(max_length=100)
    country_code = models.CharField(max_length=8, blank=True)
    latitude = models.FloatField()
    longitude = models.FloatField()
    is_favorite = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'locations'
        ordering = ['id']
        indexes = [
            # Coarse range prefilter for proximity matching
            models.Index(fields=['latitude', 'longitude'], name='idx_location_coords'),
            models.Index(fields=['user', 'is_favorite'], name='idx_location_user_favorite'),
        ]

    def __str__(self):
        return f"{self.name}, {self.country_code}".strip(", ")


class WeatherSnapshot(models.Model):
    """
    Latest current-conditions reading for a location. Only one is kept;
    a fresh fetch replaces the previous row.
    """
    location = models.OneToOneField(
        Location,
        on_delete=models.CASCADE,
        related_name='snapshot',
    )
    temperature = models.FloatField()
    feels_like = models.FloatField()
    humidity = models.IntegerField()
    pressure = models.FloatField()
    wind_speed = models.FloatField()
    wind_direction = models.IntegerField(null=True, blank=True)
    visibility = models.FloatField(null=True, blank=True)  # km
    cloudiness = models.IntegerField(null=True, blank=True)

    main_weather = models.CharField(max_length=100, blank=True)
    description = models.CharField(max_length=200)
    icon = models.CharField(max_length=10)

    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'weather_snapshots'

    def __str__(self):
        return f"{self.temperature}° — {self.description}"


class ForecastDay(models.Model):
    location = models.ForeignKey(
        Location,
        on_delete=models.CASCADE,
        related_name='forecast_days',
    )
    date = models.DateField()
    temp_high = models.FloatField()
    temp_low = models.FloatField()
    description = models.CharField(max_length=200)
    icon = models.CharField(max_length=10)
    humidity = models.IntegerField()
    wind_speed = models.FloatField()
    precipitation = models.FloatField(default=0)
    precipitation_chance = models.IntegerField(default=0)

    class Meta:
        db_table = 'forecast_days'
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['location', 'date'],
                name='unique_location_forecast_date'
            )
        ]

    def __str__(self):
        return f"{self.location.name} {self.date:%Y-%m-%d}: {self.temp_low}–{self.temp_high}°"
