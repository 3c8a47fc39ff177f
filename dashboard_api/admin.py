from django.contrib import admin

from .models import ForecastDay, Location, WeatherSnapshot


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'country_code', 'latitude', 'longitude', 'user', 'is_favorite')
    list_filter = ('is_favorite', 'country_code')
    search_fields = ('name',)


@admin.register(WeatherSnapshot)
class WeatherSnapshotAdmin(admin.ModelAdmin):
    list_display = ('location', 'temperature', 'description', 'timestamp')


@admin.register(ForecastDay)
class ForecastDayAdmin(admin.ModelAdmin):
    list_display = ('location', 'date', 'temp_low', 'temp_high', 'precipitation_chance')
