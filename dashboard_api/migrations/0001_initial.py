import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('country_code', models.CharField(blank=True, max_length=8)),
                ('latitude', models.FloatField()),
                ('longitude', models.FloatField()),
                ('is_favorite', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='locations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'locations',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['latitude', 'longitude'], name='idx_location_coords'),
                    models.Index(fields=['user', 'is_favorite'], name='idx_location_user_favorite'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WeatherSnapshot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('temperature', models.FloatField()),
                ('feels_like', models.FloatField()),
                ('humidity', models.IntegerField()),
                ('pressure', models.FloatField()),
                ('wind_speed', models.FloatField()),
                ('wind_direction', models.IntegerField(blank=True, null=True)),
                ('visibility', models.FloatField(blank=True, null=True)),
                ('cloudiness', models.IntegerField(blank=True, null=True)),
                ('main_weather', models.CharField(blank=True, max_length=100)),
                ('description', models.CharField(max_length=200)),
                ('icon', models.CharField(max_length=10)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('location', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='snapshot', to='dashboard_api.location')),
            ],
            options={
                'db_table': 'weather_snapshots',
            },
        ),
        migrations.CreateModel(
            name='ForecastDay',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('temp_high', models.FloatField()),
                ('temp_low', models.FloatField()),
                ('description', models.CharField(max_length=200)),
                ('icon', models.CharField(max_length=10)),
                ('humidity', models.IntegerField()),
                ('wind_speed', models.FloatField()),
                ('precipitation', models.FloatField(default=0)),
                ('precipitation_chance', models.IntegerField(default=0)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='forecast_days', to='dashboard_api.location')),
            ],
            options={
                'db_table': 'forecast_days',
                'ordering': ['date'],
                'constraints': [
                    models.UniqueConstraint(fields=('location', 'date'), name='unique_location_forecast_date'),
                ],
            },
        ),
    ]
