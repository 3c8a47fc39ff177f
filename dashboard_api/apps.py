from django.apps import AppConfig


class DashboardApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'dashboard_api'
    verbose_name = 'Weather dashboard API'
