from django.urls import path

from . import views

urlpatterns = [
    # Auth
    path('api/auth/register', views.RegisterView.as_view(), name='auth-register'),
    path('api/auth/login', views.LoginView.as_view(), name='auth-login'),
    path('api/auth/logout', views.LogoutView.as_view(), name='auth-logout'),
    path('api/auth/me', views.MeView.as_view(), name='auth-me'),

    # Locations
    path('api/locations/search', views.LocationSearchView.as_view(), name='location-search'),
    path('api/locations/favorites', views.FavoriteListView.as_view(), name='favorite-list'),
    path('api/locations/favorites/<int:pk>', views.FavoriteDetailView.as_view(), name='favorite-detail'),

    # Weather
    path('api/weather/current', views.CurrentWeatherView.as_view(), name='weather-current'),
    path('api/weather/forecast', views.ForecastView.as_view(), name='weather-forecast'),

    path('api/health/', views.HealthCheckView.as_view(), name='health-check'),
]
