from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("SECRET_KEY", 'django-insecure-fallback-key-for-dev')

DEBUG = os.getenv("DEBUG", "False").lower() == 'true'

ALLOWED_HOSTS = [host for host in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if host]

# Weather provider: "demo" simulates readings, "openweather" calls OpenWeatherMap
WEATHER_PROVIDER = os.getenv("WEATHER_PROVIDER", "demo").lower()
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
OPENWEATHER_BASE_URL = os.getenv("OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5")
OPENWEATHER_GEO_URL = os.getenv("OPENWEATHER_GEO_URL", "https://api.openweathermap.org/geo/1.0")
WEATHER_API_TIMEOUT = float(os.getenv("WEATHER_API_TIMEOUT", "5"))

# Requests per minute per client IP on provider-backed endpoints
WEATHER_RATE_LIMIT = int(os.getenv("WEATHER_RATE_LIMIT", "30"))

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',

    'dashboard_api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'weather_dashboard.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'weather_dashboard.wsgi.application'

if os.getenv('DB_NAME'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME'),
            'USER': os.getenv('DB_USER'),
            'PASSWORD': os.getenv('DB_PASSWORD'),
            'HOST': os.getenv('DB_HOST', 'db'),
            'PORT': os.getenv('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

if os.getenv('REDIS_URL'):
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': os.getenv('REDIS_URL'),
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            },
            'KEY_PREFIX': 'weather',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'weather-dashboard',
            'KEY_PREFIX': 'weather',
        }
    }

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'dashboard_api.authentication.SessionPrincipalAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.FormParser',
    ],
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {'min_length': 6},
    },
]

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

STATIC_URL = '/static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,

    "formatters": {
        "structured": {
            "format": 'timestamp=%(asctime)s level=%(levelname)s module=%(name)s message="%(message)s" ip=%(ip)s user=%(user)s event=%(event)s lat=%(lat)s lon=%(lon)s location_id=%(location_id)s latency=%(latency)s error=%(error)s',
            "style": "%",
        },
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": """
                {
                    "timestamp": "%(asctime)s",
                    "level": "%(levelname)s",
                    "module": "%(name)s",
                    "message": "%(message)s",
                    "ip": "%(ip)s",
                    "user": "%(user)s",
                    "event": "%(event)s",
                    "lat": "%(lat)s",
                    "lon": "%(lon)s",
                    "location_id": "%(location_id)s",
                    "latency": "%(latency)s",
                    "error": "%(error)s"
                }
            """,
        },
    },

    "filters": {
        "add_extra_fields": {
            "()": "dashboard_api.logging_filters.ExtraFieldsFilter",
        },
    },

    "handlers": {
        "console_structured": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
            "filters": ["add_extra_fields"],
        },

        "file_structured": {
            "class": "logging.FileHandler",
            "filename": LOG_DIR / "structured_weather.log",
            "formatter": "structured",
            "filters": ["add_extra_fields"],
        },

        "file_json": {
            "class": "logging.FileHandler",
            "filename": LOG_DIR / "json_weather.log",
            "formatter": "json",
            "filters": ["add_extra_fields"],
        },

        "errors_structured": {
            "class": "logging.FileHandler",
            "filename": LOG_DIR / "errors_structured.log",
            "formatter": "structured",
            "level": "ERROR",
            "filters": ["add_extra_fields"],
        },
    },

    "loggers": {
        "django": {
            "handlers": ["console_structured"],
            "level": "INFO",
            "propagate": False,
        },

        "weather": {
            "handlers": ["console_structured", "file_structured", "file_json", "errors_structured"],
            "level": "INFO",
            "propagate": False,
        },

        "django.request": {
            "handlers": ["errors_structured", "console_structured"],
            "level": "ERROR",
            "propagate": False,
        },
    },
}
