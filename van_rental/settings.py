from pathlib import Path
import os
from urllib.parse import urlparse, unquote

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes"}


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-secret-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", "true")
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")
CSRF_TRUSTED_ORIGINS = _env_list("DJANGO_CSRF_TRUSTED_ORIGINS")
LOG_LEVEL = os.environ.get("DJANGO_LOG_LEVEL", "INFO").upper()

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "hire",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "van_rental.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "van_rental.wsgi:application"


def _database_from_url(url: str | None):
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme == "sqlite":
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": unquote(parsed.path.lstrip("/")) or str(BASE_DIR / "db.sqlite3"),
        }
    if parsed.scheme not in {"postgres", "postgresql"}:
        return None
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": parsed.path.lstrip("/") or "",
        "USER": unquote(parsed.username or ""),
        "PASSWORD": unquote(parsed.password or ""),
        "HOST": parsed.hostname or "",
        "PORT": int(parsed.port or 5432),
    }


def _default_database():
    if not os.environ.get("POSTGRES_HOST"):
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("POSTGRES_DB", "van_rental"),
        "USER": os.environ.get("POSTGRES_USER", "van_rental"),
        "PASSWORD": os.environ.get("POSTGRES_PASSWORD", "van_rental"),
        "HOST": os.environ["POSTGRES_HOST"],
        "PORT": _env_int("POSTGRES_PORT", 5432),
    }


DATABASES = {"default": _database_from_url(os.environ.get("DATABASE_URL")) or _default_database()}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "cs"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "Europe/Prague")
USE_I18N = True
USE_TZ = True
DATE_FORMAT = "d.m.Y"
DATETIME_FORMAT = "d.m.Y H:i"
TIME_FORMAT = "H:i"
DATE_INPUT_FORMATS = ["%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y"]
DATETIME_INPUT_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%d.%m.%Y %H:%M"]

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
WHITENOISE_USE_FINDERS = True
MEDIA_URL = os.environ.get("DJANGO_MEDIA_URL", "/media/")
MEDIA_ROOT = Path(os.environ.get("DJANGO_MEDIA_ROOT", str(BASE_DIR / "media")))

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOGIN_URL = "login"
LOGIN_REDIRECT_URL = "hire:dashboard"
LOGOUT_REDIRECT_URL = "login"

# Idle session timeout: 30 minutes of inactivity.
SESSION_COOKIE_AGE = 30 * 60
SESSION_SAVE_EVERY_REQUEST = True

# Handover photos and document scans come straight from phone cameras.
FILE_UPLOAD_MAX_MEMORY_SIZE = _env_int("FILE_UPLOAD_MAX_MEMORY_SIZE", 20 * 1024 * 1024)
DATA_UPLOAD_MAX_MEMORY_SIZE = _env_int("DATA_UPLOAD_MAX_MEMORY_SIZE", 50 * 1024 * 1024)

# Operator details printed on contracts and invoices. Editable at runtime
# through the business profile page; these values seed it.
BUSINESS_INFO = {
    "name": os.environ.get("BUSINESS_NAME", "Půjčovna Dodávek OS"),
    "address": os.environ.get("BUSINESS_ADDRESS", "Konečná 37, Brno, 612 00"),
    "ico": os.environ.get("BUSINESS_ICO", "07031653"),
    "pickup_location": os.environ.get("BUSINESS_PICKUP_LOCATION", "Parkoviště Teslova Brno"),
    "website": os.environ.get("BUSINESS_WEBSITE", "Pujcimedodavky.cz"),
    "contact_email": os.environ.get("BUSINESS_CONTACT_EMAIL", "smlouvydodavky@gmail.com"),
    "bank_account": os.environ.get("BUSINESS_BANK_ACCOUNT", "123456789/0800"),
}

DEFAULT_VEHICLE_PRICING = {"hour4": 500, "hour12": 900, "day": 1200}
CURRENCY_LABEL = os.environ.get("CURRENCY_LABEL", "Kč")

INVOICE_DUE_DAYS = _env_int("INVOICE_DUE_DAYS", 14)
STK_ALERT_DAYS = _env_int("STK_ALERT_DAYS", 30)
PREREGISTRATION_TTL_DAYS = _env_int("PREREGISTRATION_TTL_DAYS", 30)
CONTRACT_DEPOSIT = _env_int("CONTRACT_DEPOSIT", 5000)

SIGNATURE_CANVAS_WIDTH = 600
SIGNATURE_CANVAS_HEIGHT = 150

_console = {"handlers": ["console"], "propagate": False}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose"},
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "hire": {**_console, "level": os.environ.get("HIRE_LOG_LEVEL", LOG_LEVEL).upper()},
        "django.request": {**_console, "level": "ERROR"},
        "gunicorn.error": {**_console, "level": LOG_LEVEL},
        "gunicorn.access": {**_console, "level": LOG_LEVEL},
    },
}
