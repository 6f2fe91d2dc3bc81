# storefront/settings.py - single settings module, profile driven by ENV
import os
from pathlib import Path
import dj_database_url
from dotenv import load_dotenv

# -------------------------
# optional .env (instance/.env)
# -------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / "instance" / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _env_bool(var_name: str, default: str = "False") -> bool:
    return os.getenv(var_name, default).lower() == "true"


def _env_int(var_name: str, default: int) -> int:
    raw = os.getenv(var_name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_list(var_name: str, fallback: list[str]) -> list[str]:
    raw = os.getenv(var_name, "")
    if raw.strip():
        return [u.strip() for u in raw.split(",") if u.strip()]
    return fallback


# -------------------------
# Security / mode
# -------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-fallback-key-for-dev")
DEBUG = _env_bool("DEBUG")

ALLOWED_HOSTS: list[str] = _env_list("ALLOWED_HOSTS", ["127.0.0.1", "localhost"])

# -------------------------
# Apps
# -------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    # WhiteNoise serves static files in dev too
    "whitenoise.runserver_nostatic",
    "django.contrib.staticfiles",

    # third party
    "rest_framework",
    "django_filters",
    "corsheaders",

    # local app
    "shop.apps.ShopConfig",
]

# -------------------------
# Middlewares
# -------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",          # before CommonMiddleware
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",     # right after Security
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "storefront.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
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

WSGI_APPLICATION = "storefront.wsgi.application"

# -------------------------
# Database (prod/dev)
# -------------------------
DATABASES = {
    "default": dj_database_url.config(
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
        ssl_require=_env_bool("DATABASE_SSL_REQUIRE"),
    )
}

# -------------------------
# Password validation (defaults)
# -------------------------
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# -------------------------
# Locale / time zone
# -------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -------------------------
# Static files
# -------------------------
STATIC_URL = "/static/"
STATIC_ROOT = os.path.join(BASE_DIR, "staticfiles")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        # Manifest (compress + hash) outside DEBUG
        "BACKEND": (
            "whitenoise.storage.CompressedManifestStaticFilesStorage"
            if not DEBUG
            else "django.contrib.staticfiles.storage.StaticFilesStorage"
        ),
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -------------------------
# DRF (auth + uniform error envelope)
# -------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "shop.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
    ],
    "EXCEPTION_HANDLER": "shop.errors.envelope_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

# -------------------------
# JWT / shop knobs
# -------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "") or SECRET_KEY
JWT_ALGORITHM = "HS256"
JWT_TTL_HOURS = _env_int("JWT_TTL_HOURS", 24)

LOW_STOCK_THRESHOLD = _env_int("LOW_STOCK_THRESHOLD", 5)
CHECKOUT_MAX_ATTEMPTS = _env_int("CHECKOUT_MAX_ATTEMPTS", 3)
ENABLE_SEED = _env_bool("ENABLE_SEED")

# -------------------------
# CORS / CSRF
# -------------------------
_DEV_ORIGINS = [
    "http://localhost:5173", "http://127.0.0.1:5173",
    "http://localhost:3000", "http://127.0.0.1:3000",
]

CORS_ALLOWED_ORIGINS = _env_list("CORS_ALLOWED_ORIGINS", _DEV_ORIGINS)
CSRF_TRUSTED_ORIGINS = _env_list("CSRF_TRUSTED_ORIGINS", _DEV_ORIGINS)
CORS_ALLOW_CREDENTIALS = False  # bearer tokens, no cookies

# -------------------------
# Security (production)
# -------------------------
if _env_bool("SECURE_SSL_REDIRECT"):
    SECURE_SSL_REDIRECT = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# -------------------------
# Logging
# -------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
        "shop": {"level": LOG_LEVEL, "propagate": True},
    },
}
