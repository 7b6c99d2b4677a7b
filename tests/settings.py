"""
Django settings for Batchline tests.

Includes all apps needed to run the full Batchline test suite.
"""

SECRET_KEY = "test-secret-key-for-batchline-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "simple_history",
    "rest_framework",
    "batchline",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

ROOT_URLCONF = "batchline.tests.test_api_urls"

USE_TZ = True
TIME_ZONE = "America/Sao_Paulo"

REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
}

# Sources are kept in memory so tests can stock, block and stage pallets
BATCHLINE = {
    "SOURCE_BACKEND": "batchline.adapters.memory.InMemorySourceBackend",
    "AUTO_WEIGH_SECONDS": 0,
}
