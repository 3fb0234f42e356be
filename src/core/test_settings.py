"""Settings for the test suite: in-memory SQLite and no automatic seeding."""

from .settings import *  # noqa: F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Tests seed explicitly so they control the registry contents.
AUTHZ_SEED_ON_MIGRATE = False
AUTHZ_LOG_GRANTS = False
