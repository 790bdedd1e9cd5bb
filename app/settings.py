import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
TRIGGER_TOKEN = os.environ.get("TRIGGER_TOKEN", "")
APP_SCHEME = os.environ.get("APP_SCHEME", "punchin")
