from enum import StrEnum


class SyncScope(StrEnum):
    # User scopes
    ALERTS_READ = "alerts:read"  # list own alerts
    ALERTS_WRITE = "alerts:write"  # mark own alerts read

    # Admin scopes
    ADMIN = "admin:sync"
    ADMIN_MAINTENANCE = "admin:sync:maintenance"
