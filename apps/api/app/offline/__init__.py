from app.offline.manager import (
    CONTENT_ENDPOINTS,
    CREATE_DRILL,
    SAVE_CODE,
    SYNC_CONTENT,
    OfflineManager,
)
from app.offline.platform import Platform, ProbePlatform, StaticPlatform
from app.offline.records import (
    CacheEntry,
    LocalContentRecord,
    OfflineStatus,
    QueuedAction,
    ReplayReport,
)
from app.offline.store import SqliteOfflineStore
from app.offline.transport import HttpTransport, RemoteTransport

__all__ = [
    "CONTENT_ENDPOINTS",
    "CREATE_DRILL",
    "SAVE_CODE",
    "SYNC_CONTENT",
    "CacheEntry",
    "HttpTransport",
    "LocalContentRecord",
    "OfflineManager",
    "OfflineStatus",
    "Platform",
    "ProbePlatform",
    "QueuedAction",
    "RemoteTransport",
    "ReplayReport",
    "SqliteOfflineStore",
    "StaticPlatform",
]
