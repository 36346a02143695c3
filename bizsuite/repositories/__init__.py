from bizsuite.repositories.platform import PlatformStore, SqlPlatformStore
from bizsuite.repositories.tenant import SqlTenantStore, TenantStore

__all__ = [
    "PlatformStore",
    "SqlPlatformStore",
    "SqlTenantStore",
    "TenantStore",
]
