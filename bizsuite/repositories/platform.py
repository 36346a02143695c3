"""
Platform store: platform principals and tenant records
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import select

from bizsuite.core.database import create_session_factory
from bizsuite.core.exceptions import RecordConflict
from bizsuite.models.platform import PlatformUser, Tenant
from bizsuite.repositories.base import guarded

SUBSCRIPTION_FIELDS = frozenset({
    "subscription_plan",
    "subscription_status",
    "subscription_ends_at",
    "billing_customer_ref",
    "billing_subscription_ref",
})


class PlatformStore(Protocol):
    """Storage contract for the platform store"""

    async def get_platform_user(self, user_id: int) -> Optional[PlatformUser]: ...

    async def get_platform_user_by_email(self, email: str) -> Optional[PlatformUser]: ...

    async def create_platform_user(self, user: PlatformUser) -> PlatformUser: ...

    async def update_platform_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[PlatformUser]: ...

    async def get_tenant(self, tenant_id: int) -> Optional[Tenant]: ...

    async def get_tenant_by_subdomain(self, subdomain: str) -> Optional[Tenant]: ...

    async def list_tenants(self) -> List[Tenant]: ...

    async def create_tenant(self, tenant: Tenant) -> Tenant: ...

    async def update_tenant(self, tenant_id: int, fields: Dict[str, Any]) -> Optional[Tenant]: ...

    async def update_tenant_subscription(
        self, tenant_id: int, fields: Dict[str, Any], expected_ref: Optional[str]
    ) -> Optional[Tenant]: ...

    async def delete_tenant(self, tenant_id: int) -> bool: ...


class SqlPlatformStore:
    """PlatformStore over the platform database"""

    def __init__(self, engine: AsyncEngine):
        self._sessions = create_session_factory(engine)

    async def get_platform_user(self, user_id: int) -> Optional[PlatformUser]:
        async def _get():
            async with self._sessions() as session:
                return await session.get(PlatformUser, user_id)
        return await guarded("get_platform_user", _get())

    async def get_platform_user_by_email(self, email: str) -> Optional[PlatformUser]:
        async def _get():
            async with self._sessions() as session:
                result = await session.exec(select(PlatformUser).where(PlatformUser.email == email))
                return result.first()
        return await guarded("get_platform_user_by_email", _get())

    async def create_platform_user(self, user: PlatformUser) -> PlatformUser:
        return await guarded("create_platform_user", self._insert(user))

    async def update_platform_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[PlatformUser]:
        return await guarded("update_platform_user", self._update(PlatformUser, user_id, fields))

    async def get_tenant(self, tenant_id: int) -> Optional[Tenant]:
        async def _get():
            async with self._sessions() as session:
                return await session.get(Tenant, tenant_id)
        return await guarded("get_tenant", _get())

    async def get_tenant_by_subdomain(self, subdomain: str) -> Optional[Tenant]:
        async def _get():
            async with self._sessions() as session:
                result = await session.exec(select(Tenant).where(Tenant.subdomain == subdomain))
                return result.first()
        return await guarded("get_tenant_by_subdomain", _get())

    async def list_tenants(self) -> List[Tenant]:
        async def _list():
            async with self._sessions() as session:
                result = await session.exec(select(Tenant).order_by(Tenant.id))
                return list(result.all())
        return await guarded("list_tenants", _list())

    async def create_tenant(self, tenant: Tenant) -> Tenant:
        return await guarded("create_tenant", self._insert(tenant))

    async def update_tenant(self, tenant_id: int, fields: Dict[str, Any]) -> Optional[Tenant]:
        return await guarded("update_tenant", self._update(Tenant, tenant_id, fields))

    async def update_tenant_subscription(
        self, tenant_id: int, fields: Dict[str, Any], expected_ref: Optional[str]
    ) -> Optional[Tenant]:
        """
        Write subscription fields only if the tenant still tracks expected_ref.

        Returns None when the tenant is gone and raises RecordConflict when
        another request changed its provider subscription in the meantime.
        """
        unknown = set(fields) - SUBSCRIPTION_FIELDS
        if unknown:
            raise ValueError(f"Not subscription fields: {sorted(unknown)}")

        async def _update():
            async with self._sessions() as session:
                statement = (
                    update(Tenant)
                    .where(Tenant.id == tenant_id)
                    .where(Tenant.billing_subscription_ref.is_not_distinct_from(expected_ref))
                    .values(**fields, updated_at=datetime.utcnow())
                )
                result = await session.exec(statement)
                await session.commit()

                tenant = await session.get(Tenant, tenant_id)
                if tenant is None:
                    return None
                if result.rowcount == 0:
                    raise RecordConflict("Subscription was changed by another request")
                return tenant
        return await guarded("update_tenant_subscription", _update())

    async def delete_tenant(self, tenant_id: int) -> bool:
        async def _delete():
            async with self._sessions() as session:
                tenant = await session.get(Tenant, tenant_id)
                if tenant is None:
                    return False
                await session.delete(tenant)
                await session.commit()
                return True
        return await guarded("delete_tenant", _delete())

    async def _insert(self, row):
        async with self._sessions() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

    async def _update(self, model, row_id: int, fields: Dict[str, Any]):
        async with self._sessions() as session:
            row = await session.get(model, row_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row
