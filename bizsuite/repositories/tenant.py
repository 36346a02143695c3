"""
Tenant store: principals inside one tenant's own database

A store instance is bound to the pooled engine the registry handed out for
that tenant, so every query it runs stays inside the tenant's isolation
boundary.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import select

from bizsuite.core.database import create_session_factory
from bizsuite.core.exceptions import SeatLimitReached
from bizsuite.models.tenant_user import TenantUser
from bizsuite.repositories.base import guarded


class TenantStore(Protocol):
    """Storage contract for a tenant store"""

    async def get_user(self, user_id: int) -> Optional[TenantUser]: ...

    async def get_user_by_email(self, email: str) -> Optional[TenantUser]: ...

    async def list_users(self, tenant_id: int) -> List[TenantUser]: ...

    async def count_users(self, tenant_id: int) -> int: ...

    async def create_user(self, user: TenantUser, max_users: Optional[int] = None) -> TenantUser: ...

    async def update_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[TenantUser]: ...

    async def delete_user(self, user_id: int) -> bool: ...


class SqlTenantStore:
    """TenantStore over a pooled tenant engine"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = create_session_factory(engine)

    async def get_user(self, user_id: int) -> Optional[TenantUser]:
        async def _get():
            async with self._sessions() as session:
                return await session.get(TenantUser, user_id)
        return await guarded("get_user", _get())

    async def get_user_by_email(self, email: str) -> Optional[TenantUser]:
        async def _get():
            async with self._sessions() as session:
                result = await session.exec(select(TenantUser).where(TenantUser.email == email))
                return result.first()
        return await guarded("get_user_by_email", _get())

    async def list_users(self, tenant_id: int) -> List[TenantUser]:
        async def _list():
            async with self._sessions() as session:
                result = await session.exec(
                    select(TenantUser).where(TenantUser.tenant_id == tenant_id).order_by(TenantUser.id)
                )
                return list(result.all())
        return await guarded("list_users", _list())

    async def count_users(self, tenant_id: int) -> int:
        async def _count():
            async with self._sessions() as session:
                result = await session.exec(
                    select(func.count()).select_from(TenantUser).where(TenantUser.tenant_id == tenant_id)
                )
                return result.one()
        return await guarded("count_users", _count())

    async def create_user(self, user: TenantUser, max_users: Optional[int] = None) -> TenantUser:
        """
        Insert a user. With max_users set, the seat count is checked in the
        same transaction under a per-tenant advisory lock, so concurrent
        creates cannot overshoot the limit.
        """
        async def _insert():
            async with self._sessions() as session:
                if max_users is not None:
                    await session.exec(select(func.pg_advisory_xact_lock(user.tenant_id)))
                    result = await session.exec(
                        select(func.count()).select_from(TenantUser).where(TenantUser.tenant_id == user.tenant_id)
                    )
                    if result.one() >= max_users:
                        raise SeatLimitReached(f"User limit reached ({max_users})")
                session.add(user)
                await session.commit()
                await session.refresh(user)
                return user
        return await guarded("create_user", _insert())

    async def update_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[TenantUser]:
        async def _update():
            async with self._sessions() as session:
                user = await session.get(TenantUser, user_id)
                if user is None:
                    return None
                for key, value in fields.items():
                    setattr(user, key, value)
                user.updated_at = datetime.utcnow()
                session.add(user)
                await session.commit()
                await session.refresh(user)
                return user
        return await guarded("update_user", _update())

    async def delete_user(self, user_id: int) -> bool:
        async def _delete():
            async with self._sessions() as session:
                user = await session.get(TenantUser, user_id)
                if user is None:
                    return False
                await session.delete(user)
                await session.commit()
                return True
        return await guarded("delete_user", _delete())
