"""
Authoritative store adapter.

``TenantStore`` is the only way the identity layer reaches persistent data.
Every query on user or feature data is scoped by tenant id. Implementations
raise ``StoreError`` on failure; callers decide how that degrades.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from growplate.platform.auth.models import NewUser, UserRecord
from growplate.platform.auth.rbac import Role
from growplate.platform.db import TenantFeatureRow, TenantRow, UserRow
from growplate.platform.tenant.models import Tenant

logger = structlog.get_logger(__name__)

# drivers raise refused connections and timeouts unwrapped
STORE_FAILURES = (SQLAlchemyError, OSError, TimeoutError)


class StoreError(Exception):
    """The store could not answer."""

    pass


class DuplicateEmailError(StoreError):
    """A user with this email already exists in the tenant."""

    pass


class TenantStore(ABC):
    """Tenant, user and feature persistence."""

    @abstractmethod
    async def find_by_domain(self, domain: str) -> Tenant | None:
        pass

    @abstractmethod
    async def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        pass

    @abstractmethod
    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        pass

    @abstractmethod
    async def find_user_by_email(self, tenant_id: str, email: str) -> UserRecord | None:
        pass

    @abstractmethod
    async def find_user_by_id(self, tenant_id: str, user_id: str) -> UserRecord | None:
        pass

    @abstractmethod
    async def create_user(self, user: NewUser) -> UserRecord:
        """Insert a user. Raises ``DuplicateEmailError`` on (tenant, email) conflict."""
        pass

    @abstractmethod
    async def list_features(self, tenant_id: str) -> dict[str, bool]:
        pass

    @abstractmethod
    async def upsert_feature(self, tenant_id: str, name: str, enabled: bool) -> None:
        pass

    @abstractmethod
    async def insert_feature_if_absent(self, tenant_id: str, name: str, enabled: bool) -> None:
        pass


class InMemoryTenantStore(TenantStore):
    """Dictionary-backed store for development and tests."""

    def __init__(self, tenants: list[Tenant] | None = None) -> None:
        self._tenants: dict[str, Tenant] = {}
        self._users: dict[tuple[str, str], UserRecord] = {}
        self._features: dict[tuple[str, str], bool] = {}
        for tenant in tenants or []:
            self.add_tenant(tenant)

    def add_tenant(self, tenant: Tenant) -> Tenant:
        self._tenants[tenant.id] = tenant
        return tenant

    def _loaded(self, tenant: Tenant | None) -> Tenant | None:
        if tenant is None:
            return None
        enabled = sorted(
            name for (tid, name), on in self._features.items() if tid == tenant.id and on
        )
        return tenant.model_copy(update={"enabled_features": enabled})

    async def find_by_domain(self, domain: str) -> Tenant | None:
        domain = domain.lower()
        return self._loaded(next((t for t in self._tenants.values() if t.domain == domain), None))

    async def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        subdomain = subdomain.lower()
        return self._loaded(
            next((t for t in self._tenants.values() if t.subdomain == subdomain), None)
        )

    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        return self._loaded(self._tenants.get(tenant_id))

    async def find_user_by_email(self, tenant_id: str, email: str) -> UserRecord | None:
        return next(
            (
                u
                for u in self._users.values()
                if u.tenant_id == tenant_id and u.email == email.lower()
            ),
            None,
        )

    async def find_user_by_id(self, tenant_id: str, user_id: str) -> UserRecord | None:
        return self._users.get((tenant_id, user_id))

    async def create_user(self, user: NewUser) -> UserRecord:
        if await self.find_user_by_email(user.tenant_id, user.email):
            raise DuplicateEmailError(f"duplicate email in tenant {user.tenant_id}")
        record = UserRecord(
            id=str(uuid4()),
            created_at=datetime.now(UTC),
            **user.model_dump(),
        )
        self._users[(record.tenant_id, record.id)] = record
        return record

    async def list_features(self, tenant_id: str) -> dict[str, bool]:
        return {name: enabled for (tid, name), enabled in self._features.items() if tid == tenant_id}

    async def upsert_feature(self, tenant_id: str, name: str, enabled: bool) -> None:
        self._features[(tenant_id, name)] = enabled

    async def insert_feature_if_absent(self, tenant_id: str, name: str, enabled: bool) -> None:
        self._features.setdefault((tenant_id, name), enabled)


def _tenant_from_row(row: TenantRow, enabled_features: list[str]) -> Tenant:
    return Tenant(
        id=row.id,
        name=row.name,
        domain=row.domain,
        subdomain=row.subdomain,
        settings=dict(row.settings or {}),
        enabled_features=enabled_features,
        is_active=row.is_active,
    )


def _user_from_row(row: UserRow) -> UserRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # sqlite drops the offset
        created_at = created_at.replace(tzinfo=UTC)
    return UserRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        email=row.email,
        password_hash=row.password_hash,
        first_name=row.first_name,
        last_name=row.last_name,
        role=Role(row.role),
        phone=row.phone,
        loyalty_points=row.loyalty_points,
        created_at=created_at,
    )


class SQLAlchemyTenantStore(TenantStore):
    """Store backed by the async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _find_tenant(self, *criteria) -> Tenant | None:
        try:
            async with self._session_factory() as session:
                row = (await session.execute(select(TenantRow).where(*criteria))).scalar_one_or_none()
                if row is None:
                    return None
                stmt = (
                    select(TenantFeatureRow.feature_name)
                    .where(TenantFeatureRow.tenant_id == row.id, TenantFeatureRow.enabled.is_(True))
                    .order_by(TenantFeatureRow.feature_name)
                )
                features = list((await session.execute(stmt)).scalars())
        except STORE_FAILURES as e:
            logger.error("store.tenant_query_failed", error=str(e))
            raise StoreError("tenant query failed") from e
        return _tenant_from_row(row, features)

    async def find_by_domain(self, domain: str) -> Tenant | None:
        return await self._find_tenant(TenantRow.domain == domain.lower())

    async def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        return await self._find_tenant(TenantRow.subdomain == subdomain.lower())

    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        return await self._find_tenant(TenantRow.id == tenant_id)

    async def _find_user(self, tenant_id: str, *criteria) -> UserRecord | None:
        try:
            async with self._session_factory() as session:
                stmt = select(UserRow).where(UserRow.tenant_id == tenant_id, *criteria)
                row = (await session.execute(stmt)).scalar_one_or_none()
        except STORE_FAILURES as e:
            logger.error("store.user_query_failed", tenant_id=tenant_id, error=str(e))
            raise StoreError("user query failed") from e
        return _user_from_row(row) if row else None

    async def find_user_by_email(self, tenant_id: str, email: str) -> UserRecord | None:
        return await self._find_user(tenant_id, UserRow.email == email.lower())

    async def find_user_by_id(self, tenant_id: str, user_id: str) -> UserRecord | None:
        return await self._find_user(tenant_id, UserRow.id == user_id)

    async def create_user(self, user: NewUser) -> UserRecord:
        row = UserRow(
            tenant_id=user.tenant_id,
            email=user.email.lower(),
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role.value,
            phone=user.phone,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except IntegrityError as e:
            raise DuplicateEmailError(f"duplicate email in tenant {user.tenant_id}") from e
        except STORE_FAILURES as e:
            logger.error("store.user_insert_failed", tenant_id=user.tenant_id, error=str(e))
            raise StoreError("user insert failed") from e
        return _user_from_row(row)

    async def list_features(self, tenant_id: str) -> dict[str, bool]:
        try:
            async with self._session_factory() as session:
                stmt = select(TenantFeatureRow.feature_name, TenantFeatureRow.enabled).where(
                    TenantFeatureRow.tenant_id == tenant_id
                )
                rows = (await session.execute(stmt)).all()
        except STORE_FAILURES as e:
            logger.error("store.feature_query_failed", tenant_id=tenant_id, error=str(e))
            raise StoreError("feature query failed") from e
        return {name: bool(enabled) for name, enabled in rows}

    async def _write_feature(
        self, tenant_id: str, name: str, enabled: bool, overwrite: bool
    ) -> None:
        try:
            async with self._session_factory() as session:
                insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
                stmt = insert(TenantFeatureRow).values(
                    tenant_id=tenant_id,
                    feature_name=name,
                    enabled=enabled,
                    created_at=datetime.now(UTC),
                    updated_at=datetime.now(UTC),
                )
                if overwrite:
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["tenant_id", "feature_name"],
                        set_={"enabled": enabled, "updated_at": datetime.now(UTC)},
                    )
                else:
                    stmt = stmt.on_conflict_do_nothing(
                        index_elements=["tenant_id", "feature_name"]
                    )
                await session.execute(stmt)
                await session.commit()
        except STORE_FAILURES as e:
            logger.error(
                "store.feature_write_failed", tenant_id=tenant_id, feature=name, error=str(e)
            )
            raise StoreError("feature write failed") from e

    async def upsert_feature(self, tenant_id: str, name: str, enabled: bool) -> None:
        await self._write_feature(tenant_id, name, enabled, overwrite=True)

    async def insert_feature_if_absent(self, tenant_id: str, name: str, enabled: bool) -> None:
        await self._write_feature(tenant_id, name, enabled, overwrite=False)
