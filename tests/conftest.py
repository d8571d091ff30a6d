"""Shared fixtures: an in-memory database per test plus user and asset factories."""

import itertools

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assetflow.core.config import Settings
from assetflow.core.database import Base
from assetflow.models.asset import Asset
import assetflow.models.audit_log  # noqa: F401
import assetflow.models.notification  # noqa: F401
from assetflow.models.enums import AssetStatus, AssetType, UploadType, UserRole, VisibilityLevel
from assetflow.models.user import Company, User
from assetflow.services.container import build_services

_counter = itertools.count(1)


@pytest.fixture
def settings():
    return Settings(api_key="test-key", max_description_length=200, max_tags=5)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def services(session, settings):
    return build_services(session, settings)


@pytest.fixture
def make_company(session):
    async def _make(name=None):
        company = Company(name=name or f"Company {next(_counter)}")
        session.add(company)
        await session.commit()
        return company

    return _make


@pytest.fixture
def make_user(session):
    async def _make(role=UserRole.CONTENT_CREATOR, company=None, name=None, is_active=True):
        n = next(_counter)
        user = User(
            email=f"user{n}@example.com",
            name=name or f"User {n}",
            role=role,
            company_id=company.id if company else None,
            is_active=is_active,
        )
        session.add(user)
        await session.commit()
        return user

    return _make


@pytest.fixture
def make_asset(session):
    async def _make(uploader, **overrides):
        fields = {
            "title": f"Asset {next(_counter)}",
            "asset_type": AssetType.IMAGE,
            "upload_type": UploadType.SEO,
            "status": AssetStatus.DRAFT,
            "visibility": VisibilityLevel.ADMIN_ONLY,
            "storage_url": "s3://bucket/asset.png",
            "uploader_id": uploader.id,
        }
        fields.update(overrides)
        asset = Asset(**fields)
        session.add(asset)
        await session.commit()
        return asset

    return _make


@pytest.fixture
async def company(make_company):
    return await make_company("Acme")


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
async def creator(make_user, company):
    return await make_user(UserRole.CONTENT_CREATOR, company=company, name="Cory Creator")


@pytest.fixture
async def seo(make_user, company):
    return await make_user(UserRole.SEO_SPECIALIST, company=company, name="Sam Seo")
