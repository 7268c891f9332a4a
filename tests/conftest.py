"""Shared fixtures: an in-memory SQLite catalog and listing factories."""

from typing import Optional

import pytest

from aspcatalog.db.models import Base, CanonicalProduct, SourceListing
from aspcatalog.db.session import create_engine_for, create_session_factory

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine():
    """Fresh in-memory database with every table created."""
    engine = create_engine_for(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    session = create_session_factory(db_engine)()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def add_product(db_session):
    """Insert a product with listings given as (asp_name, code, price, sale_price, url) tuples."""

    async def _add(title: str, sources, normalized_product_id: Optional[str] = None):
        product = CanonicalProduct(title=title, normalized_product_id=normalized_product_id)
        db_session.add(product)
        await db_session.flush()
        for asp_name, code, price, sale_price, url in sources:
            db_session.add(
                SourceListing(
                    product_id=product.id,
                    asp_name=asp_name,
                    original_product_id=code,
                    price=price,
                    sale_price=sale_price,
                    affiliate_url=url,
                )
            )
        await db_session.flush()
        return product

    return _add
