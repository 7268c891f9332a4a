"""
Tests for crawl record ingestion: find-or-create and listing upsert.
"""

from datetime import date

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select

from aspcatalog.db.models import CanonicalProduct, SourceListing
from aspcatalog.errors import CatalogError, InvalidCrawlRecordError
from aspcatalog.identity.product_codes import build_code_families
from aspcatalog.ingest.catalog_writer import (
    RawCrawlRecord,
    canonical_code,
    find_or_create_product,
    find_product_by_code,
    ingest_record,
    validate_record,
)


def record(code, asp_name="MGS", title="Summer Love", **kwargs):
    return RawCrawlRecord(title=title, asp_name=asp_name, original_product_id=code, **kwargs)


def resolved_count(action):
    return REGISTRY.get_sample_value("catalog_products_resolved_total", {"action": action}) or 0


class TestCanonicalCode:
    """Test the catalog-wide code stored on products."""

    def test_label_codes(self):
        assert canonical_code("MIDE-001") == "MIDE-1"
        assert canonical_code("mide00001") == "MIDE-1"
        assert canonical_code("FANZA-mide00001") == "MIDE-1"
        assert canonical_code("259LUXU-1234") == "LUXU-1234"

    def test_numeric_codes_keep_site_prefix(self):
        assert canonical_code("HEYZO-1234") == "HEYZO-1234"
        assert canonical_code("CARIBBEAN-1234") != canonical_code("HEYZO-1234")

    def test_unparseable_code(self):
        assert canonical_code("123456_01") == "123456_01"


class TestValidation:
    """Test crawl record validation."""

    def test_missing_fields_rejected(self):
        with pytest.raises(InvalidCrawlRecordError, match="original_product_id"):
            validate_record(record("  "))
        with pytest.raises(InvalidCrawlRecordError, match="title"):
            validate_record(record("MIDE-001", title=""))
        with pytest.raises(CatalogError):
            validate_record(record("MIDE-001", asp_name=""))

    def test_valid_record(self):
        validate_record(record("MIDE-001"))


class TestFindOrCreate:
    """Test product resolution against the catalog."""

    async def test_creates_product_once_across_spellings(self, db_session):
        created_before = resolved_count("created")

        product, created = await find_or_create_product(db_session, record("MIDE-001", "MGS"))
        assert created
        assert product.normalized_product_id == "MIDE-1"

        again, created = await find_or_create_product(
            db_session, record("FANZA-mide00001", "FANZA", title="Summer Love (FANZA)")
        )
        assert not created
        assert again.id == product.id
        assert again.title == "Summer Love (FANZA)"

        count = await db_session.scalar(select(func.count()).select_from(CanonicalProduct))
        assert count == 1
        assert resolved_count("created") == created_before + 1

    async def test_match_via_source_code(self, db_session, add_product):
        existing = await add_product("Legacy", [("DUGA", "abc123", 500, None, None)])

        found = await find_product_by_code(db_session, "ABC-123")
        assert found.id == existing.id

    async def test_unknown_code_not_found(self, db_session):
        assert await find_product_by_code(db_session, "ZZZ-999") is None

    async def test_recrawl_refreshes_optional_fields_only_when_present(self, db_session):
        product, _ = await find_or_create_product(
            db_session,
            record("SSIS-865", release_date=date(2024, 1, 5), thumbnail_url="https://img/1.jpg"),
        )
        await find_or_create_product(db_session, record("ssis00865", "FANZA"))

        assert product.release_date == date(2024, 1, 5)
        assert product.default_thumbnail_url == "https://img/1.jpg"

    async def test_brand_tag_families(self, db_session):
        families = build_code_families("ACME")
        listing = await ingest_record(db_session, record("ACME-mide00001", "ACME"), families)

        found = await find_product_by_code(db_session, "MIDE-001", families)
        assert found.id == listing.product_id
        assert await find_product_by_code(db_session, "MIDE-001") is None

    async def test_invalid_record_creates_nothing(self, db_session):
        with pytest.raises(InvalidCrawlRecordError):
            await find_or_create_product(db_session, record(""))
        count = await db_session.scalar(select(func.count()).select_from(CanonicalProduct))
        assert count == 0


class TestIngestRecord:
    """Test listing upsert."""

    async def test_one_listing_per_asp(self, db_session):
        await ingest_record(db_session, record("MIDE-001", "MGS", price=1500))
        listing = await ingest_record(
            db_session, record("MIDE-001", "MGS", price=1500, sale_price=980, data_source="api")
        )
        await ingest_record(db_session, record("mide00001", "FANZA", price=1800))

        rows = (await db_session.execute(select(SourceListing).order_by(SourceListing.id))).scalars().all()
        assert [row.asp_name for row in rows] == ["MGS", "FANZA"]
        assert rows[0].id == listing.id
        assert rows[0].sale_price == 980
        assert rows[0].data_source == "api"
        assert rows[0].product_id == rows[1].product_id
