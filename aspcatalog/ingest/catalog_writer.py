"""Find-or-create canonical products for incoming crawl records.

Crawlers hand over one RawCrawlRecord per scraped listing. The record's code is
expanded into its spelling variations and matched against the catalog; when
nothing matches a new CanonicalProduct is created. The ASP's own listing is then
upserted on (product_id, asp_name).

No locks are taken: concurrent crawlers rely on read-committed isolation and
on the unique constraints of the two tables.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aspcatalog.db.models import CanonicalProduct, SourceListing
from aspcatalog.config import settings
from aspcatalog.errors import InvalidCrawlRecordError
from aspcatalog.identity.product_codes import (
    CodeFamily,
    build_code_families,
    format_code_for_display,
    generate_variations,
    strip_known_prefix,
)
from aspcatalog.logging_config import get_logger
from aspcatalog.metrics import record_product_resolved

logger = get_logger(__name__, component="catalog_writer")


@dataclass
class RawCrawlRecord:
    """One listing as scraped from an ASP."""

    title: str
    asp_name: str
    original_product_id: str
    affiliate_url: Optional[str] = None
    price: Optional[int] = None
    sale_price: Optional[int] = None
    is_subscription: bool = False
    data_source: Optional[str] = None
    release_date: Optional[date] = None
    thumbnail_url: Optional[str] = None


def validate_record(record: RawCrawlRecord) -> None:
    """Raise InvalidCrawlRecordError when required fields are blank."""
    missing = [
        name
        for name in ("title", "asp_name", "original_product_id")
        if not (getattr(record, name) or "").strip()
    ]
    if missing:
        raise InvalidCrawlRecordError(
            f"Crawl record from {record.asp_name or '?'} is missing {', '.join(missing)}"
        )


def canonical_code(code: str) -> str:
    """
    Catalog-wide code stored as normalized_product_id.

    ASP prefixes are dropped only when the remainder is a label code
    (contains letters); bare numbers are per-site and keep their prefix.
    """
    trimmed = code.strip()
    stripped = strip_known_prefix(trimmed)
    base = stripped if re.search(r"[A-Za-z]", stripped) else trimmed
    return format_code_for_display(base) or trimmed.upper()


async def find_product_by_code(
    session: AsyncSession,
    code: str,
    families: Optional[Sequence[CodeFamily]] = None,
) -> Optional[CanonicalProduct]:
    """
    Find the canonical product a code refers to.

    Looks at normalized_product_id first (canonical form or any variation),
    then at the codes ASPs were crawled under. Families default to the ones
    built for the configured brand code tag.
    """
    if families is None:
        families = build_code_families(settings.brand_code_tag)
    variations = generate_variations(code, families)
    keys = sorted(variations | {canonical_code(code)})

    result = await session.execute(
        select(CanonicalProduct)
        .where(CanonicalProduct.normalized_product_id.in_(keys))
        .order_by(CanonicalProduct.id)
        .limit(1)
    )
    product = result.scalars().first()
    if product is not None:
        return product

    result = await session.execute(
        select(CanonicalProduct)
        .join(SourceListing, SourceListing.product_id == CanonicalProduct.id)
        .where(SourceListing.original_product_id.in_(sorted(variations)))
        .order_by(CanonicalProduct.id)
        .limit(1)
    )
    return result.scalars().first()


async def find_or_create_product(
    session: AsyncSession,
    record: RawCrawlRecord,
    families: Optional[Sequence[CodeFamily]] = None,
) -> tuple[CanonicalProduct, bool]:
    """
    Resolve a crawl record to its canonical product.

    Returns:
        (product, created)
    """
    validate_record(record)

    product = await find_product_by_code(session, record.original_product_id, families)
    if product is not None:
        # Re-crawl: refresh descriptive fields, never the catalog code
        product.title = record.title
        if record.thumbnail_url:
            product.default_thumbnail_url = record.thumbnail_url
        if record.release_date:
            product.release_date = record.release_date
        record_product_resolved(created=False)
        return product, False

    product = CanonicalProduct(
        normalized_product_id=canonical_code(record.original_product_id),
        title=record.title,
        release_date=record.release_date,
        default_thumbnail_url=record.thumbnail_url,
    )
    session.add(product)
    await session.flush()

    logger.info(
        f"Created product {product.id} ({product.normalized_product_id}) "
        f"from {record.asp_name} code {record.original_product_id}"
    )
    record_product_resolved(created=True)
    return product, True


async def upsert_source_listing(
    session: AsyncSession, product: CanonicalProduct, record: RawCrawlRecord
) -> SourceListing:
    """Insert or update the listing for (product, asp_name)."""
    result = await session.execute(
        select(SourceListing).where(
            SourceListing.product_id == product.id,
            SourceListing.asp_name == record.asp_name,
        )
    )
    listing = result.scalars().first()

    if listing is None:
        listing = SourceListing(product_id=product.id, asp_name=record.asp_name)
        session.add(listing)

    listing.original_product_id = record.original_product_id
    listing.affiliate_url = record.affiliate_url
    listing.price = record.price
    listing.sale_price = record.sale_price
    listing.is_subscription = record.is_subscription
    listing.data_source = record.data_source

    await session.flush()
    return listing


async def ingest_record(
    session: AsyncSession,
    record: RawCrawlRecord,
    families: Optional[Sequence[CodeFamily]] = None,
) -> SourceListing:
    """Resolve a crawl record and upsert its listing. The caller commits."""
    product, _ = await find_or_create_product(session, record, families)
    return await upsert_source_listing(session, product, record)
