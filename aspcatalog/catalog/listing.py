"""Listing view types returned to storefront code."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from aspcatalog.db.models import CanonicalProduct, SourceListing
from aspcatalog.providers.normalizer import get_provider_label, normalize_asp_name


@dataclass(frozen=True)
class AlternativeSource:
    """A cheaper-or-equal-elsewhere offer attached to a deduplicated listing."""

    asp_name: str
    product_id: int
    price: Optional[int] = None
    sale_price: Optional[int] = None
    affiliate_url: str = ""


@dataclass(frozen=True)
class ProductListing:
    """One product as rendered by a storefront, backed by a single source listing."""

    id: int
    title: str
    provider: Optional[str] = None  # canonical provider id of the chosen source
    provider_label: Optional[str] = None
    price: Optional[int] = None
    sale_price: Optional[int] = None
    affiliate_url: Optional[str] = None
    normalized_product_id: Optional[str] = None
    original_product_id: Optional[str] = None
    release_date: Optional[date] = None
    image_url: Optional[str] = None
    alternative_sources: Optional[tuple[AlternativeSource, ...]] = None

    @property
    def effective_price(self) -> float:
        """Sale price, else list price, else +inf (always loses price ties)."""
        if self.sale_price is not None:
            return self.sale_price
        if self.price is not None:
            return self.price
        return float("inf")

    def to_alternative(self) -> AlternativeSource:
        return AlternativeSource(
            asp_name=self.provider or "unknown",
            product_id=self.id,
            price=self.price,
            sale_price=self.sale_price,
            affiliate_url=self.affiliate_url or "",
        )


def map_product(product: CanonicalProduct, source: Optional[SourceListing]) -> ProductListing:
    """Build the response view of a product from its selected source listing."""
    if source is None:
        return ProductListing(
            id=product.id,
            title=product.title,
            normalized_product_id=product.normalized_product_id,
            release_date=product.release_date,
            image_url=product.default_thumbnail_url,
        )

    return ProductListing(
        id=product.id,
        title=product.title,
        provider=normalize_asp_name(source.asp_name, source.affiliate_url),
        provider_label=get_provider_label(source.asp_name, source.affiliate_url),
        price=source.price,
        sale_price=source.sale_price,
        affiliate_url=source.affiliate_url,
        normalized_product_id=product.normalized_product_id,
        original_product_id=source.original_product_id,
        release_date=product.release_date,
        image_url=product.default_thumbnail_url,
    )
