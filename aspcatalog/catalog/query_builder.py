"""
Product list query builder.

Provides functionality to:
- Apply the storefront visibility rule as correlated EXISTS clauses
- Apply provider include/exclude filters
- Match product codes across their spelling variations
- Add price/title filters, sorting and offset pagination
"""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import and_, asc, desc, exists, func, or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from aspcatalog.db.models import CanonicalProduct, SourceListing
from aspcatalog.identity.product_codes import generate_variations, to_like_pattern
from aspcatalog.policy.filters import (
    DEFAULT_BRAND,
    FilterMode,
    provider_filter_predicate,
    visibility_predicate,
)
from aspcatalog.policy.rules import SiteMode

logger = logging.getLogger(__name__)


class ProductQueryBuilder:
    """Build product list queries that honour storefront policy."""

    MAX_LIMIT = 100
    MAX_TITLE_LENGTH = 200
    SORT_FIELDS = ("created_at", "release_date", "title", "id", "price")

    def __init__(self):
        self.logger = logger

    def product_code_predicate(self, product_code: str) -> Optional[ColumnElement[bool]]:
        """
        Match a product code in any of its known spellings.

        Checks the catalog code, the codes ASPs list the product under, and a
        separator-tolerant LIKE on the catalog code.
        """
        code = product_code.strip()
        if not code:
            return None

        variations = sorted(generate_variations(code))
        listing = aliased(SourceListing)
        return or_(
            CanonicalProduct.normalized_product_id.in_(variations),
            exists().where(
                listing.product_id == CanonicalProduct.id,
                listing.original_product_id.in_(variations),
            ),
            func.lower(CanonicalProduct.normalized_product_id).like(to_like_pattern(code)),
        )

    def price_predicate(
        self, price_min: Optional[int], price_max: Optional[int]
    ) -> Optional[ColumnElement[bool]]:
        """Some listing's effective price (sale, else list) is within range."""
        if price_min is None and price_max is None:
            return None

        listing = aliased(SourceListing)
        effective = func.coalesce(listing.sale_price, listing.price)
        bounds = [listing.product_id == CanonicalProduct.id]
        if price_min is not None:
            bounds.append(effective >= price_min)
        if price_max is not None:
            bounds.append(effective <= price_max)
        return exists().where(*bounds)

    def _min_price_column(self):
        listing = aliased(SourceListing)
        return (
            select(func.min(func.coalesce(listing.sale_price, listing.price)))
            .where(listing.product_id == CanonicalProduct.id)
            .correlate(CanonicalProduct)
            .scalar_subquery()
        )

    def build_product_list_query(
        self,
        site_mode: SiteMode = SiteMode.ALL,
        brand: str = DEFAULT_BRAND,
        providers: Optional[Iterable[str]] = None,
        exclude_providers: Optional[Iterable[str]] = None,
        product_code: Optional[str] = None,
        title: Optional[str] = None,
        price_min: Optional[int] = None,
        price_max: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[Select, Dict[str, Any]]:
        """
        Build a product list query for one storefront.

        Returns:
            Tuple of (SQLAlchemy query, metadata dict)
        """
        query = select(CanonicalProduct)

        metadata = {
            "site_mode": SiteMode(site_mode).value,
            "filter_count": 0,
            "sort_field": sort_by if sort_by in self.SORT_FIELDS else "created_at",
            "limit": min(max(limit, 1), self.MAX_LIMIT),
            "offset": max(offset, 0),
        }

        # Visibility is contractual and always applied
        conditions = [visibility_predicate(site_mode, brand)]

        if providers:
            include = provider_filter_predicate(providers, FilterMode.INCLUDE)
            if include is not None:
                conditions.append(include)
                metadata["filter_count"] += 1

        if exclude_providers:
            exclude = provider_filter_predicate(exclude_providers, FilterMode.EXCLUDE)
            if exclude is not None:
                conditions.append(exclude)
                metadata["filter_count"] += 1

        if product_code:
            code_condition = self.product_code_predicate(product_code)
            if code_condition is not None:
                conditions.append(code_condition)
                metadata["filter_count"] += 1

        if title:
            title = title.strip()[: self.MAX_TITLE_LENGTH]
            if title:
                conditions.append(CanonicalProduct.title.ilike(f"%{title}%"))
                metadata["filter_count"] += 1

        price_condition = self.price_predicate(price_min, price_max)
        if price_condition is not None:
            conditions.append(price_condition)
            metadata["filter_count"] += 1

        query = query.where(and_(*conditions))

        if metadata["sort_field"] == "price":
            sort_column = self._min_price_column()
        else:
            sort_column = getattr(CanonicalProduct, metadata["sort_field"])
        direction = asc if sort_order == "asc" else desc
        query = query.order_by(direction(sort_column))

        # Deterministic ordering for pagination
        query = query.order_by(CanonicalProduct.id)

        query = query.offset(metadata["offset"]).limit(metadata["limit"] + 1)  # +1 to check for next page

        self.logger.debug(
            f"Built product list query: mode={metadata['site_mode']} "
            f"filters={metadata['filter_count']} sort={metadata['sort_field']}"
        )
        return query, metadata
