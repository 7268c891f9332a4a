"""
Catalog listing service.

Runs a storefront product query end to end:
1. Build and execute the policy-filtered product query
2. Batch-load every source listing of the returned products
3. Pick one listing per product (source selection)
4. Collapse same-title listings (title dedupe)
"""

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aspcatalog.catalog.listing import map_product
from aspcatalog.catalog.query_builder import ProductQueryBuilder
from aspcatalog.db.models import SourceListing
from aspcatalog.dedupe.title_dedupe import dedupe
from aspcatalog.metrics import record_dedupe, record_selection
from aspcatalog.policy.filters import StorefrontContext
from aspcatalog.selection.source_selector import select_sources

logger = logging.getLogger(__name__)


class CatalogQueryService:
    """High-level product listing service for one storefront deployment."""

    def __init__(self, query_builder: ProductQueryBuilder | None = None, metrics_enabled: bool = True):
        self.query_builder = query_builder or ProductQueryBuilder()
        self.metrics_enabled = metrics_enabled
        self.logger = logger

    async def load_sources(
        self, db: AsyncSession, product_ids: Sequence[int]
    ) -> Dict[int, List[SourceListing]]:
        """Every listing of the given products, in insertion order, keyed by product id."""
        sources_by_product: Dict[int, List[SourceListing]] = {pid: [] for pid in product_ids}
        if not product_ids:
            return sources_by_product

        result = await db.execute(
            select(SourceListing)
            .where(SourceListing.product_id.in_(list(product_ids)))
            .order_by(SourceListing.id)
        )
        for source in result.scalars().all():
            sources_by_product[source.product_id].append(source)
        return sources_by_product

    async def list_products(
        self, db: AsyncSession, context: StorefrontContext, **filters
    ) -> Dict[str, Any]:
        """
        List products for a storefront.

        Database errors propagate to the caller.

        Returns:
            Dict containing products, selection diagnostics and query info
        """
        start_time = time.time()

        try:
            query, metadata = self.query_builder.build_product_list_query(
                site_mode=context.site_mode, brand=context.brand, **filters
            )
            result = await db.execute(query)
            products = list(result.scalars().all())

            # Check for next page (we fetched limit + 1)
            has_next = len(products) > metadata["limit"]
            if has_next:
                products = products[: metadata["limit"]]

            sources_by_product = await self.load_sources(db, [p.id for p in products])
        except Exception as e:
            self.logger.error(f"Product listing failed: {e}", exc_info=True)
            raise

        selection = select_sources(
            sources_by_product,
            context.site_mode,
            preferred_providers=context.preferred_providers,
            brand=context.brand,
        )

        listings = [
            map_product(product, selection.selected[product.id])
            for product in products
            if product.id in selection.selected
        ]
        deduped = dedupe(listings, context.site_mode)
        collapsed = len(listings) - len(deduped)

        diagnostics = selection.diagnostics
        if self.metrics_enabled:
            record_selection(
                context.site_mode.value,
                matched=diagnostics.matched,
                fallback=diagnostics.fallback,
                skipped=diagnostics.skipped,
                selected=len(selection.selected),
            )
            record_dedupe(context.site_mode.value, collapsed)

        response_time = int((time.time() - start_time) * 1000)
        if collapsed:
            self.logger.info(
                f"Collapsed {collapsed} duplicate-title listings ({context.site_mode.value})"
            )

        return {
            "products": deduped,
            "pagination": {
                "has_next": has_next,
                "limit": metadata["limit"],
                "offset": metadata["offset"],
            },
            "selection": asdict(diagnostics),
            "query_info": {
                "site_mode": metadata["site_mode"],
                "filter_count": metadata["filter_count"],
                "sort_field": metadata["sort_field"],
                "response_time_ms": response_time,
                "total_results": len(deduped),
                "collapsed": collapsed,
            },
        }
