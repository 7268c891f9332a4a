"""Pick the one source listing a product is rendered with.

Runs after listings are fetched and before they are serialized. The general
storefront must never link to the brand network, so the same visibility rule
the query layer compiles to SQL is evaluated here in memory.
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from aspcatalog.policy.filters import DEFAULT_BRAND, visibility_rule
from aspcatalog.policy.rules import ListingLike, SiteMode, evaluate
from aspcatalog.providers.normalizer import normalize_asp_name

logger = logging.getLogger(__name__)

L = TypeVar("L", bound=ListingLike)


@dataclass
class SelectionDiagnostics:
    """Counters for operational logging; never used for control flow."""

    matched: int = 0  # preferred provider found
    fallback: int = 0  # preference missed, or brand listing missing
    skipped: int = 0  # product dropped (brand-exclusive on the general site)


@dataclass
class SelectionResult(Generic[L]):
    selected: dict[int, L] = field(default_factory=dict)
    diagnostics: SelectionDiagnostics = field(default_factory=SelectionDiagnostics)


def _canonical(listing: ListingLike) -> str:
    return normalize_asp_name(listing.asp_name, listing.affiliate_url)


def select_sources(
    sources_by_product: Mapping[int, Sequence[L]],
    site_mode: SiteMode,
    preferred_providers: Optional[Iterable[str]] = None,
    brand: str = DEFAULT_BRAND,
) -> SelectionResult[L]:
    """
    Choose one listing per product.

    single-brand-only: the brand's listing; if a product has none (it should
    have been filtered upstream) the first listing is used and counted as a
    fallback.

    all: brand listings are never eligible. Products left with no candidate
    are skipped. Otherwise the first candidate from a preferred provider wins
    (matched); without a match the first candidate is used (fallback).

    Args:
        sources_by_product: product id -> that product's listings
        site_mode: Storefront mode
        preferred_providers: Provider names to prefer, in any spelling/case
        brand: Canonical id of the single-brand network

    Returns:
        SelectionResult with the chosen listing per product and counters
    """
    mode = SiteMode(site_mode)
    brand_id = normalize_asp_name(brand)
    preferred = {normalize_asp_name(p) for p in (preferred_providers or ()) if p}
    visible = visibility_rule(mode, brand_id)

    result: SelectionResult[L] = SelectionResult()
    diagnostics = result.diagnostics

    for product_id, sources in sources_by_product.items():
        if not sources:
            diagnostics.skipped += 1
            continue

        if mode == SiteMode.SINGLE_BRAND_ONLY:
            chosen = next((s for s in sources if _canonical(s) == brand_id), None)
            if chosen is None:
                diagnostics.fallback += 1
                logger.warning(
                    f"Product {product_id} has no {brand_id} listing on the brand storefront, "
                    f"falling back to {sources[0].asp_name}"
                )
                chosen = sources[0]
            result.selected[product_id] = chosen
            continue

        candidates = [s for s in sources if _canonical(s) != brand_id]
        if not candidates or not evaluate(visible, sources):
            diagnostics.skipped += 1
            continue

        if preferred:
            chosen = next((s for s in candidates if _canonical(s) in preferred), None)
            if chosen is not None:
                diagnostics.matched += 1
                result.selected[product_id] = chosen
                continue
            diagnostics.fallback += 1

        result.selected[product_id] = candidates[0]

    if preferred or diagnostics.skipped or diagnostics.fallback:
        logger.info(
            f"Source selection ({mode.value}): preferred={','.join(sorted(preferred)) or 'none'} "
            f"matched={diagnostics.matched} fallback={diagnostics.fallback} "
            f"skipped={diagnostics.skipped}"
        )

    return result
