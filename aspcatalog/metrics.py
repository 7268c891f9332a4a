"""Prometheus metrics for the catalog identity engine."""

from prometheus_client import Counter, Info

app_info = Info("asp_catalog", "ASP catalog identity engine info")
app_info.info({"version": "0.1.0", "name": "asp-catalog"})

# Source selection outcomes (matched / fallback / skipped / selected)
source_selection_total = Counter(
    "source_selection_total",
    "Source listings chosen for materialization, by outcome",
    ["site_mode", "outcome"],
)

# Listings folded into a cheaper listing of the same title
dedupe_collapsed_listings_total = Counter(
    "dedupe_collapsed_listings_total",
    "Listings removed from responses by title deduplication",
    ["site_mode"],
)

# Crawler find-or-create results
catalog_products_resolved_total = Counter(
    "catalog_products_resolved_total",
    "Crawl records resolved to a canonical product",
    ["action"],
)


def record_selection(site_mode: str, matched: int, fallback: int, skipped: int, selected: int):
    """Record the diagnostics of one source selection pass."""
    for outcome, count in (
        ("matched", matched),
        ("fallback", fallback),
        ("skipped", skipped),
        ("selected", selected),
    ):
        if count:
            source_selection_total.labels(site_mode=site_mode, outcome=outcome).inc(count)


def record_dedupe(site_mode: str, collapsed: int):
    """Record how many listings a dedupe pass folded away."""
    if collapsed:
        dedupe_collapsed_listings_total.labels(site_mode=site_mode).inc(collapsed)


def record_product_resolved(created: bool):
    """Record a crawl record being matched to, or creating, a product."""
    action = "created" if created else "matched"
    catalog_products_resolved_total.labels(action=action).inc()
