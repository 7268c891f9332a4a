"""ASP name normalization.

Maps the raw asp_name values crawlers emit (mixed case, native-language names,
legacy aliases) to canonical provider ids. Aggregator rows such as ``DTI`` only
reveal their sub-brand through the affiliate URL, so both fields are consulted.
Lookups ignore case. Unknown names pass through lowercased.

The same mapping is available as a SQLAlchemy CASE expression so the query
layer and in-memory code normalize identically.
"""

from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.sql.elements import ColumnElement

from aspcatalog.providers.registry import (
    AGGREGATOR_IDS,
    ALIAS_TO_PROVIDER,
    ASP_REGISTRY,
    DISPLAY_NAMES,
    PROVIDER_LABELS,
    PROVIDER_TO_RAW_NAMES,
    PROVIDERS,
    URL_PATTERNS,
    VALID_PROVIDER_IDS,
)

# Upper-cased raw aggregator name -> aggregator id
_AGGREGATOR_BY_NAME: dict[str, str] = {
    name.upper(): agg for agg in sorted(AGGREGATOR_IDS) for name in PROVIDERS[agg].db_names
}


def _sub_brand_patterns(aggregator_id: str) -> list[tuple[str, str]]:
    return [
        (pattern, provider_id)
        for pattern, provider_id in URL_PATTERNS.items()
        if PROVIDERS[provider_id].parent_id == aggregator_id
    ]


def resolve_sub_brand(aggregator_id: str, affiliate_url: Optional[str]) -> str:
    """Pick the sub-brand an aggregator URL points at, or the aggregator itself."""
    if affiliate_url:
        url = affiliate_url.lower()
        for pattern, provider_id in _sub_brand_patterns(aggregator_id):
            if pattern in url:
                return provider_id
    return aggregator_id


def normalize_asp_name(asp_name: Optional[str], affiliate_url: Optional[str] = None) -> str:
    """
    Normalize a raw ASP name to its canonical provider id.

    Args:
        asp_name: Raw asp_name as stored by the crawler
        affiliate_url: Listing URL, used to resolve aggregator sub-brands

    Returns:
        Canonical provider id, or the lowercased input for unknown names
    """
    if not asp_name:
        return ""

    key = asp_name.upper()
    aggregator = _AGGREGATOR_BY_NAME.get(key)
    if aggregator:
        return resolve_sub_brand(aggregator, affiliate_url)

    provider_id = ALIAS_TO_PROVIDER.get(key)
    if provider_id:
        return provider_id

    return asp_name.lower()


def get_display_name(asp_name: str) -> str:
    """Human-facing provider name; unknown names are returned unchanged."""
    return DISPLAY_NAMES.get(normalize_asp_name(asp_name), asp_name)


def get_provider_label(asp_name: str, affiliate_url: Optional[str] = None) -> str:
    """Badge label for a listing's raw asp_name."""
    label = PROVIDER_LABELS.get(asp_name.upper())
    if label:
        return label
    entry = PROVIDERS.get(normalize_asp_name(asp_name, affiliate_url))
    return entry.provider_label if entry else asp_name


def is_valid_asp_name(asp_name: str) -> bool:
    """True when the name (in any known spelling) belongs to an onboarded provider."""
    return bool(asp_name) and normalize_asp_name(asp_name) in VALID_PROVIDER_IDS


def is_aggregator_sub_service(asp_name: str) -> bool:
    """True for an aggregator or any sub-brand sold through one."""
    provider_id = normalize_asp_name(asp_name)
    if provider_id in AGGREGATOR_IDS:
        return True
    entry = PROVIDERS.get(provider_id)
    return entry is not None and entry.parent_id in AGGREGATOR_IDS


def raw_names_for(provider: str) -> tuple[str, ...]:
    """Inverse lookup: every raw asp_name a provider is stored under."""
    return PROVIDER_TO_RAW_NAMES.get(normalize_asp_name(provider), ())


def asp_normalization_expr(asp_col, url_col) -> ColumnElement[str]:
    """
    SQL equivalent of normalize_asp_name over two columns.

    Args:
        asp_col: Column holding the raw asp_name
        url_col: Column holding the affiliate URL

    Returns:
        CASE expression yielding the canonical provider id
    """
    whens = []

    for raw_upper, aggregator_id in _AGGREGATOR_BY_NAME.items():
        url_whens = [
            (func.lower(url_col).like(f"%{pattern}%"), provider_id)
            for pattern, provider_id in _sub_brand_patterns(aggregator_id)
        ]
        resolved = case(*url_whens, else_=aggregator_id) if url_whens else aggregator_id
        whens.append((func.upper(asp_col) == raw_upper, resolved))

    # Group spellings per provider to keep the CASE short. Alias keys are
    # already upper-cased, so the column is compared through upper() too.
    aliases_by_provider: dict[str, list[str]] = {}
    for alias, provider_id in ALIAS_TO_PROVIDER.items():
        if alias in _AGGREGATOR_BY_NAME:
            continue
        aliases_by_provider.setdefault(provider_id, []).append(alias)

    for entry in ASP_REGISTRY:
        aliases = aliases_by_provider.pop(entry.id, None)
        if aliases:
            whens.append((func.upper(asp_col).in_(aliases), entry.id))
    for provider_id, aliases in aliases_by_provider.items():
        whens.append((func.upper(asp_col).in_(aliases), provider_id))

    return case(*whens, else_=func.lower(asp_col))
