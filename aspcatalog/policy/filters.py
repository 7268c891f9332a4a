"""Storefront visibility and provider filters.

Each builder returns a rule (for in-memory evaluation) and has a *_predicate
twin returning the compiled SQL clause. Site mode and brand are always passed
in; nothing here reads configuration.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.sql.elements import ColumnElement

from aspcatalog.policy.compiler import compile_rule
from aspcatalog.policy.rules import Exclusive, HasSource, Not, Rule, SiteMode
from aspcatalog.providers.normalizer import normalize_asp_name
from aspcatalog.providers.registry import ASP_REGISTRY, VALID_PROVIDER_IDS

logger = logging.getLogger(__name__)

DEFAULT_BRAND = "fanza"


class FilterMode(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class StorefrontContext:
    """Per-deployment storefront policy, threaded through every call."""

    site_mode: SiteMode = SiteMode.ALL
    brand: str = DEFAULT_BRAND
    preferred_providers: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_settings(cls, settings) -> "StorefrontContext":
        return cls(
            site_mode=SiteMode(settings.site_mode),
            brand=normalize_asp_name(settings.brand_provider),
            preferred_providers=tuple(settings.preferred_providers),
        )


def visibility_rule(site_mode: SiteMode, brand: str = DEFAULT_BRAND) -> Rule:
    """
    Contractual visibility rule for a storefront.

    single-brand-only: the product must have a listing from the brand.
    all: hide products listed *only* by the brand; products the brand
    shares with other networks stay visible.
    """
    brand_id = normalize_asp_name(brand)
    if SiteMode(site_mode) == SiteMode.SINGLE_BRAND_ONLY:
        return HasSource({brand_id})
    return Not(Exclusive(brand_id))


def visibility_predicate(site_mode: SiteMode, brand: str = DEFAULT_BRAND) -> ColumnElement[bool]:
    """SQL clause for visibility_rule()."""
    return compile_rule(visibility_rule(site_mode, brand))


def expand_providers(providers: Iterable[str]) -> set[str]:
    """
    Map requested provider names to onboarded canonical ids.

    Names that are not in the registry cannot be folded into a provider
    bucket yet; they are dropped and logged.
    """
    expanded = set()
    for provider in providers:
        provider_id = normalize_asp_name(provider)
        if provider_id in VALID_PROVIDER_IDS:
            expanded.add(provider_id)
        elif provider:
            logger.warning(f"Ignoring provider filter for unregistered ASP: {provider!r}")
    return expanded


def provider_filter_rule(
    providers: Iterable[str],
    mode: FilterMode = FilterMode.INCLUDE,
) -> Optional[Rule]:
    """
    Existential provider filter.

    Args:
        providers: Requested provider names, in any known spelling
        mode: include (has any of them) or exclude (has none of them)

    Returns:
        Rule, or None when no requested provider is onboarded
    """
    provider_ids = expand_providers(providers)
    if not provider_ids:
        return None
    rule = HasSource(provider_ids)
    if FilterMode(mode) == FilterMode.EXCLUDE:
        return Not(rule)
    return rule


def provider_filter_predicate(
    providers: Iterable[str],
    mode: FilterMode = FilterMode.INCLUDE,
) -> Optional[ColumnElement[bool]]:
    """SQL clause for provider_filter_rule(), or None for a no-op filter."""
    rule = provider_filter_rule(providers, mode)
    return compile_rule(rule) if rule is not None else None


def site_providers(site_mode: SiteMode) -> list[str]:
    """Providers a storefront offers in its provider filter UI, in display order."""
    brand_site = SiteMode(site_mode) == SiteMode.SINGLE_BRAND_ONLY
    entries = [
        e for e in ASP_REGISTRY
        if e.display_order is not None and (e.in_brand_site if brand_site else e.in_general_site)
    ]
    return [e.id for e in sorted(entries, key=lambda e: e.display_order)]
