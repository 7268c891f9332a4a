"""Title-based deduplication and price arbitration.

Independent crawls create one CanonicalProduct per ASP when codes do not line
up, so one title can reach a listing response several times. Listings whose
normalized titles collide are collapsed into the cheapest one; in the general
storefront the others are kept as alternative sources.
"""

import re
from dataclasses import replace
from typing import Optional, Sequence

from aspcatalog.catalog.listing import ProductListing
from aspcatalog.policy.rules import SiteMode

_WHITESPACE = re.compile(r"[\s　]+")
_TITLE_SYMBOLS = re.compile(r"[！!？?「」『』【】（）()＆&～~・:：,，。.、]")


def normalize_title(title: Optional[str]) -> str:
    """Grouping key: drop full/half-width whitespace and punctuation, lowercase."""
    if not title:
        return ""
    return _TITLE_SYMBOLS.sub("", _WHITESPACE.sub("", title)).lower()


def dedupe(listings: Sequence[ProductListing], site_mode: SiteMode) -> list[ProductListing]:
    """
    Collapse listings that share a normalized title.

    Within a group the listing with the lowest effective price wins; equal
    prices keep input order (sorted() is stable). In ``all`` mode the winner
    carries the other members as alternative_sources; in
    ``single-brand-only`` mode they are dropped. Winners come back in the
    order they appeared in the input.

    Args:
        listings: Already filtered listings, in display order
        site_mode: Storefront mode

    Returns:
        Deduplicated listings
    """
    groups: dict[str, list[tuple[int, ProductListing]]] = {}
    for index, listing in enumerate(listings):
        groups.setdefault(normalize_title(listing.title), []).append((index, listing))

    keep_alternatives = SiteMode(site_mode) == SiteMode.ALL
    winners: list[tuple[int, ProductListing]] = []

    for members in groups.values():
        ranked = sorted(members, key=lambda member: member[1].effective_price)
        index, winner = ranked[0]
        if keep_alternatives and len(ranked) > 1:
            winner = replace(
                winner,
                alternative_sources=tuple(other.to_alternative() for _, other in ranked[1:]),
            )
        winners.append((index, winner))

    winners.sort(key=lambda member: member[0])
    return [winner for _, winner in winners]
