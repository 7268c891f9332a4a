"""Storefront visibility rules.

Visibility policy is written once as a small rule tree and interpreted two
ways: evaluate() runs it against listings already in memory, and
aspcatalog.policy.compiler.compile_rule() turns it into a SQL boolean clause.
Both interpreters share the provider normalization, so the query layer and
post-fetch code cannot disagree about what a storefront may show.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

from aspcatalog.providers.normalizer import normalize_asp_name


class SiteMode(str, Enum):
    """Which listings a storefront is allowed to surface."""

    ALL = "all"  # every network except items exclusive to the brand
    SINGLE_BRAND_ONLY = "single-brand-only"  # only items the brand lists


class ListingLike(Protocol):
    asp_name: str
    affiliate_url: str | None


class Rule:
    """Base class for rule nodes."""


@dataclass(frozen=True, init=False)
class HasSource(Rule):
    """Product has a listing from any of the given providers."""

    providers: frozenset[str]

    def __init__(self, providers: Iterable[str]):
        object.__setattr__(self, "providers", frozenset(providers))


@dataclass(frozen=True, init=False)
class HasSourceExcept(Rule):
    """Product has a listing from a provider outside the given set."""

    providers: frozenset[str]

    def __init__(self, providers: Iterable[str]):
        object.__setattr__(self, "providers", frozenset(providers))


@dataclass(frozen=True)
class Exclusive(Rule):
    """Product is listed by the provider and by nobody else."""

    provider: str

    def expand(self) -> Rule:
        return And(HasSource({self.provider}), Not(HasSourceExcept({self.provider})))


@dataclass(frozen=True, init=False)
class And(Rule):
    rules: tuple[Rule, ...]

    def __init__(self, *rules: Rule):
        object.__setattr__(self, "rules", tuple(rules))


@dataclass(frozen=True, init=False)
class Or(Rule):
    rules: tuple[Rule, ...]

    def __init__(self, *rules: Rule):
        object.__setattr__(self, "rules", tuple(rules))


@dataclass(frozen=True)
class Not(Rule):
    rule: Rule


@dataclass(frozen=True)
class Always(Rule):
    """Matches every product."""


def canonical_providers(listings: Iterable[ListingLike]) -> set[str]:
    """Canonical provider ids present in a listing set."""
    return {normalize_asp_name(l.asp_name, l.affiliate_url) for l in listings}


def evaluate_names(rule: Rule, providers: set[str]) -> bool:
    """Evaluate a rule against the canonical providers of one product."""
    if isinstance(rule, Always):
        return True
    if isinstance(rule, HasSource):
        return not providers.isdisjoint(rule.providers)
    if isinstance(rule, HasSourceExcept):
        return bool(providers - rule.providers)
    if isinstance(rule, Exclusive):
        return evaluate_names(rule.expand(), providers)
    if isinstance(rule, And):
        return all(evaluate_names(r, providers) for r in rule.rules)
    if isinstance(rule, Or):
        return any(evaluate_names(r, providers) for r in rule.rules)
    if isinstance(rule, Not):
        return not evaluate_names(rule.rule, providers)
    raise TypeError(f"Unsupported rule node: {type(rule).__name__}")


def evaluate(rule: Rule, listings: Iterable[ListingLike]) -> bool:
    """Evaluate a rule against one product's listings."""
    return evaluate_names(rule, canonical_providers(listings))
