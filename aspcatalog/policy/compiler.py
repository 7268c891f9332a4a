"""Compile visibility rules into SQLAlchemy boolean clauses."""

from sqlalchemy import and_, exists, not_, or_, true
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from aspcatalog.db.models import CanonicalProduct, SourceListing
from aspcatalog.policy.rules import (
    Always,
    And,
    Exclusive,
    HasSource,
    HasSourceExcept,
    Not,
    Or,
    Rule,
)
from aspcatalog.providers.normalizer import asp_normalization_expr


def _source_exists(product_id_col, providers: frozenset[str], negate: bool) -> ColumnElement[bool]:
    # Fresh alias per node so nested EXISTS clauses never share a FROM
    listing = aliased(SourceListing)
    canonical = asp_normalization_expr(listing.asp_name, listing.affiliate_url)
    ordered = sorted(providers)
    provider_match = canonical.not_in(ordered) if negate else canonical.in_(ordered)
    return exists().where(listing.product_id == product_id_col, provider_match)


def compile_rule(rule: Rule, product_id_col=None) -> ColumnElement[bool]:
    """
    Turn a rule tree into a WHERE clause over the products table.

    Args:
        rule: Rule to compile
        product_id_col: Product id column to correlate against
                        (defaults to CanonicalProduct.id)

    Returns:
        Boolean clause built from correlated EXISTS subqueries
    """
    if product_id_col is None:
        product_id_col = CanonicalProduct.id

    if isinstance(rule, Always):
        return true()
    if isinstance(rule, HasSource):
        return _source_exists(product_id_col, rule.providers, negate=False)
    if isinstance(rule, HasSourceExcept):
        return _source_exists(product_id_col, rule.providers, negate=True)
    if isinstance(rule, Exclusive):
        return compile_rule(rule.expand(), product_id_col)
    if isinstance(rule, And):
        return and_(*(compile_rule(r, product_id_col) for r in rule.rules))
    if isinstance(rule, Or):
        return or_(*(compile_rule(r, product_id_col) for r in rule.rules))
    if isinstance(rule, Not):
        return not_(compile_rule(rule.rule, product_id_col))
    raise TypeError(f"Unsupported rule node: {type(rule).__name__}")
