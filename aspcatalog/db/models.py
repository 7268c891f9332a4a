"""SQLAlchemy database models."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.utcnow()


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CanonicalProduct(Base):
    """One physical title known to the catalog."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Catalog-wide code, set on first sighting and never rewritten
    normalized_product_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    default_thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # Relationships
    sources: Mapped[list["SourceListing"]] = relationship(
        "SourceListing", back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("normalized_product_id", name="uq_products_normalized_product_id"),
    )


class SourceListing(Base):
    """One ASP's record of a canonical product."""

    __tablename__ = "product_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id"), nullable=False, index=True
    )
    asp_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)  # raw, as crawled
    original_product_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    affiliate_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # JPY
    sale_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_subscription: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # api, html, csv
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # Relationships
    product: Mapped["CanonicalProduct"] = relationship("CanonicalProduct", back_populates="sources")

    __table_args__ = (
        UniqueConstraint("product_id", "asp_name", name="uq_product_source_asp"),
    )
