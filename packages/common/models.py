"""
ORM tables

product_categories: item-name -> category cache, shared by every invoice.
Keyed by the normalized item name (trimmed, lowercased), exact match only.

invoices: one row per uploaded document, created when the upload URL is
issued and filled in by the persistence stage.
"""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Text

from packages.common.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductCategory(Base):
    __tablename__ = "product_categories"

    product_key = Column(Text, primary_key=True, comment="Normalized item name")
    category = Column(Text, nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Text, primary_key=True, comment="fileId issued with the upload URL")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Filled by the persistence stage
    receipt_date = Column(Text)
    total = Column(Float)
    store = Column(Text)
    products = Column(JSON)
    vendor_category = Column(Text)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
