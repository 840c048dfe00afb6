# WORKFLOW: Database models for the cargo billing schema.
# Used by: Rate catalog, invoice/payment ledgers, parcel intake, API endpoints
# Models represent:
# 1. countries / cities - Route endpoints for the rate catalog
# 2. shipment_types / cargo_categories - Service levels and cargo classes
# 3. rates - Pricing keyed by (type, category, origin, destination, status)
# 4. clients / parcels - Minimal owners of billing records
# 5. invoices - One per parcel at creation, stored status is advisory
# 6. payments - Append-only receipts against an invoice or a parcel
#
# Data flow: Parcel -> Invoice (unpaid) -> Payments -> Reconciled balance view
# Parcel, invoice and payment ids are never reused, including on SQLite (AUTOINCREMENT).

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MONEY = Numeric(12, 2)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Country(Base):
    __tablename__ = "countries"

    country_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(3), nullable=False, unique=True)

    cities = relationship("City", back_populates="country")


class City(Base):
    __tablename__ = "cities"

    city_id = Column(Integer, primary_key=True, autoincrement=True)
    country_id = Column(Integer, ForeignKey("countries.country_id"), nullable=False)
    name = Column(String(100), nullable=False)

    country = relationship("Country", back_populates="cities")

    __table_args__ = (
        Index('idx_cities_country', 'country_id'),
    )


class ShipmentType(Base):
    __tablename__ = "shipment_types"

    type_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    estimated_days = Column(Integer, nullable=True)


class CargoCategory(Base):
    __tablename__ = "cargo_categories"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String(20), nullable=True)  # kg, cbm, piece
    min_quantity = Column(MONEY, nullable=True)
    shipment_type_id = Column(Integer, ForeignKey("shipment_types.type_id"), nullable=True)


class Rate(Base):
    __tablename__ = "rates"

    rate_id = Column(Integer, primary_key=True, autoincrement=True)
    origin_country_id = Column(Integer, ForeignKey("countries.country_id"), nullable=False)
    destination_country_id = Column(Integer, ForeignKey("countries.country_id"), nullable=False)
    shipment_type_id = Column(Integer, ForeignKey("shipment_types.type_id"), nullable=False)
    cargo_category_id = Column(Integer, ForeignKey("cargo_categories.category_id"), nullable=False)
    base_rate = Column(MONEY, nullable=False, default=0)
    additional_charges = Column(MONEY, nullable=False, default=0)
    currency = Column(String(3), nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active, inactive

    __table_args__ = (
        Index(
            'idx_rates_lookup',
            'shipment_type_id', 'cargo_category_id', 'origin_country_id', 'destination_country_id', 'status',
        ),
    )


class Client(Base):
    __tablename__ = "clients"

    client_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    email = Column(String(150), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Parcel(Base):
    __tablename__ = "parcels"

    parcel_id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.client_id"), nullable=False)
    tracking_number = Column(String(32), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    weight = Column(Numeric(10, 3), nullable=True)
    shipping_cost = Column(MONEY, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    invoices = relationship("Invoice", back_populates="parcel")

    __table_args__ = (
        Index('idx_parcels_client', 'client_id'),
        {"sqlite_autoincrement": True},
    )


class Invoice(Base):
    __tablename__ = "invoices"

    invoice_id = Column(Integer, primary_key=True, autoincrement=True)
    parcel_id = Column(Integer, ForeignKey("parcels.parcel_id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.client_id"), nullable=False)
    amount = Column(MONEY, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="unpaid")  # advisory only
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    parcel = relationship("Parcel", back_populates="invoices")

    __table_args__ = (
        Index('idx_invoices_parcel', 'parcel_id'),
        Index('idx_invoices_client', 'client_id'),
        {"sqlite_autoincrement": True},
    )


class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.invoice_id"), nullable=True)
    parcel_id = Column(Integer, ForeignKey("parcels.parcel_id"), nullable=True)
    client_id = Column(Integer, ForeignKey("clients.client_id"), nullable=True)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(30), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    __table_args__ = (
        Index('idx_payments_invoice', 'invoice_id'),
        Index('idx_payments_parcel', 'parcel_id'),
        Index('idx_payments_status', 'status'),
        {"sqlite_autoincrement": True},
    )
