"""Tests for rate validation, lookup and cost calculation at the service layer."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings
from db.models import Base, CargoCategory, Country, Rate, ShipmentType
from services.rate_resolver import RateResolver, compute_cost, no_rate_message, validate_request

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

VALID_REQUEST = {
    "originCountryId": 1,
    "destinationCountryId": 2,
    "shipmentTypeId": 1,
    "cargoCategoryId": 1,
}


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    session.add_all([
        Country(country_id=1, name="China", code="CHN"),
        Country(country_id=2, name="United States", code="USA"),
        ShipmentType(type_id=1, name="Air Freight", estimated_days=5),
        CargoCategory(category_id=1, name="General Cargo", unit="kg", shipment_type_id=1),
        Rate(
            origin_country_id=1,
            destination_country_id=2,
            shipment_type_id=1,
            cargo_category_id=1,
            base_rate=Decimal("50.00"),
            additional_charges=Decimal("5.00"),
            currency=None,
            status="active",
        ),
    ])
    session.commit()
    try:
        yield session
    finally:
        session.close()


def test_total_is_base_plus_additional_charges(db) -> None:
    result = RateResolver(db).calculate({**VALID_REQUEST, "weight": 12.5})

    assert result.code == 200
    assert result.data["base_rate"] == 50.0
    assert result.data["additional_charges"] == 5.0
    assert result.data["total_cost"] == 55.0
    assert result.data["currency"] == settings.default_currency
    assert result.data["weight"] == 12.5
    assert result.data["volume"] is None
    assert result.data["estimated_days"] == 5
    assert result.data["unit"] == "kg"
    assert result.data["origin_country"] == "China"
    assert result.data["destination_country"] == "United States"


def test_weight_does_not_change_the_total(db) -> None:
    light = RateResolver(db).calculate({**VALID_REQUEST, "weight": 1})
    heavy = RateResolver(db).calculate({**VALID_REQUEST, "weight": 1000, "volume": 40})

    assert light.data["total_cost"] == heavy.data["total_cost"]


def test_string_identifiers_are_accepted(db) -> None:
    params = {key: str(value) for key, value in VALID_REQUEST.items()}

    result = RateResolver(db).calculate(params)

    assert result.code == 200


def test_rate_currency_wins_over_default(db) -> None:
    db.query(Rate).update({Rate.currency: "EUR"})
    db.commit()

    result = RateResolver(db).calculate(VALID_REQUEST)

    assert result.data["currency"] == "EUR"


@pytest.mark.parametrize("field", ["originCountryId", "destinationCountryId", "shipmentTypeId", "cargoCategoryId"])
@pytest.mark.parametrize("value", [None, "", 0])
def test_missing_identifier_is_a_validation_error(field: str, value) -> None:
    query, error = validate_request({**VALID_REQUEST, field: value})

    assert query is None
    assert error.code == 400
    assert error.message == f"Missing required field: {field}"


@pytest.mark.parametrize("value", ["abc", -3, 1.5, True])
def test_malformed_identifier_is_a_validation_error(value) -> None:
    query, error = validate_request({**VALID_REQUEST, "shipmentTypeId": value})

    assert query is None
    assert error.code == 400
    assert error.message == "Invalid value for field: shipmentTypeId"


def test_missing_field_reported_before_lookup(db) -> None:
    params = dict(VALID_REQUEST)
    del params["originCountryId"]

    result = RateResolver(db).calculate(params)

    assert result.code == 400
    assert "originCountryId" in result.message


def test_unknown_route_is_not_found(db) -> None:
    result = RateResolver(db).calculate({**VALID_REQUEST, "destinationCountryId": 1})

    assert result.code == 404
    assert result.message == no_rate_message()
    assert settings.support_contact in result.message


def test_inactive_rates_are_ignored(db) -> None:
    db.query(Rate).update({Rate.status: "inactive"})
    db.commit()

    result = RateResolver(db).calculate(VALID_REQUEST)

    assert result.code == 404


def test_store_failure_is_internal_error(db, monkeypatch: pytest.MonkeyPatch) -> None:
    resolver = RateResolver(db)

    def broken_lookup(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(resolver.catalog, "find_active_rate", broken_lookup)

    result = resolver.calculate(VALID_REQUEST)

    assert result.code == 500
    assert result.message == "Failed to calculate rate. Please try again later."


def test_compute_cost_rounds_to_cents() -> None:
    rate = SimpleNamespace(base_rate=Decimal("10.005"), additional_charges=Decimal("0.00"), currency=" ")

    breakdown = compute_cost(rate)

    assert breakdown.total_cost == Decimal("10.01")
    assert breakdown.currency == settings.default_currency


def test_listings_are_sorted_by_name(db) -> None:
    countries = RateResolver(db).countries()

    assert [c["name"] for c in countries.data] == ["China", "United States"]
    assert RateResolver(db).cargo_categories().data[0]["unit"] == "kg"
    assert RateResolver(db).cities(1).data == []
