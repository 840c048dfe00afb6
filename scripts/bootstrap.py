# WORKFLOW: Bootstrap script for schema creation and reference data.
# Used by: Initial setup, local development, demo environments
# Functions:
# 1. setup_database() - Create all billing tables
# 2. seed_catalog() - Countries, cities, shipment types, cargo categories, rates
# 3. seed_demo_client() - Optional demo client for trying the billing endpoints
# 4. validate_setup() - Verify connectivity and catalog contents
#
# Bootstrap flow: Database setup -> Catalog seed -> Validation -> Ready
# Seeding is idempotent: rows are matched by natural key before inserting.

"""
Bootstrap script for Cargo Billing API setup.
"""

import sys
import logging
import argparse
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from db.session import init_db, session_scope, check_db_connection  # noqa: E402
from db.models import CargoCategory, City, Client, Country, Rate, ShipmentType  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

COUNTRIES = [
    ("United States", "USA", ["New York", "Los Angeles"]),
    ("China", "CHN", ["Shanghai", "Shenzhen"]),
    ("Germany", "DEU", ["Hamburg", "Frankfurt"]),
    ("United Arab Emirates", "ARE", ["Dubai"]),
]

SHIPMENT_TYPES = [
    ("Air Freight", "Express air cargo", 5),
    ("Sea Freight", "Full and shared container ocean cargo", 30),
    ("Land Freight", "Road cargo", 10),
]

# name, description, unit, shipment type name
CARGO_CATEGORIES = [
    ("General Cargo", "Non-hazardous packaged goods", "kg", "Air Freight"),
    ("Electronics", "Consumer electronics and components", "kg", "Air Freight"),
    ("Containerized", "Goods shipped per cubic meter", "cbm", "Sea Freight"),
    ("Pallets", "Palletized goods", "piece", "Land Freight"),
]

# origin code, destination code, shipment type, cargo category, base rate, additional charges, currency
RATES = [
    ("CHN", "USA", "Air Freight", "General Cargo", "50.00", "5.00", None),
    ("CHN", "USA", "Air Freight", "Electronics", "120.00", "15.50", "USD"),
    ("CHN", "DEU", "Sea Freight", "Containerized", "900.00", "75.00", "EUR"),
    ("DEU", "ARE", "Air Freight", "General Cargo", "65.00", "8.25", "EUR"),
    ("USA", "USA", "Land Freight", "Pallets", "200.00", "0.00", "USD"),
]


def setup_database() -> None:
    """Create all tables."""
    logger.info("Creating database tables")
    init_db()


def _get_or_create(session, model, defaults=None, **keys):
    instance = session.query(model).filter_by(**keys).first()
    if instance is not None:
        return instance, False
    instance = model(**keys, **(defaults or {}))
    session.add(instance)
    session.flush()
    return instance, True


def seed_catalog(session) -> int:
    """
    Insert the reference catalog.

    Returns:
        Number of rates created
    """
    countries = {}
    for name, code, cities in COUNTRIES:
        country, _ = _get_or_create(session, Country, defaults={"name": name}, code=code)
        countries[code] = country
        for city_name in cities:
            _get_or_create(session, City, country_id=country.country_id, name=city_name)

    shipment_types = {}
    for name, description, days in SHIPMENT_TYPES:
        shipment_type, _ = _get_or_create(
            session, ShipmentType, defaults={"description": description, "estimated_days": days}, name=name
        )
        shipment_types[name] = shipment_type

    categories = {}
    for name, description, unit, type_name in CARGO_CATEGORIES:
        category, _ = _get_or_create(
            session,
            CargoCategory,
            defaults={
                "description": description,
                "unit": unit,
                "shipment_type_id": shipment_types[type_name].type_id,
            },
            name=name,
        )
        categories[name] = category

    created = 0
    for origin, destination, type_name, category_name, base, extra, currency in RATES:
        _, is_new = _get_or_create(
            session,
            Rate,
            defaults={
                "base_rate": Decimal(base),
                "additional_charges": Decimal(extra),
                "currency": currency,
            },
            origin_country_id=countries[origin].country_id,
            destination_country_id=countries[destination].country_id,
            shipment_type_id=shipment_types[type_name].type_id,
            cargo_category_id=categories[category_name].category_id,
            status="active",
        )
        created += int(is_new)

    session.commit()
    logger.info(f"Catalog seeded: {created} new rates")
    return created


def seed_demo_client(session) -> Client:
    client, created = _get_or_create(session, Client, defaults={"name": "Demo Client"}, email="demo@cargo-billing.example")
    session.commit()
    if created:
        logger.info(f"Demo client created with id {client.client_id}")
    return client


def validate_setup(session) -> bool:
    """Verify connectivity and that the catalog holds active rates."""
    if not check_db_connection():
        logger.error("Database connection failed")
        return False
    active = session.query(Rate).filter(Rate.status == "active").count()
    if active == 0:
        logger.error("No active rates found")
        return False
    logger.info(f"Setup validated: {active} active rates")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Bootstrap the Cargo Billing API database")
    parser.add_argument("--skip-seed", action="store_true", help="Only create tables")
    parser.add_argument("--demo-client", action="store_true", help="Also create a demo client")
    args = parser.parse_args()

    setup_database()
    if args.skip_seed:
        return 0

    with session_scope() as session:
        seed_catalog(session)
        if args.demo_client:
            seed_demo_client(session)
        return 0 if validate_setup(session) else 1


if __name__ == "__main__":
    sys.exit(main())
