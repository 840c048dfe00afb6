# WORKFLOW: Rate catalog queries against the reference tables.
# Used by: Rate resolver, /rates lookup endpoints, bootstrap script
# Functions:
# 1. find_active_rate() - Single active rate for (type, category, origin, destination)
# 2. get_shipment_type_by_id() / get_cargo_category_by_id() / get_country_by_id()
# 3. list_countries() / list_cities() / list_shipment_types() / list_cargo_categories()
#
# Lookup flow: Request tuple -> Indexed filter on status='active' -> First row or None
# Database errors propagate to the caller, which decides how to report them.

from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from db.models import CargoCategory, City, Country, Rate, ShipmentType

ACTIVE = "active"


class RateCatalog:
    """Read-only access to rates and their reference data."""

    def __init__(self, db: Session):
        self.db = db

    def find_active_rate(
        self,
        shipment_type_id: int,
        cargo_category_id: int,
        origin_country_id: int,
        destination_country_id: int,
    ) -> Optional[Rate]:
        """
        Find the active rate for a route and cargo combination.

        The catalog is expected to hold at most one active row per tuple; if it
        holds more, the lowest rate_id wins.
        """
        return (
            self.db.query(Rate)
            .filter(
                and_(
                    Rate.shipment_type_id == shipment_type_id,
                    Rate.cargo_category_id == cargo_category_id,
                    Rate.origin_country_id == origin_country_id,
                    Rate.destination_country_id == destination_country_id,
                    Rate.status == ACTIVE,
                )
            )
            .order_by(Rate.rate_id)
            .first()
        )

    def get_shipment_type_by_id(self, type_id: int) -> Optional[ShipmentType]:
        return self.db.get(ShipmentType, type_id)

    def get_cargo_category_by_id(self, category_id: int) -> Optional[CargoCategory]:
        return self.db.get(CargoCategory, category_id)

    def get_country_by_id(self, country_id: int) -> Optional[Country]:
        return self.db.get(Country, country_id)

    def list_countries(self) -> List[Country]:
        return self.db.query(Country).order_by(Country.name).all()

    def list_cities(self, country_id: int) -> List[City]:
        return self.db.query(City).filter(City.country_id == country_id).order_by(City.name).all()

    def list_shipment_types(self) -> List[ShipmentType]:
        return self.db.query(ShipmentType).order_by(ShipmentType.name).all()

    def list_cargo_categories(self) -> List[CargoCategory]:
        return self.db.query(CargoCategory).order_by(CargoCategory.name).all()


def create_rate_catalog(db: Session) -> RateCatalog:
    """Create rate catalog instance."""
    return RateCatalog(db)
