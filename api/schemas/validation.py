# WORKFLOW: JSON Schema validation module (hard gate for contract responses).
# Used by: /rates/calculate and /clients/{id}/payments endpoints, tests
# Functions:
# 1. SchemaValidator.validate_response() - Validate a payload against one schema
# 2. SchemaValidator.get_validation_errors() - Get detailed errors without raising
# 3. validate_contract() - Module-level convenience over the shared validators
#
# Validation flow: Service result -> Schema validation -> Pass/Fail
# A contract payload that fails validation is never returned to the caller.

import json
import jsonschema
from functools import lru_cache
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent.parent.parent / "schema"

RATE_CALCULATION = "rate_calculation"
CLIENT_PAYMENTS = "client_payments"


class SchemaValidator:
    """JSON Schema validator for one response contract."""

    def __init__(self, name: str):
        self.name = name
        self.schema_path = SCHEMA_DIR / f"{name}.schema.json"
        self.schema = self._load_schema()

    def _load_schema(self) -> Dict[str, Any]:
        """Load the JSON schema from file."""
        try:
            with open(self.schema_path, 'r') as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load JSON schema {self.schema_path}: {e}")
            raise

    def validate_response(self, response_data: Dict[str, Any]) -> bool:
        """
        Validate response against JSON schema.

        Returns:
            True if valid, raises jsonschema.ValidationError if invalid
        """
        try:
            jsonschema.validate(instance=response_data, schema=self.schema)
            return True
        except jsonschema.ValidationError as e:
            logger.error(f"Schema validation failed for {self.name}: {e.message}")
            raise

    def get_validation_errors(self, response_data: Dict[str, Any]) -> Optional[str]:
        """
        Get detailed validation errors without raising exception.

        Returns:
            Error message if invalid, None if valid
        """
        try:
            jsonschema.validate(instance=response_data, schema=self.schema)
            return None
        except jsonschema.ValidationError as e:
            return f"Schema validation error: {e.message} at path: {'/'.join(str(p) for p in e.path)}"


@lru_cache(maxsize=None)
def get_validator(name: str) -> SchemaValidator:
    return SchemaValidator(name)


def validate_contract(name: str, response_dict: Dict[str, Any]) -> bool:
    """
    Convenience function to validate a contract payload.

    Returns:
        True if valid, raises jsonschema.ValidationError if invalid
    """
    return get_validator(name).validate_response(response_dict)
