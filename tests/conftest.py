"""Shared pytest fixtures for formlogic tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from formlogic.core.engine import FormEngine
from formlogic.core.ir import ParsedSchema
from formlogic.core.schema_parser import parse_schema


@pytest.fixture
def order_form_schema() -> dict[str, Any]:
    """Order form with chained calculations and conditional shipping fields.

    Calculations are declared out of dependency order on purpose.
    """
    return {
        "meta": {"id": "order-form"},
        "required": ["productType", "quantity"],
        "properties": {
            "productType": {
                "type": "string",
                "enum": ["physical", "digital", "service"],
                "default": "physical",
            },
            "quantity": {"type": "integer", "default": 1},
            "unitPrice": {"type": "number", "ui": {"currency": "USD"}},
            "subtotal": {"type": "number", "readOnly": True, "ui": {"widget": "calculated"}},
            "shippingRequired": {"type": "boolean"},
            "shippingCost": {
                "type": "number",
                "ui": {
                    "hiddenWhen": {
                        "or": [
                            {"field": "productType", "operator": "equals", "value": "digital"},
                            {"field": "productType", "operator": "equals", "value": "service"},
                        ]
                    },
                    "requiredWhen": {
                        "and": [
                            {"field": "productType", "operator": "equals", "value": "physical"},
                            {"field": "shippingRequired", "operator": "equals", "value": True},
                        ]
                    },
                },
            },
            "taxRate": {"type": "number", "default": 0},
            "taxAmount": {"type": "number", "readOnly": True},
            "total": {"type": "number", "readOnly": True},
            "discountAmount": {"type": "number", "default": 0},
            "finalTotal": {"type": "number", "readOnly": True},
            "couponCode": {
                "type": "string",
                "ui": {"hiddenWhen": "subtotal is empty || subtotal < 100"},
            },
        },
        "logic": {
            "calculated": [
                {
                    "target": "finalTotal",
                    "formula": "total - discountAmount",
                    "dependsOn": ["total", "discountAmount"],
                },
                {
                    "target": "total",
                    "formula": "subtotal + shippingCost + taxAmount",
                    "dependsOn": ["subtotal", "shippingCost", "taxAmount"],
                },
                {
                    "target": "taxAmount",
                    "formula": "(subtotal + shippingCost) * (taxRate / 100)",
                    "dependsOn": ["subtotal", "shippingCost", "taxRate"],
                },
                {
                    "target": "subtotal",
                    "formula": "quantity * unitPrice",
                    "dependsOn": ["quantity", "unitPrice"],
                },
            ]
        },
    }


@pytest.fixture
def order_values() -> dict[str, Any]:
    """A complete physical order: subtotal 30, tax 8.75, total 43.75, final 41.75."""
    return {
        "productType": "physical",
        "quantity": 3,
        "unitPrice": 10,
        "shippingRequired": False,
        "shippingCost": 5,
        "taxRate": 25,
        "discountAmount": 2,
    }


@pytest.fixture
def parsed_order_form(order_form_schema: dict[str, Any]) -> ParsedSchema:
    return parse_schema(order_form_schema)


@pytest.fixture
def engine(parsed_order_form: ParsedSchema) -> FormEngine:
    """Engine for the order form."""
    return FormEngine(parsed_order_form)


@pytest.fixture
def schema_file(tmp_path: Path, order_form_schema: dict[str, Any]) -> Path:
    """Order form written to a JSON file."""
    path = tmp_path / "order_form.json"
    path.write_text(json.dumps(order_form_schema, indent=2))
    return path


@pytest.fixture
def values_file(tmp_path: Path, order_values: dict[str, Any]) -> Path:
    path = tmp_path / "values.json"
    path.write_text(json.dumps(order_values))
    return path
