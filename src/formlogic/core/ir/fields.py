"""
Field node types for formlogic IR.

A FieldNode is one flattened schema property. Nested object properties
and array item properties get their own nodes with prefixed paths.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .formulas import Expr
from .rules import Rule


class WidgetType(StrEnum):
    """Presentation kinds the rendering layer understands."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TOGGLE = "toggle"
    FILE = "file"
    ARRAY = "array"
    OBJECT = "object"
    MASKED = "masked"
    CALCULATED = "calculated"


class CalculationSpec(BaseModel):
    """
    A calculated field: target = formula(dependencies).

    ``bindings`` maps each dependency path to the variable name the formula
    uses for it. ``expr`` is None when the formula failed to parse, in which
    case ``parse_error`` holds the reason and the calculation is always
    indeterminate.
    """

    target: str = Field(description="Path the computed value is stored under")
    formula: str = Field(description="Formula source text")
    depends_on: list[str] = Field(default_factory=list, description="Ordered dependency paths")
    bindings: dict[str, str] = Field(default_factory=dict, description="Path -> variable name")
    expr: Expr | None = None
    parse_error: str | None = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target} = {self.formula}"

    @property
    def is_parsed(self) -> bool:
        return self.expr is not None


class FieldNode(BaseModel):
    """
    One flattened schema property.

    Examples:
        - FieldNode(path="email", key="email", widget=WidgetType.TEXT)
        - FieldNode(path="shipping.address.city", key="city", level=2)
        - FieldNode(path="lineItems[0].sku", key="sku", parent_path="lineItems[0]")
    """

    path: str = Field(description="Unique dot path")
    key: str = Field(description="Last path segment")
    parent_path: str | None = None
    level: int = 0
    type: str | None = None
    title: str | None = None
    widget: WidgetType = WidgetType.TEXT
    default: Any = None
    is_required: bool = False
    is_read_only: bool = False
    is_visible: bool = True
    hidden_when: Rule | None = None
    required_when: Rule | None = None
    read_only_when: Rule | None = None
    calculation: CalculationSpec | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_conditional(self) -> bool:
        """Whether any visibility/required/read-only rule is declared."""
        return (
            self.hidden_when is not None
            or self.required_when is not None
            or self.read_only_when is not None
        )

    @property
    def is_calculated(self) -> bool:
        return self.calculation is not None
