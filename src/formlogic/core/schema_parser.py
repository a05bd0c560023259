"""
Schema parser.

Flattens a JSON-shaped form schema into FieldNodes, parses rule trees and
formulas, validates calculated-field references and computes the
calculation order. Everything that can be rejected is rejected here, once,
before any evaluation happens.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from formlogic.core.config import EngineConfig
from formlogic.core.errors import CycleError, ErrorContext, SchemaError, make_schema_error
from formlogic.core.formula_lang.parser import (
    ExpressionParseError,
    extract_functions,
    extract_variables,
    parse_formula,
)
from formlogic.core.ir.fields import CalculationSpec, FieldNode, WidgetType
from formlogic.core.ir.formulas import FORMULA_FUNCTIONS
from formlogic.core.ir.rules import (
    AndRule,
    Comparison,
    OrRule,
    Rule,
    RuleOperator,
    referenced_fields,
)
from formlogic.core.ir.schema import ParsedSchema
from formlogic.core.paths import join_path, last_segment
from formlogic.core.rule_lang import parse_rule
from formlogic.core.scheduler import build_order

logger = logging.getLogger(__name__)

FORMAT_WIDGETS: dict[str, WidgetType] = {
    "email": WidgetType.TEXT,
    "uri": WidgetType.TEXT,
    "uri-reference": WidgetType.TEXT,
    "date": WidgetType.DATE,
    "time": WidgetType.TIME,
    "date-time": WidgetType.DATETIME,
}

RULE_KEYS = {
    "hiddenWhen": "hidden_when",
    "requiredWhen": "required_when",
    "readOnlyWhen": "read_only_when",
}


def infer_widget(definition: Mapping[str, Any], location: str = "") -> WidgetType:
    """
    Resolve the presentation kind of a field.

    Order: explicit ``ui.widget`` -> string ``format`` -> ``type`` -> text.
    """
    ui = definition.get("ui") or {}
    explicit = ui.get("widget")
    if explicit:
        try:
            return WidgetType(explicit)
        except ValueError:
            raise make_schema_error(f"Unknown widget {explicit!r}", f"{location}.ui.widget")

    fmt = definition.get("format")
    if fmt in FORMAT_WIDGETS:
        return FORMAT_WIDGETS[fmt]

    field_type = definition.get("type")
    if field_type == "string":
        return WidgetType.SELECT if definition.get("enum") else WidgetType.TEXT
    if field_type in ("number", "integer"):
        return WidgetType.CURRENCY if ui.get("currency") else WidgetType.NUMBER
    if field_type == "boolean":
        return WidgetType.CHECKBOX
    if field_type == "array":
        return WidgetType.ARRAY
    if field_type == "object":
        return WidgetType.OBJECT
    return WidgetType.TEXT


def parse_rule_definition(data: Any, location: str) -> Rule | None:
    """
    Convert a wire rule (object or expression string) into a rule tree.

    Raises:
        SchemaError: If the rule is malformed
    """
    if data is None:
        return None

    if isinstance(data, str):
        try:
            return parse_rule(data)
        except ExpressionParseError as e:
            raise make_schema_error(f"Invalid rule expression {data!r}: {e}", location) from e

    if not isinstance(data, Mapping):
        raise make_schema_error(
            f"Rule must be an object or string, got {type(data).__name__}", location
        )

    for combinator, rule_cls in (("and", AndRule), ("or", OrRule)):
        if combinator in data:
            children = data[combinator]
            if not isinstance(children, list):
                raise make_schema_error(f"'{combinator}' must be a list of rules", location)
            return rule_cls(
                children=[
                    parse_rule_definition(child, f"{location}.{combinator}[{i}]")
                    for i, child in enumerate(children)
                ]
            )

    field = data.get("field")
    operator = data.get("operator")
    if not isinstance(field, str) or not field:
        raise make_schema_error("Rule needs a 'field' or an 'and'/'or' list", location)
    try:
        op = RuleOperator(operator)
    except ValueError:
        raise make_schema_error(f"Unknown rule operator {operator!r}", location)

    value = data.get("value")
    if op.takes_list and not isinstance(value, list):
        raise make_schema_error(f"'{op.value}' expects a list value, got {value!r}", location)
    return Comparison(field=field, operator=op, value=value if op.takes_value else None)


def _parse_fields(
    properties: Mapping[str, Any],
    required_keys: list[str],
    parent_path: str | None,
    level: int,
    location: str,
) -> list[FieldNode]:
    """Recursively flatten field definitions."""
    nodes: list[FieldNode] = []

    for key, definition in properties.items():
        field_location = f"{location}.{key}"
        if not isinstance(definition, Mapping):
            raise make_schema_error("Field definition must be an object", field_location)
        ui = definition.get("ui") or {}
        if not isinstance(ui, Mapping):
            raise make_schema_error("'ui' must be an object", f"{field_location}.ui")

        path = join_path(parent_path, key)
        rules = {
            attr: parse_rule_definition(ui.get(wire_key), f"{field_location}.ui.{wire_key}")
            for wire_key, attr in RULE_KEYS.items()
        }

        nodes.append(
            FieldNode(
                path=path,
                key=key,
                parent_path=parent_path,
                level=level,
                type=definition.get("type"),
                title=definition.get("title"),
                widget=infer_widget(definition, field_location),
                default=definition.get("default"),
                is_required=key in required_keys,
                is_read_only=bool(definition.get("readOnly", False)),
                is_visible=rules["hidden_when"] is None,
                **rules,
            )
        )

        nested = definition.get("properties")
        if definition.get("type") == "object" and isinstance(nested, Mapping):
            nodes.extend(
                _parse_fields(
                    nested,
                    definition.get("required") or [],
                    path,
                    level + 1,
                    f"{field_location}.properties",
                )
            )

        items = definition.get("items")
        if (
            definition.get("type") == "array"
            and isinstance(items, Mapping)
            and items.get("type") == "object"
            and isinstance(items.get("properties"), Mapping)
        ):
            nodes.extend(
                _parse_fields(
                    items["properties"],
                    items.get("required") or [],
                    f"{path}[0]",
                    level + 1,
                    f"{field_location}.items.properties",
                )
            )

    return nodes


def _parse_calculation(
    entry: Any,
    location: str,
    known_paths: set[str],
    config: EngineConfig,
) -> CalculationSpec:
    if not isinstance(entry, Mapping):
        raise make_schema_error("Calculated field entry must be an object", location)

    target = entry.get("target")
    if not isinstance(target, str) or not target:
        raise make_schema_error("Calculated field needs a 'target'", location)
    if target not in known_paths:
        raise make_schema_error(f"Calculated target {target!r} is not a declared field", location)

    depends_on = entry.get("dependsOn") or []
    if not isinstance(depends_on, list) or not all(isinstance(d, str) for d in depends_on):
        raise make_schema_error("'dependsOn' must be a list of field paths", location)
    depends_on = list(dict.fromkeys(depends_on))
    for dep in depends_on:
        if dep not in known_paths:
            raise make_schema_error(
                f"Calculated field {target!r} depends on non-existent field {dep!r}", location
            )

    formula = entry.get("formula")
    if not isinstance(formula, str):
        raise make_schema_error(f"Calculated field {target!r} needs a 'formula' string", location)

    bindings = _bind(target, depends_on, entry.get("aliases") or {}, location, config)

    expr = None
    parse_error = None
    try:
        expr = parse_formula(formula)
    except ExpressionParseError as e:
        parse_error = str(e)
        logger.warning(f"Formula for {target!r} does not parse and will stay empty: {e}")

    if expr is not None and config.warn_unbound_variables:
        bound = set(bindings.values())
        unbound = [name for name in extract_variables(expr) if name not in bound]
        if unbound:
            logger.warning(
                f"Formula for {target!r} uses names not bound by dependsOn: {', '.join(unbound)}"
            )

    if expr is not None:
        unknown = [name for name in extract_functions(expr) if name not in FORMULA_FUNCTIONS]
        if unknown:
            logger.warning(
                f"Formula for {target!r} calls unknown functions: {', '.join(unknown)}"
            )

    return CalculationSpec(
        target=target,
        formula=formula,
        depends_on=depends_on,
        bindings=bindings,
        expr=expr,
        parse_error=parse_error,
    )


def _bind(
    target: str,
    depends_on: list[str],
    aliases: Any,
    location: str,
    config: EngineConfig,
) -> dict[str, str]:
    """Assign a variable name to each dependency and check for collisions."""
    if not isinstance(aliases, Mapping):
        raise make_schema_error("'aliases' must map dependency paths to names", location)
    for path, name in aliases.items():
        if path not in depends_on:
            raise make_schema_error(f"Alias for {path!r}, which is not in dependsOn", location)
        if not isinstance(name, str) or not name.isidentifier():
            raise make_schema_error(f"Alias {name!r} is not a valid variable name", location)

    bindings = {path: aliases.get(path, last_segment(path)) for path in depends_on}

    claimed: dict[str, str] = {}
    for path, name in bindings.items():
        if name in claimed:
            message = (
                f"Dependencies {claimed[name]!r} and {path!r} of {target!r} "
                f"both bind the variable {name!r}"
            )
            if config.alias_collision == "error":
                raise make_schema_error(f"{message}; add an alias for one of them", location)
            logger.warning(f"{message}; {path!r} wins")
        claimed[name] = path
    return bindings


def parse_schema(schema: Mapping[str, Any], config: EngineConfig | None = None) -> ParsedSchema:
    """
    Parse a form schema.

    Args:
        schema: Raw schema document with ``properties`` and optional ``logic.calculated``
        config: Engine configuration (defaults when omitted)

    Returns:
        ParsedSchema with fields, calculations and evaluation order

    Raises:
        SchemaError: If the schema is malformed or references unknown fields
        CycleError: If calculated fields depend on each other in a cycle
    """
    config = config or EngineConfig()
    if not isinstance(schema, Mapping):
        raise SchemaError(f"Schema must be an object, got {type(schema).__name__}")

    meta = schema.get("meta") or {}
    schema_id = meta.get("id") if isinstance(meta, Mapping) else None

    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        raise make_schema_error("Schema needs a 'properties' object", "properties", schema_id)

    try:
        nodes = _parse_fields(properties, schema.get("required") or [], None, 0, "properties")
    except SchemaError as e:
        if e.context and schema_id and not e.context.schema_id:
            raise make_schema_error(e.message, e.context.location, schema_id) from e
        raise

    paths: set[str] = set()
    for node in nodes:
        if node.path in paths:
            raise make_schema_error(f"Duplicate field path {node.path!r}", "properties", schema_id)
        paths.add(node.path)

    for node in nodes:
        for rule in (node.hidden_when, node.required_when, node.read_only_when):
            for ref in referenced_fields(rule):
                if ref not in paths:
                    logger.warning(f"Rule on {node.path!r} reads undeclared field {ref!r}")

    logic = schema.get("logic") or {}
    if not isinstance(logic, Mapping):
        raise make_schema_error("'logic' must be an object", "logic", schema_id)
    entries = logic.get("calculated") or []
    if not isinstance(entries, list):
        raise make_schema_error("'logic.calculated' must be a list", "logic.calculated", schema_id)

    calculations: list[CalculationSpec] = []
    seen_targets: set[str] = set()
    for i, entry in enumerate(entries):
        location = f"logic.calculated[{i}]"
        try:
            calc = _parse_calculation(entry, location, paths, config)
        except SchemaError as e:
            raise make_schema_error(e.message, location, schema_id) from e
        if calc.target in seen_targets:
            raise make_schema_error(
                f"Duplicate calculated target {calc.target!r}", location, schema_id
            )
        seen_targets.add(calc.target)
        calculations.append(calc)

    try:
        order = build_order(calculations)
    except CycleError as e:
        raise CycleError(
            e.message, e.cycle, ErrorContext(location="logic.calculated", schema_id=schema_id)
        ) from e

    by_target = {c.target: c for c in calculations}
    fields = [
        node.model_copy(update={"calculation": by_target[node.path]})
        if node.path in by_target
        else node
        for node in nodes
    ]

    logger.debug(
        f"Parsed schema {schema_id or '<anonymous>'}: {len(fields)} fields, "
        f"{len(calculations)} calculations"
    )
    return ParsedSchema(
        schema_id=schema_id,
        fields=fields,
        calculations=calculations,
        evaluation_order=order,
        raw=dict(schema),
    )


def default_values(schema: Mapping[str, Any]) -> dict[str, Any]:
    """
    Declared defaults by path.

    Boolean fields without a default start as False. Recurses into nested
    objects (array item templates have no defaults of their own).
    """
    defaults: dict[str, Any] = {}

    def _extract(properties: Mapping[str, Any], prefix: str | None) -> None:
        for key, definition in properties.items():
            if not isinstance(definition, Mapping):
                continue
            path = join_path(prefix, key)
            if "default" in definition:
                defaults[path] = definition["default"]
            elif definition.get("type") == "boolean":
                defaults[path] = False
            nested = definition.get("properties")
            if definition.get("type") == "object" and isinstance(nested, Mapping):
                _extract(nested, path)

    _extract(schema.get("properties") or {}, None)
    return defaults
