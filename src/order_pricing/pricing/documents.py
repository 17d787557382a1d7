"""Conversion between backend documents and pricing models.

Documents come from the POS REST backend or MongoDB and use camelCase keys
(``applicableOn``, ``minAmount``, ``isCompounded``); snake_case keys are
accepted as well.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .cart import Cart, OrderSnapshot
from .errors import PricingInputError
from .models import (
    CartTotals,
    LineItem,
    ModifierGroup,
    ModifierOption,
    Product,
    SelectedModifier,
    TaxCalculation,
    TaxRule,
)
from .tax_rules import check_tax_rule

_MISSING = object()


def _pick(doc: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in the document."""
    for key in keys:
        value = doc.get(key, _MISSING)
        if value is not _MISSING:
            return value
    return default


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _bool(value: Any) -> bool:
    # Backend exports and hand-edited files carry flags as "false", "0", "no"
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _quantity(value: Any) -> Any:
    # JSON numbers such as 2.0 are accepted as whole quantities
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _identifier(doc: Mapping[str, Any], *keys: str) -> str:
    value = _pick(doc, *keys)
    if value is None or value == "":
        raise PricingInputError(f"Document is missing an identifier ({' / '.join(keys)})")
    return str(value)


def tax_rule_from_document(doc: Mapping[str, Any]) -> TaxRule:
    """Build a TaxRule from a stored tax rule document (not validated)."""
    return TaxRule(
        id=_identifier(doc, "_id", "id", "taxRuleId"),
        name=str(_pick(doc, "name", default="")),
        percentage=float(_pick(doc, "percentage", default=0.0)),
        type=str(_pick(doc, "type", default="CUSTOM")),
        applicable_on=str(_pick(doc, "applicableOn", "applicable_on", default="all")),
        categories=frozenset(str(c) for c in (_pick(doc, "categories", default=None) or ())),
        min_amount=_optional_float(_pick(doc, "minAmount", "min_amount")),
        max_amount=_optional_float(_pick(doc, "maxAmount", "max_amount")),
        is_compounded=_bool(_pick(doc, "isCompounded", "is_compounded", default=False)),
        active=_bool(_pick(doc, "active", default=True)),
    )


def tax_rule_to_document(rule: TaxRule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "type": rule.type,
        "percentage": rule.percentage,
        "applicableOn": rule.applicable_on,
        "categories": sorted(rule.categories) or None,
        "minAmount": rule.min_amount,
        "maxAmount": rule.max_amount,
        "isCompounded": rule.is_compounded,
        "active": rule.active,
    }


def load_tax_rules_file(path: Union[str, Path]) -> List[TaxRule]:
    """
    Load and validate tax rules from a JSON file.

    The file holds either a list of rule documents or an object with a
    ``taxRules`` list.

    Raises:
        TaxRuleConfigurationError: If any rule is invalid
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = _pick(data, "taxRules", "tax_rules", default=[])
    return [check_tax_rule(tax_rule_from_document(doc)) for doc in data]


def selected_modifier_from_document(doc: Mapping[str, Any]) -> SelectedModifier:
    return SelectedModifier(
        group_id=str(_pick(doc, "modifierId", "group_id", default="")),
        option_id=str(_pick(doc, "optionId", "option_id", default="")),
        name=str(_pick(doc, "name", default="")),
        price=float(_pick(doc, "price", default=0.0)),
    )


def line_item_from_document(doc: Mapping[str, Any]) -> LineItem:
    """Build a LineItem from a cart item document.

    A stored ``itemTotal`` is ignored; the total is always derived.
    """
    return LineItem(
        line_id=_identifier(doc, "id", "line_id", "lineId"),
        product_id=str(_pick(doc, "productId", "product_id", default="")),
        name=str(_pick(doc, "name", default="")),
        base_price=float(_pick(doc, "price", "base_price", "basePrice", default=0.0)),
        quantity=_quantity(_pick(doc, "quantity", default=1)),
        category_id=_pick(doc, "categoryId", "category_id", "category"),
        modifiers=tuple(
            selected_modifier_from_document(mod) for mod in _pick(doc, "modifiers", default=None) or ()
        ),
        note=_pick(doc, "specialInstructions", "note"),
    )


def line_item_to_document(item: LineItem) -> Dict[str, Any]:
    return {
        "id": item.line_id,
        "productId": item.product_id,
        "name": item.name,
        "price": item.base_price,
        "quantity": item.quantity,
        "categoryId": item.category_id,
        "modifiers": [
            {
                "modifierId": mod.group_id,
                "optionId": mod.option_id,
                "name": mod.name,
                "price": mod.price,
            }
            for mod in item.modifiers
        ],
        "specialInstructions": item.note,
        "itemTotal": item.item_total,
    }


def product_from_document(doc: Mapping[str, Any]) -> Product:
    """Build a Product, with its modifier groups, from a catalog document."""
    groups = []
    for group_doc in _pick(doc, "modifiers", "modifier_groups", default=None) or ():
        options = tuple(
            ModifierOption(
                id=_identifier(option_doc, "id", "_id"),
                name=str(_pick(option_doc, "name", default="")),
                price=float(_pick(option_doc, "price", default=0.0)),
                available=_bool(_pick(option_doc, "available", default=True)),
            )
            for option_doc in _pick(group_doc, "options", default=None) or ()
        )
        groups.append(
            ModifierGroup(
                id=_identifier(group_doc, "id", "_id"),
                name=str(_pick(group_doc, "name", default="")),
                selection_mode=str(_pick(group_doc, "type", "selection_mode", default="single")),
                required=_bool(_pick(group_doc, "required", default=False)),
                min_selections=_pick(group_doc, "min_selections", "minSelections"),
                max_selections=_pick(group_doc, "max_selections", "maxSelections"),
                options=options,
            )
        )
    return Product(
        id=_identifier(doc, "productId", "id", "_id"),
        name=str(_pick(doc, "name", default="")),
        price=float(_pick(doc, "price", default=0.0)),
        category_id=_pick(doc, "categoryId", "category_id", "category"),
        modifier_groups=tuple(groups),
    )


def cart_from_document(
    doc: Mapping[str, Any],
    tax_rules: Iterable[TaxRule] = (),
    order_type: Optional[str] = None,
    service_charge_percent: Optional[float] = None,
) -> Cart:
    """
    Rebuild a cart session from a cart document.

    Explicit ``order_type`` and ``service_charge_percent`` arguments take
    precedence over the values stored in the document. Stored subtotal, tax
    and total fields are ignored and recomputed.
    """
    if order_type is None:
        order_type = _pick(doc, "orderType", "order_type", default="dine_in")
    if service_charge_percent is None:
        service_charge_percent = float(
            _pick(doc, "serviceChargePercentage", "service_charge_percent", default=0.0)
        )
    cart = Cart(
        order_type=order_type,
        service_charge_percent=service_charge_percent,
        tax_rules=tax_rules,
        session_id=_pick(doc, "sessionId", "session_id"),
    )
    for item_doc in _pick(doc, "items", default=None) or ():
        item = line_item_from_document(item_doc)
        # Quantity 0 lines are removed lines; they never enter the cart
        if item.is_removed:
            continue
        cart.add_item(item)
    return cart


def tax_calculation_to_document(calc: TaxCalculation) -> Dict[str, Any]:
    return {
        "taxRuleId": calc.tax_rule_id,
        "taxName": calc.tax_name,
        "taxableAmount": calc.taxable_amount,
        "taxAmount": calc.tax_amount,
        "taxPercentage": calc.tax_percentage,
        "isCompounded": calc.is_compounded,
    }


def totals_to_document(totals: CartTotals, rounded: bool = True) -> Dict[str, Any]:
    """Serialize totals, rounded to cents unless ``rounded`` is False."""
    if rounded:
        totals = totals.rounded()
    return {
        "subtotal": totals.subtotal,
        "serviceCharge": totals.service_charge,
        "taxes": [tax_calculation_to_document(calc) for calc in totals.tax_calculations],
        "totalTax": totals.total_tax,
        "totalAmount": totals.final_total,
    }


def order_snapshot_to_document(snapshot: OrderSnapshot) -> Dict[str, Any]:
    return {
        "orderId": snapshot.order_id,
        "sessionId": snapshot.session_id,
        "orderType": snapshot.order_type,
        "serviceChargePercentage": snapshot.service_charge_percent,
        "items": [line_item_to_document(item) for item in snapshot.items],
        "submittedAt": snapshot.submitted_at.isoformat(),
        **totals_to_document(snapshot.totals),
    }
