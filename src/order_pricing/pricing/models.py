"""Value objects for catalog selections, tax rules and computed totals."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from .errors import ModifierSelectionError, PricingInputError
from .money import round_money, sum_amounts

ORDER_TYPES = ("dine_in", "takeaway", "delivery")
APPLICABLE_ON = ("all",) + ORDER_TYPES
SELECTION_MODES = ("single", "multiple")


def check_order_type(order_type: str) -> str:
    if order_type not in ORDER_TYPES:
        raise PricingInputError(
            f"Unknown order type {order_type!r}; expected one of {', '.join(ORDER_TYPES)}"
        )
    return order_type


@dataclass(frozen=True)
class ModifierOption:
    """A selectable add-on with its additional price."""

    id: str
    name: str
    price: float = 0.0
    available: bool = True


@dataclass(frozen=True)
class ModifierGroup:
    """A named set of modifier options attached to a product."""

    id: str
    name: str
    selection_mode: str = "single"
    required: bool = False
    min_selections: Optional[int] = None
    max_selections: Optional[int] = None
    options: Tuple[ModifierOption, ...] = ()

    def __post_init__(self) -> None:
        if self.selection_mode not in SELECTION_MODES:
            raise ModifierSelectionError(
                f"Modifier group {self.name!r} has unknown selection mode {self.selection_mode!r}"
            )
        object.__setattr__(self, "options", tuple(self.options))

    def find_option(self, option_id: str) -> Optional[ModifierOption]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


@dataclass(frozen=True)
class SelectedModifier:
    """A chosen modifier option, snapshotted at selection time.

    The name and price are copied from the option so that later catalog
    edits never change an item that is already in a cart or order.
    """

    group_id: str
    option_id: str
    name: str
    price: float

    @classmethod
    def from_option(cls, group: ModifierGroup, option: ModifierOption) -> "SelectedModifier":
        return cls(group_id=group.id, option_id=option.id, name=option.name, price=option.price)


@dataclass(frozen=True)
class Product:
    """Catalog data needed to put a product in a cart."""

    id: str
    name: str
    price: float
    category_id: Optional[str] = None
    modifier_groups: Tuple[ModifierGroup, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "modifier_groups", tuple(self.modifier_groups))


@dataclass(frozen=True)
class LineItem:
    """One ordered product with its modifiers and quantity."""

    line_id: str
    product_id: str
    name: str
    base_price: float
    quantity: int = 1
    category_id: Optional[str] = None
    modifiers: Tuple[SelectedModifier, ...] = ()
    note: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "modifiers", tuple(self.modifiers))
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise PricingInputError(
                f"Quantity for {self.name!r} must be an integer, got {self.quantity!r}"
            )
        if self.quantity < 0:
            raise PricingInputError(f"Quantity for {self.name!r} cannot be negative: {self.quantity}")
        if not math.isfinite(self.base_price) or self.base_price < 0:
            raise PricingInputError(f"Price for {self.name!r} cannot be negative: {self.base_price}")
        for modifier in self.modifiers:
            if not math.isfinite(modifier.price) or modifier.price < 0:
                raise PricingInputError(
                    f"Modifier {modifier.name!r} on {self.name!r} has negative price {modifier.price}"
                )

    @property
    def unit_price(self) -> float:
        """Base price plus every selected modifier."""
        return self.base_price + sum_amounts(modifier.price for modifier in self.modifiers)

    @property
    def item_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def is_removed(self) -> bool:
        return self.quantity <= 0

    def with_quantity(self, quantity: int) -> "LineItem":
        return dataclasses.replace(self, quantity=quantity)

    def with_modifiers(self, modifiers: Iterable[SelectedModifier]) -> "LineItem":
        return dataclasses.replace(self, modifiers=tuple(modifiers))


@dataclass(frozen=True)
class TaxRule:
    """A configured tax.

    ``type`` is a display label only; it never changes how the tax is computed.
    Rules are not validated on construction so that the evaluator can skip a
    malformed rule instead of failing the whole order; see
    :func:`order_pricing.pricing.tax_rules.check_tax_rule`.
    """

    id: str
    name: str
    percentage: float
    type: str = "CUSTOM"
    applicable_on: str = "all"
    categories: FrozenSet[str] = frozenset()
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    is_compounded: bool = False
    active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", frozenset(self.categories or ()))


@dataclass(frozen=True)
class TaxContext:
    """The order facts a tax rule is matched against."""

    amount: float
    order_type: str
    categories: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", frozenset(self.categories or ()))


@dataclass(frozen=True)
class TaxCalculation:
    """The result of applying one tax rule to one order context."""

    tax_rule_id: str
    tax_name: str
    taxable_amount: float
    tax_amount: float
    tax_percentage: float
    is_compounded: bool = False

    def rounded(self) -> "TaxCalculation":
        return dataclasses.replace(
            self,
            taxable_amount=round_money(self.taxable_amount),
            tax_amount=round_money(self.tax_amount),
        )


@dataclass(frozen=True)
class CartTotals:
    """Aggregated cart amounts.

    ``final_total`` is always ``subtotal + service_charge + total_tax``.
    """

    subtotal: float = 0.0
    service_charge: float = 0.0
    tax_calculations: Tuple[TaxCalculation, ...] = field(default_factory=tuple)
    total_tax: float = 0.0
    final_total: float = 0.0

    def rounded(self) -> "CartTotals":
        """Return a copy with every amount rounded once for display.

        Per-tax amounts are rounded independently, so their rounded values
        may differ from the rounded ``total_tax`` by a cent; the total is the
        figure to charge.
        """
        return CartTotals(
            subtotal=round_money(self.subtotal),
            service_charge=round_money(self.service_charge),
            tax_calculations=tuple(calc.rounded() for calc in self.tax_calculations),
            total_tax=round_money(self.total_tax),
            final_total=round_money(self.final_total),
        )
