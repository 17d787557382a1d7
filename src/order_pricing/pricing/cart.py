"""Cart aggregation and the cart session object."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from .errors import CartStateError, PricingInputError
from .models import (
    CartTotals,
    LineItem,
    ModifierGroup,
    Product,
    SelectedModifier,
    TaxContext,
    TaxRule,
    check_order_type,
)
from .money import sum_amounts
from .selection import build_selection, validate_selection
from .tax_rules import evaluate, total_tax

logger = get_logger(__name__)


def _check_service_charge(percent: float) -> None:
    if not math.isfinite(percent) or percent < 0:
        raise PricingInputError(f"Service charge must be a finite, non-negative percent: {percent}")


def recompute(
    items: Iterable[LineItem],
    service_charge_percent: float,
    tax_rules: Iterable[TaxRule],
    order_type: str,
) -> CartTotals:
    """
    Compute cart totals from scratch.

    Args:
        items: Line items; items with quantity 0 count as removed
        service_charge_percent: Service charge on the subtotal, in percent
        tax_rules: Current tax rule configuration
        order_type: dine_in, takeaway or delivery

    Returns:
        CartTotals with unrounded amounts
    """
    _check_service_charge(service_charge_percent)
    check_order_type(order_type)

    live_items = [item for item in items if not item.is_removed]
    subtotal = sum_amounts(item.item_total for item in live_items)
    service_charge = subtotal * service_charge_percent / 100
    categories = frozenset(item.category_id for item in live_items if item.category_id)

    # An empty cart carries no tax lines, not zero-valued ones
    calculations = evaluate(tax_rules, TaxContext(subtotal, order_type, categories)) if live_items else []
    tax = total_tax(calculations)

    return CartTotals(
        subtotal=subtotal,
        service_charge=service_charge,
        tax_calculations=tuple(calculations),
        total_tax=tax,
        final_total=subtotal + service_charge + tax,
    )


@dataclass(frozen=True)
class OrderSnapshot:
    """An immutable, submitted order.

    The totals are the ones computed at submission and are never recomputed
    from live tax configuration.
    """

    order_id: str
    session_id: str
    order_type: str
    service_charge_percent: float
    items: Tuple[LineItem, ...]
    totals: CartTotals
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Cart:
    """Mutable cart for one ordering session.

    Items are held as an immutable tuple that each mutation replaces, and
    totals are recomputed from the current items and tax rules whenever they
    are read.
    """

    def __init__(
        self,
        order_type: str = "dine_in",
        service_charge_percent: float = 0.0,
        tax_rules: Iterable[TaxRule] = (),
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._order_type = check_order_type(order_type)
        _check_service_charge(service_charge_percent)
        self._service_charge_percent = service_charge_percent
        self._tax_rules: Tuple[TaxRule, ...] = tuple(tax_rules)
        self._items: Tuple[LineItem, ...] = ()
        self._submitted: Optional[OrderSnapshot] = None

    @property
    def items(self) -> Tuple[LineItem, ...]:
        return self._items

    @property
    def order_type(self) -> str:
        return self._order_type

    @property
    def service_charge_percent(self) -> float:
        return self._service_charge_percent

    @property
    def tax_rules(self) -> Tuple[TaxRule, ...]:
        return self._tax_rules

    @property
    def is_submitted(self) -> bool:
        return self._submitted is not None

    @property
    def totals(self) -> CartTotals:
        if self._submitted is not None:
            return self._submitted.totals
        return recompute(self._items, self._service_charge_percent, self._tax_rules, self._order_type)

    def __len__(self) -> int:
        return len(self._items)

    def _ensure_open(self) -> None:
        if self._submitted is not None:
            raise CartStateError(f"Cart {self.session_id} was already submitted as {self._submitted.order_id}")

    def _index_of(self, line_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.line_id == line_id:
                return index
        raise PricingInputError(f"No line {line_id!r} in cart {self.session_id}")

    def get_item(self, line_id: str) -> LineItem:
        return self._items[self._index_of(line_id)]

    def add_item(self, item: LineItem, groups: Optional[Sequence[ModifierGroup]] = None) -> LineItem:
        """Add a line item, validating its modifiers when groups are given."""
        self._ensure_open()
        if item.quantity < 1:
            raise PricingInputError(f"Cannot add {item.name!r} with quantity {item.quantity}")
        if any(existing.line_id == item.line_id for existing in self._items):
            raise PricingInputError(f"Line {item.line_id!r} is already in the cart")
        if groups is not None:
            validate_selection(groups, item.modifiers)
        self._items = self._items + (item,)
        logger.debug(f"Added {item.quantity} x {item.name} ({item.line_id}) to cart {self.session_id}")
        return item

    def add_product(
        self,
        product: Product,
        quantity: int = 1,
        chosen: Optional[Mapping[str, Iterable[str]]] = None,
        note: Optional[str] = None,
    ) -> LineItem:
        """Build a line item from catalog data and the chosen option ids."""
        modifiers = build_selection(product.modifier_groups, chosen or {})
        item = LineItem(
            line_id=f"{product.id}-{uuid.uuid4().hex[:12]}",
            product_id=product.id,
            name=product.name,
            base_price=product.price,
            quantity=quantity,
            category_id=product.category_id,
            modifiers=modifiers,
            note=note or None,
        )
        return self.add_item(item)

    def remove_item(self, line_id: str) -> None:
        self._ensure_open()
        index = self._index_of(line_id)
        self._items = self._items[:index] + self._items[index + 1:]
        logger.debug(f"Removed line {line_id} from cart {self.session_id}")

    def update_quantity(self, line_id: str, quantity: int) -> Optional[LineItem]:
        """Change a line's quantity; zero removes the line.

        Returns:
            The updated line item, or None if it was removed
        """
        self._ensure_open()
        if quantity < 0:
            raise PricingInputError(f"Quantity cannot be negative: {quantity}")
        if quantity == 0:
            self.remove_item(line_id)
            return None
        index = self._index_of(line_id)
        updated = self._items[index].with_quantity(quantity)
        self._items = self._items[:index] + (updated,) + self._items[index + 1:]
        logger.debug(f"Line {line_id} quantity set to {quantity}")
        return updated

    def change_modifiers(
        self,
        line_id: str,
        modifiers: Iterable[SelectedModifier],
        groups: Optional[Sequence[ModifierGroup]] = None,
    ) -> LineItem:
        self._ensure_open()
        modifiers = tuple(modifiers)
        if groups is not None:
            validate_selection(groups, modifiers)
        index = self._index_of(line_id)
        updated = self._items[index].with_modifiers(modifiers)
        self._items = self._items[:index] + (updated,) + self._items[index + 1:]
        return updated

    def set_order_type(self, order_type: str) -> None:
        self._ensure_open()
        self._order_type = check_order_type(order_type)

    def set_service_charge_percent(self, percent: float) -> None:
        self._ensure_open()
        _check_service_charge(percent)
        self._service_charge_percent = percent

    def set_tax_rules(self, tax_rules: Iterable[TaxRule]) -> None:
        """Replace the tax configuration after it has been refetched."""
        self._ensure_open()
        self._tax_rules = tuple(tax_rules)
        logger.debug(f"Cart {self.session_id} now uses {len(self._tax_rules)} tax rule(s)")

    def clear(self) -> None:
        self._ensure_open()
        self._items = ()

    def submit(self, order_id: Optional[str] = None) -> OrderSnapshot:
        """Freeze the cart into an order snapshot.

        Raises:
            PricingInputError: If the cart is empty
            CartStateError: If the cart was already submitted
        """
        self._ensure_open()
        if not self._items:
            raise PricingInputError(f"Cart {self.session_id} is empty")
        snapshot = OrderSnapshot(
            order_id=order_id or f"order-{uuid.uuid4().hex[:12]}",
            session_id=self.session_id,
            order_type=self._order_type,
            service_charge_percent=self._service_charge_percent,
            items=self._items,
            totals=self.totals,
        )
        self._submitted = snapshot
        logger.info(f"Cart {self.session_id} submitted as {snapshot.order_id}")
        return snapshot
