"""Pricing service used by the CLI and by callers that work with documents."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..utils.config import Config
from ..utils.logging import get_logger
from .documents import cart_from_document, tax_calculation_to_document, totals_to_document
from .models import TaxContext, TaxRule
from .money import round_money
from .repository import TaxRuleRepository
from .tax_rules import evaluate, total_tax

logger = get_logger(__name__)


class PricingService:
    """High-level service for pricing carts and previewing taxes.

    Tax rules are treated as live configuration: unless an explicit rule list
    is given, every call fetches the current active rules from the repository.
    """

    def __init__(
        self,
        tax_rules: Optional[Iterable[TaxRule]] = None,
        config: Optional[Config] = None,
        repository: Optional[TaxRuleRepository] = None,
    ) -> None:
        self.config = config or Config()
        self._tax_rules = tuple(tax_rules) if tax_rules is not None else None
        self._repository = repository

    def load_tax_rules(self) -> List[TaxRule]:
        if self._tax_rules is not None:
            return list(self._tax_rules)
        repository = self._repository or TaxRuleRepository(config=self.config)
        with repository as repo:
            return repo.list_active_rules()

    def calculate_tax(
        self,
        amount: float,
        order_type: Optional[str] = None,
        categories: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Tax breakdown for a bare order amount.

        Returns:
            Dictionary with the applied taxes, total tax and final amount,
            amounts rounded for display
        """
        order_type = order_type or self.config.get("default_order_type")
        context = TaxContext(amount=amount, order_type=order_type, categories=frozenset(categories))
        calculations = evaluate(self.load_tax_rules(), context)
        tax = total_tax(calculations)
        logger.debug(f"{len(calculations)} tax rule(s) applied to {amount} ({order_type})")
        return {
            "amount": round_money(amount),
            "order_type": order_type,
            "categories": sorted(context.categories),
            "taxes": [tax_calculation_to_document(calc.rounded()) for calc in calculations],
            "total_tax": round_money(tax),
            "final_amount": round_money(amount + tax),
        }

    def quote_cart(
        self,
        cart_document: Mapping[str, Any],
        order_type: Optional[str] = None,
        service_charge_percent: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Price a cart document against the current tax rules.

        Args:
            cart_document: Cart with ``items`` (and optionally ``orderType``
                and ``serviceChargePercentage``)
            order_type: Overrides the cart's order type
            service_charge_percent: Overrides the cart's service charge

        Returns:
            Dictionary with per-line totals and rounded cart totals
        """
        if order_type is None and not any(k in cart_document for k in ("orderType", "order_type")):
            order_type = self.config.get("default_order_type")
        if service_charge_percent is None and not any(
            k in cart_document for k in ("serviceChargePercentage", "service_charge_percent")
        ):
            service_charge_percent = self.config.get("service_charge_percent")

        cart = cart_from_document(
            cart_document,
            tax_rules=self.load_tax_rules(),
            order_type=order_type,
            service_charge_percent=service_charge_percent,
        )
        totals = cart.totals
        logger.debug(f"Quoted cart {cart.session_id}: {len(cart)} line(s), total {round_money(totals.final_total)}")
        return {
            "session_id": cart.session_id,
            "order_type": cart.order_type,
            "service_charge_percent": cart.service_charge_percent,
            "items": [
                {
                    "line_id": item.line_id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "unit_price": round_money(item.unit_price),
                    "modifiers": [mod.name for mod in item.modifiers],
                    "item_total": round_money(item.item_total),
                }
                for item in cart.items
            ],
            "totals": totals_to_document(totals),
        }
