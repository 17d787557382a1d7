"""Pricing module entry point."""

from .cart import Cart, OrderSnapshot, recompute
from .errors import (
    CartStateError,
    ModifierSelectionError,
    PricingError,
    PricingInputError,
    TaxRuleConfigurationError,
)
from .models import (
    CartTotals,
    LineItem,
    ModifierGroup,
    ModifierOption,
    Product,
    SelectedModifier,
    TaxCalculation,
    TaxContext,
    TaxRule,
)
from .repository import TaxRuleRepository
from .selection import MultiChoice, SelectionPolicy, SingleChoice, build_selection
from .service import PricingService
from .tax_rules import check_tax_rule, evaluate, validate_tax_rule

__all__ = [
    "Cart",
    "CartStateError",
    "CartTotals",
    "LineItem",
    "ModifierGroup",
    "ModifierOption",
    "ModifierSelectionError",
    "MultiChoice",
    "OrderSnapshot",
    "PricingError",
    "PricingInputError",
    "PricingService",
    "Product",
    "SelectedModifier",
    "SelectionPolicy",
    "SingleChoice",
    "TaxCalculation",
    "TaxContext",
    "TaxRule",
    "TaxRuleConfigurationError",
    "TaxRuleRepository",
    "build_selection",
    "check_tax_rule",
    "evaluate",
    "recompute",
    "validate_tax_rule",
]
