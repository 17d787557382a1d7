"""Tax rule validation and evaluation."""

from __future__ import annotations

import math
from typing import Iterable, List, Tuple

from ..utils.logging import get_logger
from .errors import PricingInputError, TaxRuleConfigurationError
from .models import APPLICABLE_ON, TaxCalculation, TaxContext, TaxRule, check_order_type
from .money import sum_amounts

logger = get_logger(__name__)


def check_tax_rule(rule: TaxRule) -> TaxRule:
    """
    Reject rules that cannot be evaluated.

    Only the values that feed the calculation are checked. The ``type`` tag
    is a free-form label and is never validated here.

    Raises:
        TaxRuleConfigurationError: If the percentage is outside [0, 100],
            ``applicable_on`` is unknown or the thresholds are inconsistent
    """
    if not math.isfinite(rule.percentage) or not 0 <= rule.percentage <= 100:
        raise TaxRuleConfigurationError(
            f"Tax rule {rule.id!r}: percentage must be between 0 and 100, got {rule.percentage}"
        )
    if rule.applicable_on not in APPLICABLE_ON:
        raise TaxRuleConfigurationError(
            f"Tax rule {rule.id!r}: unknown applicable_on {rule.applicable_on!r}"
        )
    for label, value in (("min_amount", rule.min_amount), ("max_amount", rule.max_amount)):
        if value is not None and (not math.isfinite(value) or value < 0):
            raise TaxRuleConfigurationError(f"Tax rule {rule.id!r}: {label} must be a finite, non-negative number")
    if (
        rule.min_amount is not None
        and rule.max_amount is not None
        and rule.min_amount > rule.max_amount
    ):
        raise TaxRuleConfigurationError(
            f"Tax rule {rule.id!r}: min_amount {rule.min_amount} exceeds max_amount {rule.max_amount}"
        )
    return rule


def validate_tax_rule(rule: TaxRule) -> TaxRule:
    """Save-time validation: a usable rule that also carries a name."""
    if not rule.name or not rule.name.strip():
        raise TaxRuleConfigurationError(f"Tax rule {rule.id!r}: name is required")
    return check_tax_rule(rule)


def is_valid_tax_rule(rule: TaxRule) -> bool:
    try:
        check_tax_rule(rule)
    except TaxRuleConfigurationError:
        return False
    return True


def is_applicable(rule: TaxRule, context: TaxContext) -> bool:
    """Check active flag, order type, minimum amount and category scope."""
    if not rule.active:
        return False
    if rule.applicable_on != "all" and rule.applicable_on != context.order_type:
        return False
    if rule.min_amount is not None and context.amount < rule.min_amount:
        return False
    if rule.categories and not (rule.categories & context.categories):
        return False
    return True


def _calculate(rule: TaxRule, base: float) -> TaxCalculation:
    taxable_amount = base if rule.max_amount is None else min(base, rule.max_amount)
    return TaxCalculation(
        tax_rule_id=rule.id,
        tax_name=rule.name,
        taxable_amount=taxable_amount,
        tax_amount=taxable_amount * rule.percentage / 100,
        tax_percentage=rule.percentage,
        is_compounded=rule.is_compounded,
    )


def partition_rules(rules: Iterable[TaxRule]) -> Tuple[List[TaxRule], List[TaxRule]]:
    """Split rules into (non-compounded, compounded), keeping input order."""
    simple: List[TaxRule] = []
    compounded: List[TaxRule] = []
    for rule in rules:
        (compounded if rule.is_compounded else simple).append(rule)
    return simple, compounded


def evaluate(rules: Iterable[TaxRule], context: TaxContext) -> List[TaxCalculation]:
    """
    Compute the taxes that apply to an order.

    Non-compounded rules are each applied to ``context.amount``. Compounded
    rules are each applied to the amount plus all non-compounded tax; they
    never include one another. Amounts keep full float precision.

    Args:
        rules: Configured tax rules in their configured order
        context: Order amount, order type and item categories

    Returns:
        Non-compounded calculations followed by compounded ones, each group
        in input order

    Raises:
        PricingInputError: If the amount is negative or not finite, or the
            order type is unknown
    """
    if not math.isfinite(context.amount) or context.amount < 0:
        raise PricingInputError(f"Order amount must be a finite, non-negative number: {context.amount}")
    check_order_type(context.order_type)

    applicable: List[TaxRule] = []
    for rule in rules:
        if not is_valid_tax_rule(rule):
            logger.warning(f"Skipping invalid tax rule {rule.id!r} ({rule.name})")
            continue
        if is_applicable(rule, context):
            applicable.append(rule)
        else:
            logger.debug(f"Tax rule {rule.id!r} does not apply to this order")

    simple, compounded = partition_rules(applicable)

    calculations = [_calculate(rule, context.amount) for rule in simple]
    compound_base = context.amount + sum_amounts(calc.tax_amount for calc in calculations)
    calculations.extend(_calculate(rule, compound_base) for rule in compounded)
    return calculations


def total_tax(calculations: Iterable[TaxCalculation]) -> float:
    return sum_amounts(calc.tax_amount for calc in calculations)
