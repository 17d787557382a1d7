"""Tests for tax rule validation and evaluation."""

import logging

import pytest

from order_pricing.pricing.errors import PricingInputError, TaxRuleConfigurationError
from order_pricing.pricing.models import TaxContext, TaxRule
from order_pricing.pricing.tax_rules import (
    check_tax_rule,
    evaluate,
    is_applicable,
    is_valid_tax_rule,
    partition_rules,
    total_tax,
    validate_tax_rule,
)


def _context(amount, order_type="dine_in", categories=("main-course",)):
    return TaxContext(amount=amount, order_type=order_type, categories=frozenset(categories))


class TestEvaluate:
    """Test cases for the tax rule evaluator."""

    def test_empty_rules(self):
        """No rules gives no calculations."""
        assert evaluate([], _context(100)) == []

    def test_compound_rule_uses_base_plus_simple_tax(self):
        """A 10% compound rule is charged on the amount plus 5% simple tax."""
        rules = [
            TaxRule(id="gst", name="GST", percentage=5),
            TaxRule(id="cess", name="Cess", percentage=10, is_compounded=True),
        ]
        calcs = evaluate(rules, _context(100))

        assert [c.tax_rule_id for c in calcs] == ["gst", "cess"]
        assert calcs[0].taxable_amount == 100
        assert calcs[0].tax_amount == pytest.approx(5.0)
        assert calcs[1].taxable_amount == pytest.approx(105.0)
        assert calcs[1].tax_amount == pytest.approx(10.5)
        assert total_tax(calcs) == pytest.approx(15.5)

    def test_compound_rules_do_not_stack(self):
        """Each compound rule uses the same compound base."""
        rules = [
            TaxRule(id="a", name="A", percentage=10, is_compounded=True),
            TaxRule(id="simple", name="Simple", percentage=10),
            TaxRule(id="b", name="B", percentage=10, is_compounded=True),
        ]
        calcs = evaluate(rules, _context(200))

        assert [c.tax_rule_id for c in calcs] == ["simple", "a", "b"]
        assert calcs[1].taxable_amount == pytest.approx(220.0)
        assert calcs[2].taxable_amount == pytest.approx(220.0)
        assert calcs[1].tax_amount == calcs[2].tax_amount

    def test_input_order_kept_within_groups(self):
        """Rules are not sorted by percentage or name."""
        rules = [
            TaxRule(id="z", name="Zeta", percentage=1),
            TaxRule(id="a", name="Alpha", percentage=20),
            TaxRule(id="m", name="Mid", percentage=7),
        ]
        assert [c.tax_rule_id for c in evaluate(rules, _context(10))] == ["z", "a", "m"]

    def test_min_amount_threshold(self):
        """min_amount excludes smaller orders and includes equal ones."""
        rules = [TaxRule(id="lux", name="Luxury", percentage=10, min_amount=100)]
        assert evaluate(rules, _context(99.99)) == []
        assert len(evaluate(rules, _context(100.00))) == 1

    def test_category_scoping(self):
        """A category-scoped rule needs one of its categories in the order."""
        rules = [TaxRule(id="vat", name="Alcohol VAT", percentage=25, categories=frozenset({"alcohol"}))]
        assert evaluate(rules, _context(80, categories={"main-course", "beverages"})) == []

        calcs = evaluate(rules, _context(80, categories={"main-course", "alcohol"}))
        assert len(calcs) == 1
        assert calcs[0].tax_amount == pytest.approx(20.0)

    def test_max_amount_caps_taxable_base(self):
        """max_amount caps the base, not the tax."""
        rules = [TaxRule(id="cap", name="Capped", percentage=10, max_amount=50)]
        calc = evaluate(rules, _context(200))[0]
        assert calc.taxable_amount == 50
        assert calc.tax_amount == pytest.approx(5.0)

    def test_max_amount_zero_caps_at_zero(self):
        """A max_amount of zero is a real cap, not an unset value."""
        rules = [TaxRule(id="cap", name="Capped", percentage=10, max_amount=0)]
        calc = evaluate(rules, _context(200))[0]
        assert calc.taxable_amount == 0
        assert calc.tax_amount == 0

    def test_compound_rule_cap_applies_to_compound_base(self):
        """max_amount on a compound rule caps the compound base."""
        rules = [
            TaxRule(id="gst", name="GST", percentage=10),
            TaxRule(id="cess", name="Cess", percentage=10, max_amount=100, is_compounded=True),
        ]
        calcs = evaluate(rules, _context(200))
        assert calcs[1].taxable_amount == 100
        assert calcs[1].tax_amount == pytest.approx(10.0)

    def test_order_type_scoping(self):
        """A dine-in rule does not apply to takeaway orders."""
        rules = [TaxRule(id="svc", name="Service Tax", percentage=10, applicable_on="dine_in")]
        assert evaluate(rules, _context(150, order_type="takeaway")) == []
        assert len(evaluate(rules, _context(150, order_type="dine_in"))) == 1

    def test_inactive_rule_skipped(self):
        """Inactive rules never apply."""
        rules = [TaxRule(id="off", name="Off", percentage=10, active=False)]
        assert evaluate(rules, _context(100)) == []

    def test_type_tag_has_no_effect(self):
        """The tax type label does not change the computation."""
        vat = TaxRule(id="x", name="X", percentage=8, type="VAT")
        custom = TaxRule(id="x", name="X", percentage=8, type="CUSTOM")
        assert evaluate([vat], _context(50))[0].tax_amount == evaluate([custom], _context(50))[0].tax_amount

    def test_unlisted_type_is_evaluated(self):
        """A rule typed outside the usual labels is applied like any other."""
        gst = TaxRule(id="gst", name="GST", percentage=5, type="GST")
        calculations = evaluate([gst], _context(100))
        assert [(c.tax_rule_id, c.tax_amount) for c in calculations] == [("gst", 5.0)]

    def test_negative_amount_rejected(self):
        """Negative amounts are an input error, not clamped."""
        with pytest.raises(PricingInputError):
            evaluate([TaxRule(id="gst", name="GST", percentage=5)], _context(-1))

    @pytest.mark.parametrize("amount", [float("nan"), float("inf")])
    def test_non_finite_amount_rejected(self, amount):
        """NaN and infinite amounts are an input error."""
        with pytest.raises(PricingInputError, match="finite"):
            evaluate([TaxRule(id="gst", name="GST", percentage=5)], _context(amount))

    def test_unknown_order_type_rejected(self):
        """Order type must be a known value."""
        with pytest.raises(PricingInputError):
            evaluate([], _context(10, order_type="drive_through"))

    def test_invalid_rule_skipped_with_warning(self, caplog):
        """A malformed rule is skipped instead of failing the order."""
        rules = [
            TaxRule(id="bad", name="Bad", percentage=150),
            TaxRule(id="gst", name="GST", percentage=5),
        ]
        with caplog.at_level(logging.WARNING, logger="order_pricing"):
            calcs = evaluate(rules, _context(100))
        assert [c.tax_rule_id for c in calcs] == ["gst"]
        assert "bad" in caplog.text

    def test_zero_amount(self):
        """A zero amount produces zero-valued calculations."""
        calcs = evaluate([TaxRule(id="gst", name="GST", percentage=5)], _context(0))
        assert calcs[0].tax_amount == 0

    def test_repeatable(self, sample_tax_rules):
        """Evaluating twice gives identical results."""
        context = _context(123.45, categories={"alcohol"})
        assert evaluate(sample_tax_rules, context) == evaluate(sample_tax_rules, context)


class TestApplicability:
    """Test cases for rule matching helpers."""

    def test_empty_categories_match_everything(self):
        """A rule without categories applies to any order."""
        rule = TaxRule(id="gst", name="GST", percentage=5, categories=frozenset())
        assert is_applicable(rule, _context(10, categories=()))

    def test_category_rule_with_no_order_categories(self):
        """A category-scoped rule does not apply to an order with no categories."""
        rule = TaxRule(id="vat", name="VAT", percentage=5, categories=frozenset({"alcohol"}))
        assert not is_applicable(rule, _context(10, categories=()))

    def test_partition_is_stable(self):
        """Partition keeps input order within each group."""
        rules = [
            TaxRule(id="c1", name="C1", percentage=1, is_compounded=True),
            TaxRule(id="s1", name="S1", percentage=1),
            TaxRule(id="c2", name="C2", percentage=1, is_compounded=True),
            TaxRule(id="s2", name="S2", percentage=1),
        ]
        simple, compounded = partition_rules(rules)
        assert [r.id for r in simple] == ["s1", "s2"]
        assert [r.id for r in compounded] == ["c1", "c2"]


class TestValidateTaxRule:
    """Test cases for save-time rule validation."""

    def test_valid_rule_returned(self):
        """A valid rule passes through unchanged."""
        rule = TaxRule(id="gst", name="GST", percentage=5, min_amount=10, max_amount=500)
        assert validate_tax_rule(rule) is rule

    @pytest.mark.parametrize("percentage", [-1, 100.01])
    def test_percentage_out_of_range(self, percentage):
        """Percentage must be within 0-100."""
        with pytest.raises(TaxRuleConfigurationError, match="percentage"):
            validate_tax_rule(TaxRule(id="t", name="T", percentage=percentage))

    def test_min_above_max(self):
        """min_amount may not exceed max_amount."""
        with pytest.raises(TaxRuleConfigurationError, match="exceeds"):
            validate_tax_rule(TaxRule(id="t", name="T", percentage=5, min_amount=200, max_amount=100))

    def test_unknown_scope(self):
        """applicable_on must be a known scope."""
        assert not is_valid_tax_rule(TaxRule(id="t", name="T", percentage=5, applicable_on="catering"))

    def test_blank_name(self):
        """A name is required when saving, but a nameless rule still evaluates."""
        rule = TaxRule(id="t", name="  ", percentage=5)
        with pytest.raises(TaxRuleConfigurationError, match="name"):
            validate_tax_rule(rule)
        assert is_valid_tax_rule(rule)
        assert [c.tax_amount for c in evaluate([rule], _context(100))] == [5.0]

    @pytest.mark.parametrize("tax_type", ["GST", "vat", "Luxury Levy"])
    def test_type_is_not_validated(self, tax_type):
        """Any type label is accepted, whether saving or evaluating."""
        rule = TaxRule(id="t", name="T", type=tax_type, percentage=5)
        assert validate_tax_rule(rule) is rule
        assert check_tax_rule(rule) is rule

    @pytest.mark.parametrize("field, value", [
        ("percentage", float("nan")),
        ("percentage", float("inf")),
        ("min_amount", float("nan")),
        ("max_amount", -1.0),
    ])
    def test_non_finite_or_negative_values(self, field, value):
        """Rule amounts must be finite and non-negative."""
        values = {"percentage": 5, field: value}
        with pytest.raises(TaxRuleConfigurationError):
            check_tax_rule(TaxRule(id="t", name="T", **values))

    def test_boundary_percentages_allowed(self):
        """0 and 100 are both valid percentages."""
        assert is_valid_tax_rule(TaxRule(id="t", name="T", percentage=0))
        assert is_valid_tax_rule(TaxRule(id="t", name="T", percentage=100))
