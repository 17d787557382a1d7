"""Exceptions raised by the pricing core."""


class PricingError(Exception):
    """Base class for all pricing errors."""


class PricingInputError(PricingError, ValueError):
    """Invalid caller input such as a negative amount, quantity or price."""


class TaxRuleConfigurationError(PricingError, ValueError):
    """A tax rule that must be rejected when it is saved."""


class ModifierSelectionError(PricingError, ValueError):
    """A modifier selection that violates its group's selection policy."""


class CartStateError(PricingError):
    """A mutation attempted on a cart that has already been submitted."""
