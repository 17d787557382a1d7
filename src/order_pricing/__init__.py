"""
Order Pricing - restaurant order pricing and tax computation

Computes line-item totals, service charges and conditionally-applicable,
optionally compounded tax rules for POS carts and QR-ordering checkouts.
"""

__version__ = "0.1.0"

from . import pricing
from . import utils

__all__ = ["pricing", "utils"]
