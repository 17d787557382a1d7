"""
Command-line interface for order pricing.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Tuple

from . import __version__
from .pricing.documents import load_tax_rules_file
from .pricing.models import ORDER_TYPES
from .pricing.money import format_money
from .pricing.service import PricingService
from .utils.config import Config
from .utils.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="order-pricing",
        description="Order Pricing - restaurant cart totals and tax rule calculator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  order-pricing --version
  order-pricing calculate-tax --amount 100 --order-type dine_in --category main-course
  order-pricing calculate-tax --amount 250 --rules-file tax_rules.json --category alcohol
  order-pricing quote --cart-file cart.json --rules-file tax_rules.json --service-charge 10
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Order Pricing {__version__}",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--log-file",
        help="Log file path",
    )

    parser.add_argument(
        "--env-file",
        default=".env",
        help="Environment file with database and checkout settings (default: .env)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
    )

    # Tax calculator for a bare amount
    tax_parser = subparsers.add_parser(
        "calculate-tax",
        help="Show which tax rules apply to an order amount and what they charge",
    )
    tax_parser.add_argument(
        "--amount",
        type=float,
        required=True,
        help="Order amount before tax",
    )
    tax_parser.add_argument(
        "--order-type",
        choices=ORDER_TYPES,
        help="Order type (default: DEFAULT_ORDER_TYPE setting, else dine_in)",
    )
    tax_parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        default=[],
        help="Category present in the order (repeatable)",
    )
    _add_common_options(tax_parser)

    # Cart quote
    quote_parser = subparsers.add_parser(
        "quote",
        help="Compute line totals, service charge, taxes and final total for a cart JSON file",
    )
    quote_parser.add_argument(
        "--cart-file",
        required=True,
        help="Cart document (JSON) with an items list",
    )
    quote_parser.add_argument(
        "--order-type",
        choices=ORDER_TYPES,
        help="Override the cart's order type",
    )
    quote_parser.add_argument(
        "--service-charge",
        type=float,
        help="Override the service charge percentage",
    )
    _add_common_options(quote_parser)

    return parser


def _add_common_options(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--rules-file",
        help="Tax rules JSON file; when omitted, active rules are read from MongoDB",
    )
    subparser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )


def _build_service(rules_file: Optional[str], config: Config) -> Tuple[PricingService, str]:
    if rules_file:
        return PricingService(tax_rules=load_tax_rules_file(rules_file), config=config), rules_file
    source = f"MongoDB {config.get('mongo_db')}.{config.get('tax_rule_collection')}"
    return PricingService(config=config), source


def _print_box(header_lines: List[Tuple[str, Any]]) -> None:
    label_width = max(len(lbl) for lbl, _ in header_lines)
    inner_width = max(len(f" {lbl.ljust(label_width)} : {val}") for lbl, val in header_lines) + 1
    print("┌" + "─" * inner_width + "┐")
    for lbl, val in header_lines:
        line = f" {lbl.ljust(label_width)} : {val}"
        print(f"│{line.ljust(inner_width)}│")
    print("└" + "─" * inner_width + "┘")


def _print_taxes(taxes: List[Dict[str, Any]]) -> None:
    print("\nTAX BREAKDOWN")
    print("=" * 60)
    if not taxes:
        print("No applicable taxes for current configuration")
        return
    name_w = max(len(tax["taxName"]) for tax in taxes)
    for tax in taxes:
        label = f"{tax['taxName']} ({tax['taxPercentage']:.2f}%)"
        compound = " [compound]" if tax["isCompounded"] else ""
        print(
            f"{label.ljust(name_w + 10)} on {format_money(tax['taxableAmount']):>12}"
            f" = {format_money(tax['taxAmount']):>10}{compound}"
        )


def calculate_tax(
    amount: float,
    order_type: Optional[str],
    categories: List[str],
    rules_file: Optional[str],
    config: Config,
    as_json: bool = False,
) -> None:
    """
    Print the tax breakdown for an order amount.

    Args:
        amount: Order amount before tax
        order_type: dine_in, takeaway or delivery
        categories: Categories present in the order
        rules_file: Optional tax rules JSON file
        config: Loaded configuration
        as_json: Print JSON instead of the table view
    """
    service, source = _build_service(rules_file, config)
    result = service.calculate_tax(amount, order_type=order_type, categories=categories)

    if as_json:
        print(json.dumps(result, indent=2))
        return

    _print_box([
        ("Order Amount", format_money(result["amount"])),
        ("Order Type", result["order_type"]),
        ("Categories", ", ".join(result["categories"]) or "-"),
        ("Tax Rules", source),
    ])
    _print_taxes(result["taxes"])
    print("-" * 60)
    print(f"Total Tax:    {format_money(result['total_tax'])}")
    print(f"Final Amount: {format_money(result['final_amount'])}")


def quote_cart(
    cart_file: str,
    order_type: Optional[str],
    service_charge: Optional[float],
    rules_file: Optional[str],
    config: Config,
    as_json: bool = False,
) -> None:
    """
    Print a priced cart.

    Args:
        cart_file: Cart JSON file
        order_type: Overrides the cart's order type
        service_charge: Overrides the cart's service charge percentage
        rules_file: Optional tax rules JSON file
        config: Loaded configuration
        as_json: Print JSON instead of the table view
    """
    with open(cart_file, "r", encoding="utf-8") as fh:
        cart_document = json.load(fh)

    service, source = _build_service(rules_file, config)
    quote = service.quote_cart(
        cart_document,
        order_type=order_type,
        service_charge_percent=service_charge,
    )

    if as_json:
        print(json.dumps(quote, indent=2))
        return

    totals = quote["totals"]
    _print_box([
        ("Session", quote["session_id"]),
        ("Order Type", quote["order_type"]),
        ("Service Charge", f"{quote['service_charge_percent']:g}%"),
        ("Tax Rules", source),
    ])

    print("\nITEMS")
    print("=" * 60)
    if not quote["items"]:
        print("Cart is empty")
    for item in quote["items"]:
        print(f"{item['quantity']:>3} x {item['name']:<30} {format_money(item['item_total']):>12}")
        if item["modifiers"]:
            print(f"      + {', '.join(item['modifiers'])}")

    _print_taxes(totals["taxes"])

    print("-" * 60)
    print(f"Subtotal:       {format_money(totals['subtotal'])}")
    print(f"Service Charge: {format_money(totals['serviceCharge'])}")
    print(f"Total Tax:      {format_money(totals['totalTax'])}")
    print(f"Total:          {format_money(totals['totalAmount'])}")


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    config = Config(parsed_args.env_file)
    log_level = "DEBUG" if parsed_args.verbose else config.get("log_level")
    logger = setup_logging(level=log_level, log_file=parsed_args.log_file)

    try:
        if parsed_args.command == "calculate-tax":
            calculate_tax(
                amount=parsed_args.amount,
                order_type=parsed_args.order_type,
                categories=parsed_args.categories,
                rules_file=parsed_args.rules_file,
                config=config,
                as_json=parsed_args.json,
            )

        elif parsed_args.command == "quote":
            quote_cart(
                cart_file=parsed_args.cart_file,
                order_type=parsed_args.order_type,
                service_charge=parsed_args.service_charge,
                rules_file=parsed_args.rules_file,
                config=config,
                as_json=parsed_args.json,
            )

        elif not parsed_args.command:
            parser.print_help()
            return 1

    except Exception as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
