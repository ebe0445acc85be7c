"""Command-line interface for cartflow."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import Settings
from .errors import CartflowError, StepValidationError
from .fixtures import demo_items, demo_profile, load_cart_file
from .models import SHIPPING_METHODS
from .orders import StubOrderSubmitter
from .sessions import SessionRegistry
from .utils import format_breakdown, format_line_item, format_money, format_progress

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_quote(args: argparse.Namespace, settings: Settings) -> int:
    """Print the price breakdown for a cart file or the demo cart."""
    try:
        if args.cart:
            items, saved = load_cart_file(Path(args.cart))
            logger.debug("loaded %d cart lines from %s", len(items) + len(saved), args.cart)
        else:
            items, saved = demo_items(), []

        registry = SessionRegistry(rules=settings.rules)
        session = registry.create(items=items, saved=saved)
        cart = session.cart
        if args.promo:
            cart.apply_promo(args.promo)

        override = None
        if args.method:
            if args.method not in SHIPPING_METHODS:
                print(
                    f"Error: unknown shipping method '{args.method}'. "
                    f"Choose from: {', '.join(SHIPPING_METHODS)}",
                    file=sys.stderr,
                )
                return 1
            override = SHIPPING_METHODS[args.method].fee

        breakdown = cart.breakdown(shipping_fee_override=override)

        if args.json:
            data = {
                "items": [item.to_dict() for item in cart.active],
                "saved_for_later": [item.to_dict() for item in cart.saved_for_later],
                "promo": cart.promo.to_dict(),
                "totals": breakdown.rounded().to_dict(),
                "exact": breakdown.to_dict(),
            }
            print(json.dumps(data, indent=2))
            return 0

        print(f"Cart ({cart.item_count} {'item' if cart.item_count == 1 else 'items'}):")
        for item in cart.active:
            print(format_line_item(item))
        if cart.saved_for_later:
            print(f"Saved for later ({len(cart.saved_for_later)}):")
            for item in cart.saved_for_later:
                print(format_line_item(item))
        print()
        print(format_breakdown(breakdown, cart.promo.code if cart.promo.applied else None))
        if cart.has_out_of_stock:
            print()
            print("Note: remove out-of-stock items before checking out.")
        return 0

    except CartflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_demo(args: argparse.Namespace, settings: Settings) -> int:
    """Walk the demo cart through a full checkout with the stub order API."""
    try:
        registry = SessionRegistry(rules=settings.rules, submitter=StubOrderSubmitter())
        session = registry.create(items=demo_items(), profile=demo_profile())
        cart = session.cart

        # The sample cart carries an out-of-stock line, which blocks checkout.
        for item in list(cart.active):
            if not item.in_stock:
                cart.save_for_later(item.id)
                if not args.json:
                    print(f"Saved '{item.name}' for later (out of stock)")
        if args.promo:
            cart.apply_promo(args.promo)

        wizard = session.start_checkout()
        if not args.json:
            print(format_progress(wizard))
        wizard.continue_step()  # shipping, prefilled from the profile
        wizard.continue_step()  # billing, same as shipping
        wizard.select_shipping_method(args.method)
        wizard.continue_step()
        wizard.continue_step()  # payment
        if not args.json:
            print(format_progress(wizard))

        confirmation = session.place_order(registry.submitter)

        if args.json:
            print(json.dumps(wizard.to_dict(), indent=2))
            return 0

        print()
        print(f"Order confirmed: {confirmation.order_number}")
        print(f"Ship to: {wizard.shipping_address.full_name}, {wizard.shipping_address.city}")
        print(f"Delivery: {wizard.shipping_method.label} ({confirmation.estimated_delivery})")
        print()
        print(format_breakdown(wizard.breakdown(), wizard.order.promo_code if wizard.order else None))
        print()
        print(f"Confirmation sent to {confirmation.email}; charged {format_money(wizard.breakdown().total)}")
        return 0

    except StepValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        for field_name, message in sorted(e.field_errors.items()):
            print(f"  {field_name}: {message}", file=sys.stderr)
        return 1
    except CartflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Start the API server."""
    try:
        import uvicorn

        print("Starting cartflow API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "cartflow.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
            workers=1,  # Sessions live in process memory
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cartflow",
        description="Price carts and run checkouts for the storefront.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # quote
    quote_parser = subparsers.add_parser("quote", help="Show the price breakdown for a cart")
    quote_parser.add_argument(
        "--cart", "-c", help="Path to cart JSON (default: the demo cart)"
    )
    quote_parser.add_argument("--promo", help="Promo code to apply")
    quote_parser.add_argument(
        "--method", "-m", help="Shipping method id (default: cart free-shipping rule)"
    )
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # demo
    demo_parser = subparsers.add_parser(
        "demo", help="Run the demo cart through checkout and place an order"
    )
    demo_parser.add_argument(
        "--method", "-m", default="standard", help="Shipping method id (default: standard)"
    )
    demo_parser.add_argument("--promo", help="Promo code to apply")
    demo_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    configure_logging(settings, verbose=args.verbose)

    commands = {
        "quote": cmd_quote,
        "demo": cmd_demo,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args, settings)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
