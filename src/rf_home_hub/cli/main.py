"""CLI entry point for the RF home hub."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from rf_home_hub.core.config import HubConfig, load_config
from rf_home_hub.core.exceptions import HubError, TransportOpenError
from rf_home_hub.ui.display import get_err_console, print_error


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="RF Home Hub - 433 MHz codes, switches and alarms"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="JSON config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="DuckDB path (overrides config)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=str,
        default=None,
        help="Serial port of the RF receiver (e.g., /dev/ttyUSB0)",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the in-memory mock transport instead of serial hardware",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        "--debug",
        dest="verbose",
        action="store_true",
        help="Enable verbose output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Run the hub
    run_parser = subparsers.add_parser("run", help="Run the hub until interrupted")
    run_parser.add_argument(
        "--inject",
        type=str,
        nargs="+",
        default=None,
        help="Codes to replay through the mock transport after start",
    )

    # Serial ports
    subparsers.add_parser("ports", help="List serial ports")

    # Cards
    cards_parser = subparsers.add_parser("cards", help="Manage cards")
    cards_sub = cards_parser.add_subparsers(dest="action", required=True)
    cards_sub.add_parser("list", help="List cards")
    for action, help_text in (
        ("arm", "Arm an alarm card"),
        ("disarm", "Disarm an alarm card"),
        ("remove", "Remove a card and its codes"),
    ):
        action_parser = cards_sub.add_parser(action, help=help_text)
        action_parser.add_argument("shortname", help="Card shortname")

    add_switch_parser = cards_sub.add_parser("add-switch", help="Add a switch card")
    add_switch_parser.add_argument("shortname", help="Card shortname")
    add_switch_parser.add_argument("on_code", help="RF code that turns the switch on")
    add_switch_parser.add_argument("off_code", help="RF code that turns the switch off")
    add_alarm_parser = cards_sub.add_parser("add-alarm", help="Add an alarm card")
    add_alarm_parser.add_argument("shortname", help="Card shortname")
    add_alarm_parser.add_argument("trigger_code", help="RF code sent by the sensor")
    add_alarm_parser.add_argument(
        "--armed",
        action="store_true",
        help="Arm the alarm right away",
    )
    for add_parser in (add_switch_parser, add_alarm_parser):
        add_parser.add_argument("--name", type=str, default=None, help="Display name")
        add_parser.add_argument("--room", type=str, default=None, help="Room label")
        add_parser.add_argument(
            "--img",
            type=str,
            default=None,
            help="Image file relative to the assets dir",
        )

    # Codes
    codes_parser = subparsers.add_parser("codes", help="Manage observed RF codes")
    codes_sub = codes_parser.add_subparsers(dest="action", required=True)
    list_codes_parser = codes_sub.add_parser("list", help="List observed codes")
    list_codes_parser.add_argument(
        "--hide-ignored",
        action="store_true",
        help="Do not show ignored codes",
    )
    for action, help_text in (
        ("ignore", "Ignore codes"),
        ("unignore", "Stop ignoring codes"),
        ("remove", "Forget codes"),
    ):
        action_parser = codes_sub.add_parser(action, help=help_text)
        action_parser.add_argument("codes", nargs="+", help="RF codes")

    # Webhooks
    hooks_parser = subparsers.add_parser("hooks", help="Manage webhooks")
    hooks_sub = hooks_parser.add_subparsers(dest="action", required=True)
    hooks_sub.add_parser("list", help="List webhooks")
    add_hook_parser = hooks_sub.add_parser("add", help="Register a webhook URL")
    add_hook_parser.add_argument("name", help="Hook name (code-detected, alarm-advise)")
    add_hook_parser.add_argument("url", help="URL to POST to")
    remove_hook_parser = hooks_sub.add_parser("remove", help="Unregister webhooks")
    remove_hook_parser.add_argument("name", help="Hook name")
    remove_hook_parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="URL to remove (omit to remove every URL of the hook)",
    )

    # Sending
    send_parser = subparsers.add_parser("send", help="Transmit a raw RF code")
    send_parser.add_argument("code", help="RF code")

    switch_parser = subparsers.add_parser("switch", help="Turn a switch card on or off")
    switch_parser.add_argument("shortname", help="Switch card shortname")
    switch_parser.add_argument("state", choices=["on", "off"], help="Target state")

    return parser


def resolve_config(args: argparse.Namespace) -> HubConfig:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)

    overrides: dict[str, Any] = {}
    if args.verbose:
        overrides["debug"] = True
    if args.db:
        overrides["db_path"] = args.db
    if args.mock:
        overrides["transport"] = "mock"
    if args.port:
        overrides["serial"] = config.serial.model_copy(update={"port": args.port})

    return config.model_copy(update=overrides) if overrides else config


async def _cards_command(config: HubConfig, args: argparse.Namespace) -> None:
    from rf_home_hub.hub import Hub
    from rf_home_hub.storage import AlarmCard, AlarmDevice, SwitchCard, SwitchDevice
    from rf_home_hub.transport.mock import MockTransport
    from rf_home_hub.ui.display import display_cards, print_success

    hub = Hub(config, transport=MockTransport())
    hub.open_db()
    try:
        if args.action == "list":
            display_cards(await hub.cards.list_cards())
        elif args.action in ("arm", "disarm"):
            card = await hub.cards.set_armed(args.shortname, args.action == "arm")
            print_success(f"{card.shortname} {'armed' if card.device.armed else 'disarmed'}")
        elif args.action == "remove":
            await hub.cards.remove(args.shortname)
            print_success(f"Removed card {args.shortname}")
        elif args.action == "add-switch":
            card = await hub.cards.insert(
                SwitchCard(
                    shortname=args.shortname,
                    name=args.name,
                    room=args.room,
                    img=args.img,
                    device=SwitchDevice(on_code=args.on_code, off_code=args.off_code),
                )
            )
            print_success(f"Added switch {card.shortname} (on {args.on_code}, off {args.off_code})")
        elif args.action == "add-alarm":
            card = await hub.cards.insert(
                AlarmCard(
                    shortname=args.shortname,
                    name=args.name,
                    room=args.room,
                    img=args.img,
                    device=AlarmDevice(trigger_code=args.trigger_code, armed=args.armed),
                )
            )
            print_success(f"Added alarm {card.shortname} (trigger {args.trigger_code})")
    finally:
        await hub.webhooks.close()
        hub.db.close()


async def _codes_command(config: HubConfig, args: argparse.Namespace) -> None:
    from rf_home_hub.storage import CardStore, CodeStore, HubDB
    from rf_home_hub.ui.display import display_codes, print_success, print_warning

    with HubDB(config.db_path) as db:
        codes = CodeStore(db)

        if args.action == "list":
            records = await codes.list_codes(include_ignored=not args.hide_ignored)
            assignments: dict[str, str] = {}
            for card in await CardStore(db).list_cards():
                for code in card.bound_codes():
                    assignments.setdefault(code, card.shortname)
            display_codes(records, assignments)

        elif args.action in ("ignore", "unignore"):
            ignored = args.action == "ignore"
            for code in args.codes:
                if await codes.set_ignored(code, ignored):
                    print_success(f"{code} {'ignored' if ignored else 'no longer ignored'}")
                else:
                    print_warning(f"{code} has not been observed")

        elif args.action == "remove":
            removed = await codes.remove_where(args.codes)
            print_success(f"Removed {removed} code(s)")


def _hooks_command(config: HubConfig, args: argparse.Namespace) -> None:
    from rf_home_hub.notify.webhooks import WebhookRegistry
    from rf_home_hub.ui.display import display_hooks, print_success, print_warning

    registry = WebhookRegistry(config.webhooks_path)

    if args.action == "list":
        display_hooks(registry.hooks())
    elif args.action == "add":
        if registry.add(args.name, args.url):
            print_success(f"Registered {args.url} for {args.name}")
        else:
            print_warning(f"{args.url} already registered for {args.name}")
    elif args.action == "remove":
        if registry.remove(args.name, args.url):
            print_success(f"Removed {args.url or 'all URLs'} from {args.name}")
        else:
            print_warning(f"Nothing registered for {args.name}")


async def _send_command(config: HubConfig, args: argparse.Namespace) -> None:
    from rf_home_hub.hub import Hub
    from rf_home_hub.ui.display import print_success

    hub = Hub(config.model_copy(update={"seed_demo_cards": False}))
    try:
        await hub.start()
        if args.command == "send":
            await hub.send_code(args.code)
            print_success(f"Sent {args.code}")
        else:
            card = await hub.switch(args.shortname, args.state == "on")
            print_success(f"{card.shortname} turned {args.state}")
    finally:
        await hub.stop()


def main(argv: list[str] | None = None) -> None:
    """RF Home Hub CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = resolve_config(args)

        if args.command == "run":
            from rf_home_hub.hub import run_hub_cli

            asyncio.run(run_hub_cli(config, inject=args.inject))

        elif args.command == "ports":
            from rf_home_hub.transport.serial_line import list_serial_ports
            from rf_home_hub.ui.display import display_ports

            display_ports(list_serial_ports())

        elif args.command == "cards":
            asyncio.run(_cards_command(config, args))

        elif args.command == "codes":
            asyncio.run(_codes_command(config, args))

        elif args.command == "hooks":
            _hooks_command(config, args)

        elif args.command in ("send", "switch"):
            asyncio.run(_send_command(config, args))

    except KeyboardInterrupt:
        print("\nStopped")
    except TransportOpenError as e:
        print_error(f"Error: {e}")
        get_err_console().print("[dim]Check the port with: rf-hub ports[/]")
        sys.exit(1)
    except HubError as e:
        print_error(f"Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
