#!/usr/bin/env python3
"""
Answering Machine - Main Entry Point
====================================

Command-line interface for managing the rules file and trying rules
out without a chat client.

Usage:
    python main.py --list                     # Show the current rules
    python main.py --validate [FILE]          # Check a rules file
    python main.py --test "ping"              # Run one message through the rules
    python main.py --import URL [--dry-run]   # Merge a remote rule set
    python main.py --debug-mode enable        # Toggle verbose logging
    python main.py --run                      # Console host reading stdin
"""

import argparse
import json
import signal
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import RULES_FILE_NAME, get_default_config_dir
from core.exceptions import AnsweringMachineError
from core.logging import setup_logging
from rules.validator import validate_rules
from services.dispatcher import Channel, Network
from services.machine import AnsweringMachine
from services.message_handler import IncomingMessage


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Answering Machine - rule-based chat auto-responder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --list
  python main.py --validate rules.json
  python main.py --test "order pizza and soda" --sender Alice
  python main.py --import https://example.org/rules.json --dry-run
  python main.py --run --server libera --join "#general,#help"
        """
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        "--list",
        action="store_true",
        help="List the current rules"
    )
    mode_group.add_argument(
        "--validate",
        nargs="?",
        const="",
        metavar="FILE",
        help="Validate a rules file (default: the configured rules file)"
    )
    mode_group.add_argument(
        "--test",
        metavar="MESSAGE",
        help="Run one message through the rules and print the response"
    )
    mode_group.add_argument(
        "--import",
        dest="import_url",
        metavar="URL",
        help="Fetch rules from a whitelisted URL and merge them in"
    )
    mode_group.add_argument(
        "--debug-mode",
        choices=["enable", "disable", "status"],
        help="Show or change the persisted debug flag"
    )
    mode_group.add_argument(
        "--run",
        action="store_true",
        help="Read '<channel> <sender> <text>' lines from stdin and answer them"
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        metavar="PATH",
        help="Storage directory for config.yaml and rules.json"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --import: show the merge result without saving"
    )
    parser.add_argument("--server", default="libera", help="Network name (default: libera)")
    parser.add_argument("--channel", default="#my-channel", help="Origin channel for --test")
    parser.add_argument("--sender", default="someone", help="Sender nickname for --test")
    parser.add_argument("--nick", default="AnsweringMachine", help="Bot nickname")
    parser.add_argument(
        "--join",
        default="",
        help="Comma-separated channels known to the console host"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        help="Directory for log files"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for this run"
    )

    return parser.parse_args(argv)


def print_to_console(text: str, destination_id) -> None:
    """Send primitive used by the CLI: print instead of sending."""
    print(f"-> [{destination_id}] {text}", flush=True)


def build_network(args: argparse.Namespace, extra_channels=()) -> Network:
    """Network context for the console host."""
    names = [name.strip() for name in args.join.split(",") if name.strip()]
    names.extend(extra_channels)

    network = Network(name=args.server, nick=args.nick)
    for name in names:
        if network.find_channel(name) is None:
            network.channels.append(Channel(name=name, id=name))
    return network


def run_list(machine: AnsweringMachine) -> int:
    """Print the current rules."""
    rules = machine.store.get_rules()

    print(f"\nRules file: {machine.store.rules_path}")
    print("-" * 50)
    if not rules:
        print("  (no rules)")
    for number, rule in enumerate(rules, start=1):
        target = rule.response_channel or rule.listen_channel
        flags = f" /{rule.trigger_flags}" if rule.trigger_flags else ""
        print(f"  {number}. [{rule.server}] {rule.listen_channel}: /{rule.trigger_text}/{flags}")
        print(f"     -> {target}: {rule.response_text}")
    print()
    return 0


def run_validate(path: Path) -> int:
    """Validate a rules file and report the first problem."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        print(f"✗ File not found: {path}")
        return 1
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON in {path}: {e}")
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"✗ Could not read {path}: {e}")
        return 1

    result = validate_rules(data)
    if not result.is_valid:
        print(f"✗ {result.error}")
        return 1

    print(f"✓ {path}: {len(data)} valid rules")
    return 0


def run_test_message(machine: AnsweringMachine, args: argparse.Namespace) -> int:
    """Run a single message through the rule set."""
    network = build_network(args, extra_channels=[args.channel])
    message = IncomingMessage(
        server=args.server,
        origin_channel=args.channel,
        sender_nick=args.sender,
        text=args.test,
    )

    print(f"\nTest Message: {message}")
    print("-" * 50)

    rule = machine.handler.handle(network, message)
    if rule is None:
        print("No rule fired.")
        return 1

    print(f"Matched rule: {rule.describe()}")
    return 0


def run_import(machine: AnsweringMachine, url: str, dry_run: bool) -> int:
    """Import rules from a URL."""
    try:
        result = machine.importer.import_rules(url, dry_run=dry_run)
    except AnsweringMachineError as e:
        print(f"✗ {e}")
        return 1

    print(f"✓ {result.summary}")
    return 0


def run_debug_mode(machine: AnsweringMachine, action: str) -> int:
    """Show or toggle the persisted debug flag."""
    if action == "status":
        print(machine.settings.debug_status())
    else:
        print(machine.settings.set_debug(action == "enable"))
    return 0


def run_console(machine: AnsweringMachine, args: argparse.Namespace) -> int:
    """
    Console host: each stdin line is '<channel> <sender> <text>'.

    Channels are added to the directory as they are seen, so responses
    to other channels only resolve for channels given with --join or
    already seen on input.
    """
    network = build_network(args)
    listener = machine.listeners.listener_for(network)
    print(machine.listeners.start(network))

    def shutdown(signum, frame):
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, shutdown)

    try:
        for line in sys.stdin:
            parts = line.rstrip("\n").split(" ", 2)
            if len(parts) < 3:
                print("Expected: <channel> <sender> <text>")
                continue

            channel, sender, text = parts
            if network.find_channel(channel) is None:
                network.channels.append(Channel(name=channel, id=channel))

            listener(IncomingMessage(args.server, channel, sender, text))
    except KeyboardInterrupt:
        pass
    finally:
        print(machine.listeners.stop(network))

    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(
        log_dir=args.log_dir,
        log_level="DEBUG" if args.debug else "INFO",
    )

    config_dir = Path(args.config_dir) if args.config_dir else get_default_config_dir()

    if args.validate is not None:
        path = Path(args.validate) if args.validate else config_dir / RULES_FILE_NAME
        return run_validate(path)

    machine = AnsweringMachine(str(config_dir), send=print_to_console)
    machine.start(watch=args.run)

    try:
        if args.list:
            return run_list(machine)
        if args.test is not None:
            return run_test_message(machine, args)
        if args.import_url:
            return run_import(machine, args.import_url, args.dry_run)
        if args.debug_mode:
            return run_debug_mode(machine, args.debug_mode)
        if args.run:
            return run_console(machine, args)
    finally:
        machine.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
