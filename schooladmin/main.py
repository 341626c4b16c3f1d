#!/usr/bin/env python3
"""
School Administration Console - Main Entry Point

Usage:
    schooladmin login                       # Sign in (prompts for credentials)
    schooladmin dashboard                   # Totals for the signed-in account
    schooladmin students list gender=female # List with server-side filters
    schooladmin classes add name=5A grade=5 # Create from key=value fields
    schooladmin shell                       # Interactive mode
"""

import argparse
import asyncio
import sys

from schooladmin import __version__
from schooladmin.config import ConsoleConfig
from schooladmin.logging_config import logger, setup_logging
from schooladmin.preferences import DEFAULT_COLUMNS


ENTITIES = ("schools", "classes", "students", "teachers")
ROSTERS = ("students", "teachers")


def _add_entity_parser(subparsers, entity: str) -> None:
    entity_parser = subparsers.add_parser(entity, help=f"Manage {entity}")
    actions = entity_parser.add_subparsers(dest="action", help="Actions")

    list_parser = actions.add_parser("list", help=f"List {entity}")
    if entity in ROSTERS:
        list_parser.add_argument("filters", nargs="*", metavar="key=value",
                                 help="Server-side filters")
    list_parser.add_argument("--page", type=int, default=1, help="Page to show (default: 1)")
    if entity == "teachers":
        list_parser.add_argument("--search", help="Case-insensitive name search")
        list_parser.add_argument("--subject", help="Only this subject")

    add_parser = actions.add_parser("add", help=f"Create one of the {entity}")
    add_parser.add_argument("fields", nargs="+", metavar="key=value")

    update_parser = actions.add_parser("update", help="Change fields of an entry")
    update_parser.add_argument("id")
    update_parser.add_argument("fields", nargs="+", metavar="key=value")

    delete_parser = actions.add_parser("delete", help="Delete an entry")
    delete_parser.add_argument("id")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    if entity in ROSTERS:
        import_parser = actions.add_parser("import", help="Bulk import from .xlsx, .xls or .csv")
        import_parser.add_argument("path")

        template_parser = actions.add_parser("template", help="Download the import template")
        template_parser.add_argument("dest", nargs="?", help="File or directory to save to")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the console"""
    parser = argparse.ArgumentParser(
        prog="schooladmin",
        description="School administration console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  schooladmin login -e admin                         Login (password is prompted)
  schooladmin status                                 Show who is signed in
  schooladmin students list class_id=3 --page 2      Filtered, second page
  schooladmin teachers list --subject Math           Client-side subject filter
  schooladmin students import roster.xlsx            Bulk import
  schooladmin columns teachers show education        Show a hidden column
  schooladmin shell                                  Interactive mode
        """
    )

    parser.add_argument("--config", type=str, help="Path to config file")
    parser.add_argument("--api-url", type=str, help="API base URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON")
    parser.add_argument("--log-file", type=str, help="Also log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    login_parser = subparsers.add_parser("login", help="Login to the API")
    login_parser.add_argument("--email", "-e", help="Login name or email")
    login_parser.add_argument("--password", "-p", help="Password (prompted if omitted)")

    subparsers.add_parser("logout", help="Forget the stored session")
    subparsers.add_parser("status", help="Show authentication status")
    subparsers.add_parser("whoami", help="Show current user info")
    subparsers.add_parser("dashboard", help="Show totals")

    for entity in ENTITIES:
        _add_entity_parser(subparsers, entity)

    columns_parser = subparsers.add_parser("columns", help="Choose visible table columns")
    columns_parser.add_argument("table", choices=sorted(DEFAULT_COLUMNS))
    columns_parser.add_argument("action", nargs="?", default="list",
                                choices=["list", "show", "hide", "reset"])
    columns_parser.add_argument("column", nargs="?")

    subparsers.add_parser("shell", help="Interactive mode")

    return parser


def load_config(args) -> ConsoleConfig:
    config = ConsoleConfig.load_default()
    if args.config:
        config.load_from_file(args.config)
    if args.api_url:
        config.api_base_url = args.api_url
    if args.verbose:
        config.verbose = True
    if args.json_logs:
        config.json_logs = True
    if args.log_file:
        config.log_file = args.log_file
    return config


def main():
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args()

    config = load_config(args)
    setup_logging(config.effective_log_level, config.log_file, config.json_logs)

    from schooladmin.app import ConsoleApp

    app = ConsoleApp(config)

    try:
        code = asyncio.run(app.run(args))
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        sys.exit(0)
    except Exception as e:
        logger.log_error_with_context(e, "main", command=args.command)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
