"""Argument parser configuration for the mail-extractor CLI"""

import argparse

from mail_extractor import __version__


## Argument Adding Utilities

def add_limit_argument(parser: argparse.ArgumentParser, default: int, what: str) -> None:
    """Add limit argument for the number of rows to display."""

    parser.add_argument(
        "--limit",
        type=int,
        default=default,
        help=f"Number of {what} to display (default: {default})"
    )


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """Add options that override the stored mailbox settings for one run."""

    group = parser.add_argument_group("connection", "Override stored settings")
    group.add_argument("--server", help="POP3 server host name")
    group.add_argument("--port", type=int, help="POP3 server port")
    group.add_argument("--username", help="Mailbox user name")
    group.add_argument("--password", help="Mailbox password")
    group.add_argument("--app-password", dest="app_password", help="App password (takes precedence)")
    group.add_argument(
        "--ssl",
        dest="use_ssl",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use POP3 over TLS",
    )


## Command Setup Functions

def setup_settings_commands(subparsers) -> None:
    """Setup settings and config commands."""

    settings_parser = subparsers.add_parser(
        "settings",
        help="Show or change mailbox settings",
        description="Mailbox credentials and import policy stored in the database"
    )
    settings_sub = settings_parser.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Show all settings (passwords masked)")
    set_parser = settings_sub.add_parser("set", help="Change one setting")
    set_parser.add_argument("key", help="Setting name, e.g. pop3_server")
    set_parser.add_argument("value", help="New value")

    config_parser = subparsers.add_parser(
        "config",
        help="Show or change application config",
        description="Timeouts, scheduler intervals, log level and database path"
    )
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the config file contents")
    config_set = config_sub.add_parser("set", help="Change one value by dotted path")
    config_set.add_argument("key", help="Dotted path, e.g. network.read_timeout")
    config_set.add_argument("value", help="New value (JSON literal or plain string)")
    config_sub.add_parser("reset", help="Restore every value to its default")


def setup_sync_commands(subparsers) -> None:
    """Setup test-connection, import, cron and run commands."""

    test_parser = subparsers.add_parser(
        "test-connection",
        help="Check that the mailbox accepts the login",
        description="Connect, authenticate and disconnect without fetching anything"
    )
    add_connection_arguments(test_parser)

    subparsers.add_parser(
        "import",
        help="Import emails now",
        description="Fetch every message in the mailbox and store it"
    )
    subparsers.add_parser(
        "cron",
        help="Run one scheduled tick",
        description="Import if due, then apply retention cleanup. Suitable for crontab."
    )
    subparsers.add_parser(
        "run",
        help="Run the scheduler in the foreground",
        description="Fire the import and cleanup jobs on their intervals until interrupted"
    )


def setup_view_commands(subparsers) -> None:
    """Setup emails, show and logs commands."""

    emails_parser = subparsers.add_parser(
        "emails",
        help="List imported emails",
        description="List imported emails, newest first"
    )
    add_limit_argument(emails_parser, default=20, what="emails")
    emails_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")

    show_parser = subparsers.add_parser("show", help="Show one imported email")
    show_parser.add_argument("uid", help="Mailbox UID of the email")

    logs_parser = subparsers.add_parser("logs", help="Show the import log")
    add_limit_argument(logs_parser, default=50, what="entries")


def setup_maintenance_commands(subparsers) -> None:
    """Setup init and cleanup commands."""

    subparsers.add_parser("init", help="Create the database and default settings")

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Delete old emails now",
        description="Delete emails older than N days (default: the cleanup_days setting)"
    )
    cleanup_parser.add_argument("--days", type=int, help="Age threshold in days")


def setup_argument_parser() -> argparse.ArgumentParser:
    """Build the top-level parser."""

    parser = argparse.ArgumentParser(
        prog="mail-extractor",
        description="Import emails from a POP3 mailbox into a local database",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", dest="db_path", help="Database file (overrides config)")
    parser.add_argument("--log-level", dest="log_level", help="Log level for app.log")

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    setup_maintenance_commands(subparsers)
    setup_settings_commands(subparsers)
    setup_sync_commands(subparsers)
    setup_view_commands(subparsers)

    return parser
