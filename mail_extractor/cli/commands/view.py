"""Viewing commands - imported emails and the import log."""

from typing import Any, Dict

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mail_extractor.utils.console import print_error, print_status
from mail_extractor.utils.logging import async_log_call

from .base import BaseCommandHandler

DATE_FORMAT = "%Y-%m-%d %H:%M"


class EmailsCommandHandler(BaseCommandHandler):
    """Page through imported emails, newest first."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        limit = self.validate_positive_int(args.get("limit", 20), "limit")
        page = self.validate_positive_int(args.get("page", 1), "page")

        total = await self.store.get_emails_count()
        messages = await self.store.get_emails(limit=limit, offset=(page - 1) * limit)

        if not messages:
            await print_status("No emails imported yet." if total == 0 else "No emails on this page.", self.console)
            return True

        table = Table(title=f"Emails (page {page}, {total} total)", expand=True)
        table.add_column("UID", style="dim", no_wrap=True)
        table.add_column("Date", no_wrap=True)
        table.add_column("From")
        table.add_column("Subject")

        for message in messages:
            table.add_row(
                Text(message.uid),
                message.date.strftime(DATE_FORMAT),
                Text(message.sender or "-"),
                Text(message.subject or "(no subject)"),
            )

        self.console.print(table)
        return True


class EmailShowCommandHandler(BaseCommandHandler):
    """Print one imported email."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        message = await self.store.get_email(args["uid"])
        if message is None:
            await print_error(f"No email with uid {args['uid']}", self.console)
            return False

        header = Text()
        header.append(f"From:    {message.sender}\n")
        header.append(f"To:      {message.recipient}\n")
        header.append(f"Date:    {message.date.strftime(DATE_FORMAT)} UTC\n")
        header.append(f"Subject: {message.subject}")

        self.console.print(Panel(header, title=message.uid))
        self.console.print(Text(message.body))
        return True


class LogsCommandHandler(BaseCommandHandler):
    """Show the most recent import log entries."""

    @async_log_call
    async def execute(self, args: Dict[str, Any]) -> bool:
        limit = self.validate_positive_int(args.get("limit", 50), "limit")
        entries = await self.store.get_recent_logs(limit=limit)

        if not entries:
            await print_status("The import log is empty.", self.console)
            return True

        table = Table(title="Import log", expand=True)
        table.add_column("Date", no_wrap=True)
        table.add_column("Type", no_wrap=True)
        table.add_column("Message")

        styles = {"error": "red", "import": "green", "cleanup": "cyan"}
        for entry in entries:
            table.add_row(
                entry["log_date"].strftime(DATE_FORMAT),
                Text(entry["log_type"], style=styles.get(entry["log_type"], "")),
                Text(entry["log_message"]),
            )

        self.console.print(table)
        return True
