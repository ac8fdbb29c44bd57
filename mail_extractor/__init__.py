"""POP3 mailbox importer: fetch, parse, deduplicate and store messages."""

__version__ = "0.1.0"
