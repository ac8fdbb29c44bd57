"""Domain validation utilities."""

from .email import EmailSanitizer
from .settings import parse_bool, parse_int

__all__ = ['EmailSanitizer', 'parse_bool', 'parse_int']
