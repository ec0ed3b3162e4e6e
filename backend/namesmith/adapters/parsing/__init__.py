"""
Response Parsing Adapters
"""

from .name_parser import NameParser, ParsedNames, parse_names

__all__ = [
    "NameParser",
    "ParsedNames",
    "parse_names",
]
