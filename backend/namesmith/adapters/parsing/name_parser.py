"""
Name List Parser
Extracts candidate business names from a numbered-list model response
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ParsedNames:
    """Result of parsing one model response"""
    names: List[str] = field(default_factory=list)
    discarded_lines: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.names


class NameParser:
    """
    Strict line-based parser.

    Each line must look like "<number>. <name>" or "<number>) <name>".
    Anything else (headings, prose, bullet points, blank lines) is discarded
    rather than guessed at.
    """

    LINE_PATTERN = re.compile(r"^\s*\d+[\.\)]\s*(.+)$")

    # Markdown emphasis or quotes wrapping the whole name
    WRAPPER_PATTERN = re.compile(r"^(\*\*|__|\*|_|\"|'|`)(.+?)\1$")

    MAX_NAME_LENGTH = 100

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit

    def parse(self, text: Optional[str]) -> ParsedNames:
        result = ParsedNames()
        if not text:
            return result

        for line in text.splitlines():
            if not line.strip():
                continue

            match = self.LINE_PATTERN.match(line)
            if not match:
                result.discarded_lines.append(line)
                continue

            name = self._clean(match.group(1))
            if not name or len(name) > self.MAX_NAME_LENGTH:
                result.discarded_lines.append(line)
                continue

            result.names.append(name)
            if self.limit and len(result.names) >= self.limit:
                break

        return result

    def _clean(self, raw: str) -> str:
        name = raw.strip()
        wrapped = self.WRAPPER_PATTERN.match(name)
        if wrapped:
            name = wrapped.group(2).strip()
        return name


def parse_names(text: Optional[str], limit: Optional[int] = None) -> List[str]:
    """Shortcut returning only the parsed names"""
    return NameParser(limit=limit).parse(text).names
