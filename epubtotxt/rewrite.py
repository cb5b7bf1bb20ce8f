"""
User-supplied regular-expression rewriting of raw markup.

A rules file alternates pattern and replacement lines::

    <br\\s*/?>

    <span class="pagenum">(\\d+)</span>
    [page $1]

An odd number of lines leaves the last pattern with an empty replacement,
so its matches are deleted.

Replacements refer to groups as ``$1``, ``$name`` or ``${name}``; ``$$`` is
a literal dollar sign and backslashes have no special meaning. References
to groups that do not exist or did not take part in the match expand to
nothing.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidPattern, RulesFileError

logger = logging.getLogger(__name__)

_TEMPLATE_REF = re.compile(r"\$(?:(\$)|\{(\w+)\}|(\w+))", re.ASCII)

# A template piece is literal text or a group reference (None: never matches)
TemplatePiece = Union[str, int, None]


def parse_template(replacement: str, regex: "re.Pattern[str]") -> list[TemplatePiece]:
    """
    Split a replacement into literal text and group references.

    Numeric names refer to group numbers, other names to named groups.
    A ``$`` that does not start a valid reference is kept literally.
    """
    pieces: list[TemplatePiece] = []
    position = 0
    for ref in _TEMPLATE_REF.finditer(replacement):
        pieces.append(replacement[position : ref.start()])
        position = ref.end()
        dollar, braced, bare = ref.groups()
        if dollar:
            pieces.append("$")
            continue
        name = braced or bare
        if name.isdigit():
            number = int(name)
            pieces.append(number if number <= regex.groups else None)
        else:
            pieces.append(regex.groupindex.get(name))
    pieces.append(replacement[position:])
    return [piece for piece in pieces if piece != ""]


@dataclass
class RewriteRule:
    """
    A pattern/replacement pair.

    The pattern is compiled when the rule is created, so an invalid rule
    is reported before any document is touched. ``\\d``, ``\\w``, ``\\s``
    and ``\\b`` only match ASCII characters.

    Raises:
        InvalidPattern: If the pattern is not a valid regular expression
    """

    pattern: str
    replacement: str = ""
    regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)
    template: list[TemplatePiece] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            self.regex = re.compile(self.pattern, re.ASCII)
        except re.error as e:
            raise InvalidPattern(
                f"Invalid rewrite pattern {self.pattern!r}: {e}"
            ) from e
        self.template = parse_template(self.replacement, self.regex)

    def expand(self, match: "re.Match[str]") -> str:
        parts = []
        for piece in self.template:
            if isinstance(piece, str):
                parts.append(piece)
            elif piece is not None:
                parts.append(match.group(piece) or "")
        return "".join(parts)

    def apply(self, text: str) -> str:
        """Replace every non-overlapping match in text."""
        return self.regex.sub(self.expand, text)


def parse_rules(lines: Iterable[str]) -> list[RewriteRule]:
    """
    Build compiled rules from alternating pattern/replacement lines.

    Args:
        lines: Lines without line terminators

    Returns:
        Rules in file order

    Raises:
        InvalidPattern: On the first rule that does not compile
    """
    pairs: list[list[str]] = []
    for index, line in enumerate(lines):
        if index % 2 == 0:
            pairs.append([line, ""])
        else:
            pairs[-1][1] = line

    rules: list[RewriteRule] = []
    for number, (pattern, replacement) in enumerate(pairs, 1):
        try:
            rules.append(RewriteRule(pattern=pattern, replacement=replacement))
        except InvalidPattern as e:
            raise InvalidPattern(f"Rewrite rule #{number}: {e}") from e
    return rules


def split_rule_lines(content: str) -> list[str]:
    """
    Split rules file content into lines.

    Only ``\\n`` ends a line; one trailing ``\\r`` per line is dropped and
    a final newline does not start an extra empty line.
    """
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def load_rules(filepath: Union[str, Path]) -> list[RewriteRule]:
    """
    Load and compile rewrite rules from a UTF-8 text file.

    Raises:
        RulesFileError: If the file cannot be read
        InvalidPattern: If any rule does not compile
    """
    path = Path(filepath)
    try:
        content = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RulesFileError(f"Failed to read rules file {path}: {e}") from e

    rules = parse_rules(split_rule_lines(content))
    logger.info(f"Loaded {len(rules)} rewrite rule(s) from {path.name}")
    return rules


class RewriteEngine:
    """
    Apply an ordered list of rewrite rules to markup bytes.

    Markup is matched as UTF-8 text, so ``.`` and character classes work
    on whole characters. Bytes that are not valid UTF-8 pass through
    unchanged.
    """

    def __init__(self, rules: Optional[list[RewriteRule]] = None):
        self.rules = list(rules or [])

    def apply(self, data: bytes) -> bytes:
        """
        Run every rule over the data in order.

        Each rule replaces all non-overlapping matches before the next
        one runs. Without rules the input is returned unchanged.
        """
        if not self.rules:
            return data
        text = data.decode("utf-8", "surrogateescape")
        for rule in self.rules:
            text = rule.apply(text)
        return text.encode("utf-8", "surrogateescape")
