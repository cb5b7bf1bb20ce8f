"""Visible-text extraction from XHTML content documents."""

import logging

from bs4 import BeautifulSoup  # type: ignore[import-untyped]
from bs4.builder import ParserRejectedMarkup  # type: ignore[import-untyped]

from .errors import UnparsableMarkup

logger = logging.getLogger(__name__)


def extract_text(markup: bytes) -> str:
    """
    Return the text content of a document's body.

    The text of every <body> element is concatenated as-is: no separators
    are inserted between block elements and whitespace is left untouched.
    A document without a <body> is treated as if everything outside <head>
    were its body.

    Args:
        markup: Raw (possibly rewritten) document bytes; the encoding is
            detected from the markup

    Returns:
        Extracted text

    Raises:
        UnparsableMarkup: If the parser rejects the document outright
    """
    try:
        soup = BeautifulSoup(markup, "html.parser")
    except ParserRejectedMarkup as e:
        raise UnparsableMarkup(f"Failed to parse markup: {e}") from e

    # Nested bodies from sloppy markup are already covered by their parent
    bodies = [
        body for body in soup.find_all("body") if body.find_parent("body") is None
    ]
    if bodies:
        return "".join(body.get_text() for body in bodies)

    logger.debug("Document has no <body>, using text outside <head>")
    for head in soup.find_all("head"):
        head.decompose()
    return soup.get_text()
