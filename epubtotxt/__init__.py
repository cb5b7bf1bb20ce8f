"""
epubtotxt - Convert EPUB files to plain text.

Resolves the reading order of an EPUB through its container and package
documents, optionally rewrites each document's raw markup with regular
expression rules, and concatenates the visible body text. Usable as a CLI
tool and as a library.
"""

from .archive import EPUBArchive
from .converter import EPUBConverter, derive_output_path, epub2txt, write_text_file
from .errors import EPUBToTxtError
from .extractor import extract_text
from .models import ManifestItem, Metadata, PackageDocument, SpineItemRef
from .rewrite import RewriteEngine, RewriteRule, load_rules, parse_rules

__all__ = [
    "EPUBArchive",
    "EPUBConverter",
    "EPUBToTxtError",
    "ManifestItem",
    "Metadata",
    "PackageDocument",
    "RewriteEngine",
    "RewriteRule",
    "SpineItemRef",
    "derive_output_path",
    "epub2txt",
    "extract_text",
    "load_rules",
    "parse_rules",
    "write_text_file",
]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "0.0.0+unknown"
