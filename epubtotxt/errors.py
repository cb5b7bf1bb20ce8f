"""Exceptions raised by the epubtotxt conversion pipeline."""


class EPUBToTxtError(Exception):
    """Base class for all conversion errors."""


class ArchiveOpenFailed(EPUBToTxtError):
    """The EPUB file could not be opened as a ZIP archive."""


class EntryNotFound(EPUBToTxtError):
    """No archive entry matches the requested path."""

    def __init__(self, path: str):
        super().__init__(f"No such file in archive: {path}")
        self.path = path


class EntryUnreadable(EPUBToTxtError):
    """An archive entry exists but could not be decompressed."""


class MalformedContainer(EPUBToTxtError):
    """META-INF/container.xml is missing or invalid."""


class MalformedPackage(EPUBToTxtError):
    """The OPF package document is missing or invalid."""


class InvalidPattern(EPUBToTxtError):
    """A rewrite rule does not compile."""


class RulesFileError(EPUBToTxtError):
    """The rewrite rules file could not be read."""


class UnparsableMarkup(EPUBToTxtError):
    """A content document could not be parsed at all."""


class OutputWriteFailed(EPUBToTxtError):
    """The text file could not be written."""
