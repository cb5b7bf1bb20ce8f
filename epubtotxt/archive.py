"""
Read-only access to the ZIP container of an EPUB file.
"""

import logging
import zipfile
import zlib
from pathlib import Path
from typing import Optional, Union

from .errors import ArchiveOpenFailed, EntryNotFound, EntryUnreadable

logger = logging.getLogger(__name__)

# General purpose flag bit 11: entry name is UTF-8 encoded
_UTF8_FLAG = 0x800


class EPUBArchive:
    """
    An opened EPUB (ZIP) container.

    Entry names are matched exactly as stored in the archive. A requested
    path is tried both with forward slashes and with backslashes, because
    paths built inside the package may use either separator.

    Use as a context manager so the underlying file is always closed::

        with EPUBArchive("book.epub") as archive:
            data = archive.read_entry("META-INF/container.xml")
    """

    def __init__(self, filepath: Union[str, Path]):
        """
        Open the archive.

        Args:
            filepath: Path to the EPUB file

        Raises:
            ArchiveOpenFailed: If the file is missing or not a ZIP archive
        """
        self.filepath = Path(filepath)
        self._zip: Optional[zipfile.ZipFile] = None
        try:
            self._zip = zipfile.ZipFile(self.filepath, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveOpenFailed(
                f"Failed to open EPUB file {self.filepath}: {e}"
            ) from e
        logger.info(f"Opened EPUB archive: {self.filepath.name}")

    def __enter__(self) -> "EPUBArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._zip is None

    def close(self) -> None:
        """Release the archive file handle. Safe to call more than once."""
        if self._zip is not None:
            self._zip.close()
            self._zip = None
            logger.debug(f"Closed EPUB archive: {self.filepath.name}")

    def _require_open(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise ValueError("Archive is closed")
        return self._zip

    def names(self) -> list[str]:
        """Return the stored entry names in archive order."""
        return [info.orig_filename for info in self._require_open().infolist()]

    def _find_entry(self, path: str) -> Optional[zipfile.ZipInfo]:
        forward = path.replace("\\", "/")
        backward = path.replace("/", "\\")
        raw_names = (forward.encode("utf-8"), backward.encode("utf-8"))
        for info in self._require_open().infolist():
            if info.orig_filename in (forward, backward):
                return info
            # Names without the UTF-8 flag were decoded as cp437; compare the
            # stored bytes instead, which are usually UTF-8 anyway
            if not info.flag_bits & _UTF8_FLAG:
                try:
                    stored = info.orig_filename.encode("cp437")
                except UnicodeEncodeError:
                    continue
                if stored in raw_names:
                    return info
        return None

    def read_entry(self, path: str) -> bytes:
        """
        Read and decompress a single archive entry.

        Args:
            path: Archive-relative path, with either separator style

        Returns:
            The entry's decompressed content

        Raises:
            EntryNotFound: If no stored entry name matches the path
            EntryUnreadable: If the entry cannot be decompressed
        """
        info = self._find_entry(path)
        if info is None:
            raise EntryNotFound(path)
        try:
            data = self._require_open().read(info)
        except (
            zipfile.BadZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
            OSError,
        ) as e:
            raise EntryUnreadable(f"Failed to read {path} from archive: {e}") from e
        logger.debug(f"Read {len(data)} bytes from {info.orig_filename}")
        return data
