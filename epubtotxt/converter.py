"""
EPUB to plain-text conversion: drives archive access, rewriting and text
extraction over the spine, and writes the result.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Optional, Union

from .archive import EPUBArchive
from .errors import OutputWriteFailed
from .extractor import extract_text
from .models import PackageDocument
from .parser import parse_package, resolve_container, resolve_spine
from .rewrite import RewriteEngine, RewriteRule, load_rules

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class TextAccumulator:
    """Append-only text buffer owned by a single conversion run."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._length = 0

    def append(self, fragment: str) -> None:
        self._parts.append(fragment)
        self._length += len(fragment)

    @property
    def fragment_count(self) -> int:
        return len(self._parts)

    def __len__(self) -> int:
        return self._length

    def getvalue(self) -> str:
        return "".join(self._parts)


def aggregate(
    archive: EPUBArchive,
    paths: list[str],
    engine: Optional[RewriteEngine] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Extract and concatenate the text of each content file in order.

    Any read, rewrite or parse failure aborts the whole run; no file is
    skipped.

    Args:
        archive: Opened EPUB archive
        paths: Content file paths in reading order
        engine: Rewrite engine applied to raw markup (default: no rules)
        on_progress: Called as ``on_progress(index, total, path)`` after
            each file

    Returns:
        Concatenated text of all files
    """
    engine = engine or RewriteEngine()
    accumulator = TextAccumulator()
    total = len(paths)

    for index, path in enumerate(paths, 1):
        markup = engine.apply(archive.read_entry(path))
        accumulator.append(extract_text(markup))
        logger.debug(f"[{index}/{total}] Extracted {path}")
        if on_progress is not None:
            on_progress(index, total, path)

    logger.info(
        f"Extracted {len(accumulator):,} characters "
        f"from {accumulator.fragment_count} file(s)"
    )
    return accumulator.getvalue()


class EPUBConverter:
    """
    Convert an EPUB file to plain text.

    The archive is opened for each operation and closed again before the
    method returns, also when an error is raised.
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        rules: Optional[list[RewriteRule]] = None,
    ):
        """
        Args:
            filepath: Path to the EPUB file
            rules: Compiled rewrite rules (see ``rewrite.load_rules``)
        """
        self.filepath = Path(filepath)
        self.engine = RewriteEngine(rules)

    @staticmethod
    def _read_package(archive: EPUBArchive) -> PackageDocument:
        container = resolve_container(archive)
        package_path = container.root_file.full_path
        logger.info(f"Package document: {package_path}")
        return parse_package(archive, package_path)

    def get_package(self) -> PackageDocument:
        """Return the parsed package document."""
        with EPUBArchive(self.filepath) as archive:
            return self._read_package(archive)

    def get_spine_paths(self) -> list[str]:
        """Return the resolved content paths in reading order."""
        package = self.get_package()
        return resolve_spine(package.manifest, package.spine, package.directory)

    def convert(self, on_progress: Optional[ProgressCallback] = None) -> str:
        """
        Extract the text of the whole book in spine order.

        Raises:
            EPUBToTxtError: On the first failure anywhere in the pipeline
        """
        with EPUBArchive(self.filepath) as archive:
            package = self._read_package(archive)
            paths = resolve_spine(package.manifest, package.spine, package.directory)
            logger.info(f"Spine resolves to {len(paths)} content file(s)")
            return aggregate(archive, paths, self.engine, on_progress=on_progress)


def epub2txt(
    filepath: Union[str, Path],
    rules_file: Optional[Union[str, Path]] = None,
) -> str:
    """
    Convert an EPUB file to text.

    Args:
        filepath: Path to the EPUB file
        rules_file: Optional rewrite rules file

    Returns:
        Concatenated text of all spine documents
    """
    rules = load_rules(rules_file) if rules_file else None
    return EPUBConverter(filepath, rules=rules).convert()


def derive_output_path(
    epub_path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Work out where the text file goes.

    Without ``output`` the text lands next to the EPUB. If ``output`` is an
    existing directory the file is placed inside it, otherwise ``output``
    is used as the base path. ".txt" is always appended.

    Examples:
        ``books/novel.epub`` -> ``books/novel.txt``
        ``books/novel.epub``, ``out/`` -> ``out/novel.txt``
        ``books/novel.epub``, ``out/story`` -> ``out/story.txt``
    """
    epub_path = Path(epub_path)
    base_name = epub_path.stem

    if output is None:
        base = epub_path.parent / base_name
    else:
        output = Path(output)
        base = output / base_name if output.is_dir() else output

    return base.with_name(base.name + ".txt")


def write_text_file(path: Union[str, Path], text: str) -> None:
    """
    Write text as UTF-8, replacing any existing file.

    Raises:
        OutputWriteFailed: If the file cannot be written
    """
    path = Path(path)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OutputWriteFailed(f"Failed to write {path}: {e}") from e
    logger.info(f"Wrote {len(text):,} characters to {path}")
