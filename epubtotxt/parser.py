"""
Structural resolution of an EPUB: container descriptor, package document
and spine reading order.
"""

import logging
import posixpath
from typing import Any, Optional

from defusedxml import ElementTree as DefusedET

from .archive import EPUBArchive
from .errors import EntryNotFound, MalformedContainer, MalformedPackage
from .models import (
    ContainerDescriptor,
    ManifestItem,
    Metadata,
    PackageDocument,
    RootFile,
    SpineItemRef,
)

logger = logging.getLogger(__name__)

# Location fixed by the OCF specification
CONTAINER_PATH = "META-INF/container.xml"


def _parse_xml(content: bytes) -> Any:
    return DefusedET.fromstring(content)


def resolve_container(archive: EPUBArchive) -> ContainerDescriptor:
    """
    Read META-INF/container.xml and return its rootfile references.

    Args:
        archive: Opened EPUB archive

    Returns:
        ContainerDescriptor with at least one RootFile

    Raises:
        MalformedContainer: If the descriptor is missing, not well-formed,
            or declares no usable rootfile
    """
    try:
        content = archive.read_entry(CONTAINER_PATH)
    except EntryNotFound as e:
        raise MalformedContainer(f"EPUB is missing {CONTAINER_PATH}") from e

    try:
        root = _parse_xml(content)
    except (DefusedET.ParseError, ValueError) as e:
        raise MalformedContainer(f"Failed to parse {CONTAINER_PATH}: {e}") from e

    root_files = [
        RootFile(
            full_path=element.get("full-path", ""),
            media_type=element.get("media-type", ""),
        )
        for element in root.iterfind(".//{*}rootfiles/{*}rootfile")
    ]
    if not root_files:
        raise MalformedContainer(f"No rootfile declared in {CONTAINER_PATH}")
    if not root_files[0].full_path:
        raise MalformedContainer("Rootfile has no full-path attribute")

    if len(root_files) > 1:
        logger.info(
            f"Container declares {len(root_files)} rootfiles, "
            f"using {root_files[0].full_path}"
        )
    return ContainerDescriptor(root_files=root_files)


def _first_text(parent: Any, tag: str) -> Optional[str]:
    element = parent.find(f"{{*}}{tag}")
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _parse_metadata(root: Any) -> Metadata:
    """Extract Dublin Core fields from the package <metadata> element."""
    metadata_el = root.find("{*}metadata")
    if metadata_el is None:
        return Metadata()

    authors = [
        el.text.strip()
        for el in metadata_el.iterfind("{*}creator")
        if el.text and el.text.strip()
    ]
    return Metadata(
        title=_first_text(metadata_el, "title"),
        authors=authors,
        language=_first_text(metadata_el, "language"),
        identifier=_first_text(metadata_el, "identifier"),
        publisher=_first_text(metadata_el, "publisher"),
        description=_first_text(metadata_el, "description"),
    )


def parse_package(archive: EPUBArchive, package_path: str) -> PackageDocument:
    """
    Parse the OPF package document into manifest, spine and metadata.

    Manifest items and spine references keep their document order. Media
    types are recorded but not used to filter anything.

    Args:
        archive: Opened EPUB archive
        package_path: Archive path of the package document

    Returns:
        PackageDocument

    Raises:
        MalformedPackage: If the document is missing or not well-formed
    """
    try:
        content = archive.read_entry(package_path)
    except EntryNotFound as e:
        raise MalformedPackage(f"Package document not found: {package_path}") from e

    try:
        root = _parse_xml(content)
    except (DefusedET.ParseError, ValueError) as e:
        raise MalformedPackage(f"Failed to parse {package_path}: {e}") from e

    manifest = [
        ManifestItem(
            id=item.get("id", ""),
            href=item.get("href", ""),
            media_type=item.get("media-type", ""),
        )
        for item in root.iterfind("{*}manifest/{*}item")
    ]
    spine = [
        SpineItemRef(idref=itemref.get("idref", ""))
        for itemref in root.iterfind("{*}spine/{*}itemref")
    ]
    logger.info(
        f"Parsed {package_path}: {len(manifest)} manifest items, "
        f"{len(spine)} spine entries"
    )

    return PackageDocument(
        path=package_path,
        manifest=manifest,
        spine=spine,
        metadata=_parse_metadata(root),
    )


def resolve_spine(
    manifest: list[ManifestItem],
    spine: list[SpineItemRef],
    package_dir: str,
) -> list[str]:
    """
    Turn spine references into archive paths in reading order.

    Each href is joined to the package directory and normalized. Spine
    references without a matching manifest id are skipped rather than
    treated as errors, since such books are common in the wild.

    Args:
        manifest: Manifest items of the package document
        spine: Spine references in reading order
        package_dir: Directory of the package document ("" for archive root)

    Returns:
        List of archive-relative content paths
    """
    items_by_id: dict[str, ManifestItem] = {}
    for item in manifest:
        items_by_id.setdefault(item.id, item)

    paths: list[str] = []
    for ref in spine:
        item = items_by_id.get(ref.idref)
        if item is None:
            logger.warning(f"Spine item with id '{ref.idref}' not found in manifest")
            continue
        joined = posixpath.join(package_dir, item.href.replace("\\", "/"))
        paths.append(posixpath.normpath(joined))

    return paths
