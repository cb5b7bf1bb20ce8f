"""Tests for container, package and spine resolution."""

from collections.abc import Callable
from pathlib import Path

import pytest

from epubtotxt.archive import EPUBArchive
from epubtotxt.errors import MalformedContainer, MalformedPackage
from epubtotxt.models import ManifestItem, PackageDocument, SpineItemRef
from epubtotxt.parser import parse_package, resolve_container, resolve_spine


def test_resolve_container(make_epub: Callable[..., Path]) -> None:
    """The first rootfile of container.xml is returned."""
    path = make_epub({"ch1": "<p>x</p>"})

    with EPUBArchive(path) as archive:
        container = resolve_container(archive)

    assert container.root_file.full_path == "OEBPS/content.opf"
    assert container.root_file.media_type == "application/oebps-package+xml"


def test_resolve_container_without_namespace(
    write_epub: Callable[..., Path],
) -> None:
    """Rootfiles are found even when the descriptor has no namespace."""
    xml = (
        "<container><rootfiles>"
        '<rootfile full-path="a.opf" media-type="x"/>'
        '<rootfile full-path="b.opf" media-type="y"/>'
        "</rootfiles></container>"
    )
    path = write_epub({"META-INF/container.xml": xml})

    with EPUBArchive(path) as archive:
        container = resolve_container(archive)

    assert [rf.full_path for rf in container.root_files] == ["a.opf", "b.opf"]
    assert container.root_file.full_path == "a.opf"


@pytest.mark.parametrize(
    "files",
    [
        {},
        {"META-INF/container.xml": "<container><rootfiles>"},
        {"META-INF/container.xml": "<container><rootfiles/></container>"},
        {
            "META-INF/container.xml": (
                "<container><rootfiles><rootfile/></rootfiles></container>"
            )
        },
    ],
    ids=["missing", "not-well-formed", "no-rootfile", "no-full-path"],
)
def test_resolve_container_malformed(
    write_epub: Callable[..., Path], files: dict[str, str]
) -> None:
    """Any unusable container descriptor raises MalformedContainer."""
    path = write_epub(files)

    with EPUBArchive(path) as archive:
        with pytest.raises(MalformedContainer):
            resolve_container(archive)


def test_parse_package_preserves_order(make_epub: Callable[..., Path]) -> None:
    """Manifest and spine keep document order; media types are kept."""
    path = make_epub(
        {"b": "<p>b</p>", "a": "<p>a</p>", "c": "<p>c</p>"},
        spine=["c", "a"],
        opf_path="content.opf",
    )

    with EPUBArchive(path) as archive:
        package = parse_package(archive, "content.opf")

    assert [item.id for item in package.manifest] == ["b", "a", "c"]
    assert package.manifest[0] == ManifestItem(
        id="b", href="b.html", media_type="application/xhtml+xml"
    )
    assert package.spine == [SpineItemRef("c"), SpineItemRef("a")]
    assert package.directory == ""


def test_parse_package_metadata(make_epub: Callable[..., Path]) -> None:
    """Dublin Core metadata is read from the package."""
    path = make_epub({"ch1": "<p>x</p>"})

    with EPUBArchive(path) as archive:
        package = parse_package(archive, "OEBPS/content.opf")

    assert package.metadata.title == "Test Book"
    assert package.metadata.authors == ["Jane Doe", "John Roe"]
    assert package.metadata.language == "en"
    assert package.metadata.identifier == "urn:uuid:1234"
    assert package.metadata.publisher is None
    assert package.directory == "OEBPS"


def test_parse_package_missing(make_epub: Callable[..., Path]) -> None:
    """A rootfile pointing nowhere raises MalformedPackage."""
    path = make_epub({"ch1": "<p>x</p>"})

    with EPUBArchive(path) as archive:
        with pytest.raises(MalformedPackage):
            parse_package(archive, "OEBPS/other.opf")


def test_parse_package_not_well_formed(write_epub: Callable[..., Path]) -> None:
    """Broken package XML raises MalformedPackage."""
    path = write_epub({"content.opf": "<package><manifest>"})

    with EPUBArchive(path) as archive:
        with pytest.raises(MalformedPackage):
            parse_package(archive, "content.opf")


def test_resolve_spine_scenario() -> None:
    """Hrefs are resolved against the package directory in spine order."""
    manifest = [ManifestItem("ch1", "ch1.html"), ManifestItem("ch2", "ch2.html")]
    spine = [SpineItemRef("ch1"), SpineItemRef("ch2")]

    assert resolve_spine(manifest, spine, "OEBPS") == [
        "OEBPS/ch1.html",
        "OEBPS/ch2.html",
    ]


def test_resolve_spine_skips_unknown_idref() -> None:
    """Unmatched spine references are left out without error."""
    manifest = [ManifestItem("ch1", "ch1.html"), ManifestItem("ch2", "ch2.html")]
    spine = [SpineItemRef("ch2"), SpineItemRef("ghost"), SpineItemRef("ch1")]

    assert resolve_spine(manifest, spine, "OEBPS") == [
        "OEBPS/ch2.html",
        "OEBPS/ch1.html",
    ]


def test_resolve_spine_first_duplicate_id_wins() -> None:
    """With duplicated ids the first manifest entry is used."""
    manifest = [ManifestItem("ch1", "first.html"), ManifestItem("ch1", "second.html")]

    assert resolve_spine(manifest, [SpineItemRef("ch1")], "") == ["first.html"]


def test_resolve_spine_normalizes_paths() -> None:
    """Relative segments are collapsed like a path join would."""
    manifest = [
        ManifestItem("a", "../Text/a.html"),
        ManifestItem("b", "./b.html"),
        ManifestItem("c", "Text\\c.html"),
    ]
    spine = [SpineItemRef("a"), SpineItemRef("b"), SpineItemRef("c")]

    assert resolve_spine(manifest, spine, "OEBPS/opf") == [
        "OEBPS/Text/a.html",
        "OEBPS/opf/b.html",
        "OEBPS/opf/Text/c.html",
    ]


def test_resolve_spine_root_package() -> None:
    """A package at the archive root yields bare hrefs."""
    manifest = [ManifestItem("ch1", "ch1.html")]

    assert resolve_spine(manifest, [SpineItemRef("ch1")], "") == ["ch1.html"]


def test_package_directory_with_backslashes() -> None:
    """The package directory is derived from either separator style."""
    package = PackageDocument(path="OEBPS\\content.opf")

    assert package.directory == "OEBPS"
