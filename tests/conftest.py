"""Shared fixtures: EPUB archives built on the fly."""

import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Optional

import pytest

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Test Book</dc:title>
    <dc:creator>Jane Doe</dc:creator>
    <dc:creator>John Roe</dc:creator>
    <dc:language>en</dc:language>
    <dc:identifier id="uid">urn:uuid:1234</dc:identifier>
  </metadata>
  <manifest>
{items}
  </manifest>
  <spine>
{itemrefs}
  </spine>
</package>
"""


def _xhtml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        "<head><title>Chapter</title></head>"
        f"<body>{body}</body></html>"
    )


def _opf(manifest: list[tuple[str, str]], spine: list[str]) -> str:
    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="application/xhtml+xml"/>'
        for item_id, href in manifest
    )
    itemrefs = "\n".join(f'    <itemref idref="{idref}"/>' for idref in spine)
    return OPF_TEMPLATE.format(items=items, itemrefs=itemrefs)


@pytest.fixture
def write_epub(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing an archive from a name -> content mapping."""

    def factory(files: dict[str, str | bytes], name: str = "book.epub") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip")
            for entry_name, content in files.items():
                zf.writestr(entry_name, content)
        return path

    return factory


@pytest.fixture
def make_epub(write_epub: Callable[..., Path]) -> Callable[..., Path]:
    """
    Return a factory building an EPUB from chapter bodies.

    ``chapters`` maps manifest id to body markup; files are named
    ``<id>.html`` and placed in the package directory.
    """

    def factory(
        chapters: dict[str, str],
        spine: Optional[list[str]] = None,
        opf_path: str = "OEBPS/content.opf",
        name: str = "book.epub",
    ) -> Path:
        package_dir = opf_path.rpartition("/")[0]
        prefix = f"{package_dir}/" if package_dir else ""
        manifest = [(item_id, f"{item_id}.html") for item_id in chapters]
        files: dict[str, str | bytes] = {
            "META-INF/container.xml": CONTAINER_XML.format(opf_path=opf_path),
            opf_path: _opf(manifest, spine if spine is not None else list(chapters)),
        }
        for item_id, body in chapters.items():
            files[f"{prefix}{item_id}.html"] = _xhtml(body)
        return write_epub(files, name=name)

    return factory
