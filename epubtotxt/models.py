"""Data models for EPUB container and package structure."""

import posixpath
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RootFile:
    """A rootfile reference from META-INF/container.xml."""

    full_path: str
    media_type: str = ""


@dataclass
class ContainerDescriptor:
    """Parsed container descriptor."""

    root_files: list[RootFile] = field(default_factory=list)

    @property
    def root_file(self) -> RootFile:
        """The first (and normally only) rootfile."""
        return self.root_files[0]


@dataclass
class ManifestItem:
    """A single manifest entry of the package document."""

    id: str
    href: str
    media_type: str = ""


@dataclass
class SpineItemRef:
    """A spine entry referencing a manifest item by id."""

    idref: str


@dataclass
class Metadata:
    """Dublin Core metadata of the package document."""

    title: Optional[str] = None
    authors: list[str] = field(default_factory=list)
    language: Optional[str] = None
    identifier: Optional[str] = None
    publisher: Optional[str] = None
    description: Optional[str] = None


@dataclass
class PackageDocument:
    """Manifest, spine and metadata of an OPF package document."""

    path: str
    manifest: list[ManifestItem] = field(default_factory=list)
    spine: list[SpineItemRef] = field(default_factory=list)
    metadata: Metadata = field(default_factory=Metadata)

    @property
    def directory(self) -> str:
        """Directory containing the package document ("" at archive root)."""
        return posixpath.dirname(self.path.replace("\\", "/"))

