from __future__ import annotations

import io
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from context_export.config import TOP_DIRECTORIES
from context_export.file_manipulation import format_size

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from context_export.config import FileRecord, ProjectListing

NO_EXTENSION = "(no extension)"


@dataclass
class DirectoryNode:
    """A directory of the rendered tree with its aggregates."""

    name: str
    rel: str
    files: list[FileRecord] = field(default_factory=list)
    children: dict[str, DirectoryNode] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def subdir_count(self) -> int:
        return len(self.children)

    @property
    def total_size(self) -> int:
        """Bytes of every file in this directory and below."""
        return sum(f.size for f in self.files) + sum(c.total_size for c in self.children.values())

    def child(self, name: str) -> DirectoryNode:
        if name not in self.children:
            rel = f"{self.rel}/{name}" if self.rel else name
            self.children[name] = DirectoryNode(name=name, rel=rel)
        return self.children[name]

    def walk(self) -> Iterator[DirectoryNode]:
        """Yield this node and all descendants, depth-first."""
        yield self
        for name in sorted(self.children, key=str.lower):
            yield from self.children[name].walk()


def build_tree(listing: ProjectListing, root_name: str) -> DirectoryNode:
    """Build the nested directory aggregates of a listing.

    Args:
        listing (ProjectListing): the filtered enumeration
        root_name (str): the label of the root node

    Returns:
        DirectoryNode: the root node
    """
    root = DirectoryNode(name=root_name, rel="")
    for d in listing.directories:
        node = root
        for part in d.split("/"):
            node = node.child(part)
    for rec in listing.records:
        node = root
        *dirs, _name = rec.rel.split("/")
        for part in dirs:
            node = node.child(part)
        node.files.append(rec)
    return root


def describe(node: DirectoryNode) -> str:
    return f"{node.file_count} files, {node.subdir_count} dirs, {format_size(node.total_size)}"


def render_tree(node: DirectoryNode) -> list[str]:
    """Render the tree depth-first, files before subdirectories.

    Args:
        node (DirectoryNode): the root node

    Returns:
        list[str]: the lines of the rendering, starting with the root
    """
    lines: list[str] = [f"{node.name}/ ({describe(node)})"]

    def walk(current: DirectoryNode, prefix: str) -> None:
        files = sorted(current.files, key=lambda r: r.rel.rsplit("/", 1)[-1].lower())
        dirs = sorted(current.children.values(), key=lambda c: c.name.lower())
        total = len(files) + len(dirs)
        for idx, rec in enumerate(files):
            branch = "└── " if idx == total - 1 else "├── "
            name = rec.rel.rsplit("/", 1)[-1]
            lines.append(f"{prefix}{branch}{name} ({format_size(rec.size)})")
        for idx, child in enumerate(dirs, start=len(files)):
            last = idx == total - 1
            branch = "└── " if last else "├── "
            lines.append(f"{prefix}{branch}{child.name}/ ({describe(child)})")
            walk(child, prefix + ("    " if last else "│   "))

    walk(node, "")
    return lines


def extension_counts(records: Sequence[FileRecord]) -> list[tuple[str, int]]:
    """Count files per extension, most frequent first."""
    counts = Counter(r.extension or NO_EXTENSION for r in records)
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def top_directories(node: DirectoryNode, limit: int = TOP_DIRECTORIES) -> list[DirectoryNode]:
    """Return the directories holding the most files directly."""
    populated = [n for n in node.walk() if n.file_count]
    return sorted(populated, key=lambda n: (-n.file_count, n.rel.lower()))[:limit]


def build_structure_report(listing: ProjectListing, generated_at: str) -> str:
    """Build the directory-structure report.

    Args:
        listing (ProjectListing): the filtered enumeration
        generated_at (str): the run timestamp

    Returns:
        str: the report text
    """
    root = build_tree(listing, listing.root.name or str(listing.root))
    out = io.StringIO()
    out.write("PROJECT STRUCTURE REPORT\n")
    out.write(f"Generated: {generated_at}\n")
    out.write(f"Root: {listing.root}\n")
    out.write(f"Total files: {len(listing.records)}\n")
    out.write(f"Total directories: {len(listing.directories)}\n")
    out.write(f"Total size: {format_size(root.total_size)}\n\n")

    out.write("DIRECTORY TREE\n")
    out.write("\n".join(render_tree(root)))
    out.write("\n\n")

    out.write("FILE EXTENSIONS\n")
    for ext, count in extension_counts(listing.records):
        out.write(f"  {ext:<20} {count:>6}\n")
    out.write("\n")

    out.write(f"TOP {TOP_DIRECTORIES} DIRECTORIES BY FILE COUNT\n")
    for node in top_directories(root):
        out.write(f"  {node.rel or '.':<50} {node.file_count:>6} files  {format_size(node.total_size)}\n")
    return out.getvalue()
