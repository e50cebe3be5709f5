"""rru package - archive.org download utilities.

This package provides:
    • parse / DocumentBuilder – turn XML text into an immutable DocumentNode tree.
    • EventReader – expat-backed pull stream of XML events feeding the builder.
    • Renamer / Verifier – batch rename and SHA-1 check files against
      archive.org ``*_files.xml`` metadata (rru.archive_org).
    • CLI utilities under rru.cli (Click).

The tree builder has no knowledge of archive.org; metadata jobs only query
the finished tree.
"""

__all__ = [
    "DocumentBuilder",
    "DocumentNode",
    "EventReader",
    "parse",
]

from .document import DocumentBuilder, DocumentNode, parse  # noqa: E402
from .events import EventReader  # noqa: E402
