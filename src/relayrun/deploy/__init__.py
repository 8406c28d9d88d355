"""Binary upload and fixture mirroring"""

from .uploader import mirror_directory, upload_file
from .walker import EntryKind, TreeEntry, walk_tree

__all__ = ["mirror_directory", "upload_file", "EntryKind", "TreeEntry", "walk_tree"]
