"""Content archive: lessons and the review notebook."""

from .content_archive import ArchiveOutcome, ContentArchive, MergeOutcome

__all__ = ["ContentArchive", "ArchiveOutcome", "MergeOutcome"]
