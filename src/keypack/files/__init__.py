"""File collaborators: reading user files and delivering generated ones."""

from keypack.files.download import DirectoryDownloader, FileDownloader
from keypack.files.reader import normalize_newlines, read_file_as_text

__all__ = [
    "DirectoryDownloader",
    "FileDownloader",
    "normalize_newlines",
    "read_file_as_text",
]
