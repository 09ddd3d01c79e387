"""File and image helpers used by the provider adapters."""

from .file_utils import (
    ImageFile,
    LoadedFiles,
    is_image_file,
    is_markdown_file,
    image_mime_type,
    read_markdown_file,
    read_markdown_files,
    read_image_file,
    load_files,
)
from .image_utils import image_markdown, save_image

__all__ = [
    "ImageFile",
    "LoadedFiles",
    "is_image_file",
    "is_markdown_file",
    "image_mime_type",
    "read_markdown_file",
    "read_markdown_files",
    "read_image_file",
    "load_files",
    "image_markdown",
    "save_image",
]
