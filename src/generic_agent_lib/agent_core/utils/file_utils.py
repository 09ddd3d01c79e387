"""Read input files for provider consumption.

Markdown documents are concatenated into one delimited text block; images are
returned as base64 payloads with their MIME type. Adapters decide how each is
attached to the conversation.
"""

import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from ..exceptions import FileNotFoundInputError, FileReadError, UnsupportedFileTypeError
from ..logger import get_logger

logger = get_logger(__name__)

MARKDOWN_EXTENSIONS = (".md", ".markdown")

# Image extensions supported by Gemini and common web usage
IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


@dataclass(frozen=True)
class ImageFile:
    """A base64-encoded image read from disk."""

    path: str
    mime_type: str
    data: str

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(frozen=True)
class LoadedFiles:
    """The resolved content of a list of input files.

    Attributes:
        text: Delimited markdown of all text documents, empty if there were none.
        images: Images in the order they were given.
    """

    text: str = ""
    images: List[ImageFile] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.text or self.images)


def has_extension(file_path: str | Path, allowed_extensions: Iterable[str]) -> bool:
    """Check whether a file has one of the allowed extensions (case-insensitive)."""
    return Path(file_path).suffix.lower() in tuple(allowed_extensions)


def is_markdown_file(file_path: str | Path) -> bool:
    return has_extension(file_path, MARKDOWN_EXTENSIONS)


def is_image_file(file_path: str | Path) -> bool:
    return has_extension(file_path, IMAGE_MIME_TYPES)


def image_mime_type(file_path: str | Path) -> str:
    """Return the MIME type for a supported image file.

    Raises:
        UnsupportedFileTypeError: If the extension is not a supported image type.
    """
    try:
        return IMAGE_MIME_TYPES[Path(file_path).suffix.lower()]
    except KeyError:
        raise UnsupportedFileTypeError(f"Invalid image file extension for {file_path}") from None


def _read_bytes(file_path: Path) -> bytes:
    if not file_path.is_file():
        raise FileNotFoundInputError(f"File not found: {file_path}")
    try:
        return file_path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Failed to read file {file_path}: {e}") from e


def read_markdown_file(file_path: str | Path) -> str:
    """Read a markdown file and return its content.

    Args:
        file_path: Path to a ``.md`` or ``.markdown`` file.

    Returns:
        The decoded file content.

    Raises:
        UnsupportedFileTypeError: If the file is not a markdown file.
        FileNotFoundInputError: If the file does not exist.
        FileReadError: If the file cannot be read or decoded.
    """
    if not is_markdown_file(file_path):
        raise UnsupportedFileTypeError(
            f"Invalid file extension for {file_path}. Only .md and .markdown files are supported."
        )

    raw = _read_bytes(Path(file_path))
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileReadError(f"Failed to read file {file_path}: {e}") from e


def read_image_file(file_path: str | Path) -> ImageFile:
    """Read an image file and return it base64-encoded.

    Raises:
        UnsupportedFileTypeError: If the extension is not a supported image type.
        FileNotFoundInputError: If the file does not exist.
        FileReadError: If the file cannot be read.
    """
    mime_type = image_mime_type(file_path)
    raw = _read_bytes(Path(file_path))
    return ImageFile(path=str(file_path), mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"))


def format_markdown_block(file_path: str | Path, content: str) -> str:
    name = Path(file_path).name
    return f"--- File: {name} ---\n\n{content}\n\n--- End of {name} ---"


def read_markdown_files(file_paths: Sequence[str | Path]) -> str:
    """Read several markdown files into one delimited text block.

    Args:
        file_paths: Markdown file paths, in the order they should appear.

    Returns:
        The formatted file blocks joined by blank lines, or an empty string.
    """
    return "\n\n".join(format_markdown_block(p, read_markdown_file(p)) for p in file_paths)


def load_files(file_paths: Sequence[str | Path] | None) -> LoadedFiles:
    """Resolve a mixed list of markdown and image files.

    Args:
        file_paths: Paths to read. ``None`` or an empty list yields empty content.

    Returns:
        The concatenated markdown text and the list of images.

    Raises:
        UnsupportedFileTypeError: If a path is neither markdown nor a supported image.
        FileNotFoundInputError: If a path does not exist.
        FileReadError: If a path cannot be read.
    """
    if not file_paths:
        return LoadedFiles()

    blocks: List[str] = []
    images: List[ImageFile] = []
    for file_path in file_paths:
        if is_markdown_file(file_path):
            blocks.append(format_markdown_block(file_path, read_markdown_file(file_path)))
        elif is_image_file(file_path):
            images.append(read_image_file(file_path))
        else:
            raise UnsupportedFileTypeError(
                f"Unsupported file type for {file_path}. Use markdown or one of: {', '.join(IMAGE_MIME_TYPES)}."
            )

    logger.debug("Loaded %d text file(s) and %d image(s).", len(blocks), len(images))
    return LoadedFiles(text="\n\n".join(blocks), images=images)
