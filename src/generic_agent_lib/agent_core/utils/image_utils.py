"""Helpers for images embedded in model output as data URIs."""

import base64
import binascii
import re
import time
from pathlib import Path
from typing import Optional

_DATA_URI_PATTERN = re.compile(r"data:image/(\w+);base64,([A-Za-z0-9+/=]+)")


def image_markdown(mime_type: str, data: str, label: str = "Generated Image") -> str:
    """Render base64 image data as an inline markdown image."""
    return f"![{label}](data:{mime_type};base64,{data})"


def save_image(content: str, output_dir: str | Path, filename: Optional[str] = None) -> Path:
    """Extract the first base64 image from a text response and write it to disk.

    Args:
        content: Text containing a data URI such as ``data:image/png;base64,...``.
        output_dir: Directory to write to. Created if missing.
        filename: Optional file name. Defaults to a timestamp-based name.

    Returns:
        The absolute path of the written file.

    Raises:
        ValueError: If the content holds no base64 image data.
    """
    match = _DATA_URI_PATTERN.search(content)
    if not match:
        raise ValueError("No base64 image data found in content.")

    image_type, encoded = match.groups()
    try:
        payload = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e

    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    final_name = filename or f"generated_image_{int(time.time() * 1000)}.{image_type}"
    output_path = (target_dir / final_name).resolve()
    output_path.write_bytes(payload)
    return output_path
