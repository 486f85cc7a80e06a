"""
Reading DXF files from disk.

Only the transport concerns live here: extension and size checks and
byte decoding. Parsing works on the decoded text and never touches the
filesystem.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

DXF_EXTENSION = ".dxf"
DEFAULT_MAX_FILE_SIZE_MB = 50.0


@dataclass
class DXFFileInfo:
    """Metadata about a loaded DXF file."""
    filepath: str
    file_size_bytes: int
    n_lines: int
    encoding: str

    @property
    def file_size_kb(self) -> float:
        return self.file_size_bytes / 1024

    @property
    def file_size_mb(self) -> float:
        return self.file_size_bytes / (1024 * 1024)


class DXFReadError(Exception):
    """DXF file missing, rejected by the input checks, or unreadable."""


def decode_dxf_bytes(data: bytes, encoding: str = "utf-8") -> str:
    """Decode raw DXF bytes; undecodable bytes are replaced, never fatal.

    A UTF-8 byte order mark is dropped so the first group code parses.
    """
    text = data.decode(encoding, errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


def check_dxf_path(filepath: Union[str, Path],
                   max_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB) -> int:
    """Validate extension and size of a DXF file.

    Returns:
        File size in bytes

    Raises:
        DXFReadError: wrong extension, missing file or file too large
    """
    path = Path(filepath)
    if path.suffix.lower() != DXF_EXTENSION:
        raise DXFReadError(f"Not a DXF file (expected {DXF_EXTENSION}): {str(path)!r}")

    try:
        size = os.path.getsize(path)
    except FileNotFoundError:
        raise DXFReadError(f"File not found: {str(path)!r}")
    except OSError as exc:
        raise DXFReadError(f"Cannot access {str(path)!r}: {exc}") from exc

    limit = max_size_mb * 1024 * 1024
    if size > limit:
        raise DXFReadError(
            f"File {str(path)!r} is {size / (1024 * 1024):.1f} MB, "
            f"limit is {max_size_mb:g} MB"
        )
    return size


def read_dxf_with_info(filepath: Union[str, Path],
                       max_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
                       encoding: str = "utf-8") -> Tuple[str, DXFFileInfo]:
    """Read a DXF file and return its text together with file metadata.

    Args:
        filepath: Path to a .dxf file
        max_size_mb: Largest accepted file size
        encoding: Text encoding used to decode the file

    Returns:
        text: decoded file content
        info: DXFFileInfo

    Raises:
        DXFReadError: if the file is rejected or cannot be read
    """
    size = check_dxf_path(filepath, max_size_mb)
    try:
        with open(filepath, 'rb') as f:
            data = f.read()
    except OSError as exc:
        raise DXFReadError(f"Cannot read DXF file {str(filepath)!r}: {exc}") from exc

    try:
        text = decode_dxf_bytes(data, encoding)
    except LookupError as exc:
        raise DXFReadError(f"Unknown encoding {encoding!r}") from exc

    info = DXFFileInfo(
        filepath=str(filepath),
        file_size_bytes=size,
        n_lines=text.count("\n") + (1 if text and not text.endswith("\n") else 0),
        encoding=encoding,
    )
    logger.info("Loaded DXF: %s (%.1f KB, %d lines)",
                filepath, info.file_size_kb, info.n_lines)
    return text, info


def read_dxf_file(filepath: Union[str, Path],
                  max_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
                  encoding: str = "utf-8") -> str:
    """Read a DXF file as text.

    Raises:
        DXFReadError: if the file is rejected or cannot be read
    """
    text, _ = read_dxf_with_info(filepath, max_size_mb, encoding)
    return text
