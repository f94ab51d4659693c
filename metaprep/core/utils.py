"""
Utility functions for metaprep: format detection, file I/O and byte helpers.
"""

import os
import shutil
import fnmatch
import logging
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import (
    FileNotFoundError as MPFileNotFoundError,
    PermissionError as MPPermissionError, OutputError, ValidationError
)
from ..config.constants import SUPPORTED_EXTENSIONS, SYNCHSAFE_MAX

PathLike = Union[str, Path]


def safe_path(file_path: PathLike) -> Path:
    """Normalize a user-supplied path into an absolute Path."""
    return Path(os.path.abspath(os.path.normpath(str(file_path))))


def detect_format(file_path: PathLike) -> Optional[str]:
    """Return the format key ('png', 'webp', 'wav', 'mp3', 'mp4') for a path, by extension."""
    ext = os.path.splitext(str(file_path))[1].lower()
    for format_name, extensions in SUPPORTED_EXTENSIONS.items():
        if ext in extensions:
            return format_name
    return None


def collect_files(input_path: PathLike, recursive: bool = False,
                  formats: Optional[List[str]] = None,
                  include: Optional[str] = None,
                  exclude: Optional[str] = None,
                  extensions: Optional[List[str]] = None) -> List[Path]:
    """
    Collect supported files from a file or directory.

    Args:
        input_path: File or directory to scan
        recursive: Walk subdirectories
        formats: Restrict to these format keys (default: all supported)
        include: Only keep files whose name matches this glob pattern
        exclude: Drop files whose name matches this glob pattern
        extensions: Match these file extensions instead of the supported formats

    Returns:
        Sorted list of file paths
    """
    path = safe_path(input_path)

    if path.is_file():
        return [path]
    if not path.is_dir():
        raise MPFileNotFoundError(str(path))

    candidates = []
    if recursive:
        for root, _, filenames in os.walk(path):
            for filename in filenames:
                candidates.append(Path(root) / filename)
    else:
        candidates = [p for p in path.iterdir() if p.is_file()]

    files = []
    for candidate in candidates:
        if extensions is not None:
            if candidate.suffix.lower() not in extensions:
                continue
        else:
            file_format = detect_format(candidate)
            if file_format is None:
                continue
            if formats is not None and file_format not in formats:
                continue
        if include and not fnmatch.fnmatch(candidate.name, include):
            continue
        if exclude and fnmatch.fnmatch(candidate.name, exclude):
            continue
        files.append(candidate)

    return sorted(files)


def resolve_output(input_file: PathLike, input_base: Optional[PathLike] = None,
                   output_base: Optional[PathLike] = None) -> Path:
    """
    Resolve where a processed file should be written.

    No output base means overwrite in place. A single input file maps to the
    output path itself (or into it, when it has no extension); a directory
    input mirrors its relative structure under the output base.
    """
    input_file = Path(input_file)
    if output_base is None:
        return input_file

    output_base = Path(output_base)
    if input_base is None or Path(input_base).is_file():
        if output_base.suffix:
            return output_base
        return output_base / input_file.name

    try:
        relative = input_file.relative_to(Path(input_base))
    except ValueError:
        relative = Path(input_file.name)
    return output_base / relative


def create_backup(file_path: PathLike) -> Optional[Path]:
    """Copy an existing file to '<name>.bak' beside it."""
    path = Path(file_path)
    if not path.exists():
        return None
    backup = path.with_name(path.name + ".bak")
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        raise OutputError(str(backup), e)
    logging.debug(f"Created backup {backup}")
    return backup


def read_file(file_path: PathLike) -> bytes:
    """Read a whole file into memory."""
    try:
        with open(file_path, 'rb') as f:
            return f.read()
    except FileNotFoundError as e:
        raise MPFileNotFoundError(str(file_path), e)
    except PermissionError as e:
        raise MPPermissionError(str(file_path), "read", e)


def write_file(file_path: PathLike, data: bytes) -> None:
    """Write bytes to a file, creating parent directories as needed."""
    path = Path(file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
    except PermissionError as e:
        raise MPPermissionError(str(path), "write", e)
    except OSError as e:
        raise OutputError(str(path), e)


def format_size(num_bytes: int) -> str:
    """Human-readable byte count."""
    kb = 1024
    mb = 1024 * kb
    if num_bytes >= mb:
        return f"{num_bytes / mb:.2f} MB"
    if num_bytes >= kb:
        return f"{num_bytes / kb:.1f} KB"
    return f"{num_bytes} B"


def decode_synchsafe(raw: bytes) -> int:
    """Decode a 4-byte synchsafe integer; only the low 7 bits of each byte count."""
    if len(raw) != 4:
        raise ValidationError("synchsafe", raw, "exactly 4 bytes")
    b0, b1, b2, b3 = (b & 0x7F for b in raw)
    return (b0 << 21) | (b1 << 14) | (b2 << 7) | b3


def encode_synchsafe(value: int) -> bytes:
    """Encode an integer in [0, 2^28 - 1] as a 4-byte synchsafe integer."""
    if not 0 <= value <= SYNCHSAFE_MAX:
        raise ValidationError("synchsafe", value, f"0 <= value <= {SYNCHSAFE_MAX}")
    return bytes([
        (value >> 21) & 0x7F,
        (value >> 14) & 0x7F,
        (value >> 7) & 0x7F,
        value & 0x7F,
    ])
