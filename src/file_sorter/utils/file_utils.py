"""
Utility functions for file operations.
"""

import hashlib
import os
import unicodedata
from pathlib import Path

# Characters that may not appear inside a single filename component
INVALID_FILENAME_CHARS = '<>:"|?*\\/\0'


def get_file_hash(file_path: str, algorithm: str = "sha256") -> str:
    """Calculate hash of a file.

    Args:
        file_path: Path to the file
        algorithm: Hash algorithm to use (default: sha256)

    Returns:
        Hex string of the file hash
    """
    hash_obj = hashlib.new(algorithm)

    with open(file_path, "rb") as f:
        # Read file in chunks to handle large files
        for chunk in iter(lambda: f.read(65536), b""):
            hash_obj.update(chunk)

    return hash_obj.hexdigest()


def safe_filename(filename: str, max_length: int = 255) -> str:
    """Make one path component safe to use as a filename.

    Path separators, reserved characters and control characters become
    ``_``, so the result can never point outside its directory.

    Args:
        filename: Component to clean
        max_length: Longest allowed result; the extension is preserved

    Returns:
        Safe filename string
    """
    filename = "".join(
        "_" if char in INVALID_FILENAME_CHARS or ord(char) < 32 else char
        for char in filename
    )

    # Truncate if too long
    if len(filename) > max_length:
        name, ext = os.path.splitext(filename)
        max_name_length = max_length - len(ext)
        filename = name[:max_name_length] + ext

    return filename


def to_ascii(text: str) -> str:
    """Transliterate accented letters and drop anything else outside ASCII."""
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def is_within_directory(path: Path, directory: Path) -> bool:
    """Check whether path resolves to directory or somewhere below it."""
    try:
        Path(path).resolve().relative_to(Path(directory).resolve())
        return True
    except ValueError:
        return False


def human_readable_size(size_bytes: int) -> str:
    """Format a byte count for the run summary, e.g. ``2.00 KB``."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
