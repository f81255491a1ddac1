"""
Helper Utilities Module.

Small generic helpers shared by the acquisition layer, the arithmetic
passes and the CLI.

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Optional, Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Create a directory (and its parents) when missing.

    Args:
        path: Directory to create.

    Returns:
        The directory as a Path.
    """
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_file_extension(name: Union[str, Path]) -> str:
    """
    Lowercase extension of a file name hint, dot included.

    Example:
        >>> get_file_extension("Facture_2024.PDF")
        '.pdf'
        >>> get_file_extension("scan")
        ''
    """
    return Path(name).suffix.lower()


def format_file_size(size_bytes: int) -> str:
    """
    Byte count for log lines.

    Example:
        >>> format_file_size(2048)
        '2.0 KB'
    """
    size = float(size_bytes)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def round_amount(value: Optional[float], digits: int = 2) -> Optional[float]:
    """Round to cents, passing None through."""
    if value is None:
        return None
    return round(value, digits)
