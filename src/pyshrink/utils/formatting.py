"""Human-readable formatting helpers."""

BYTE_SUFFIXES = ("B", "KB", "MB", "GB")


def format_bytes(n_bytes: float) -> str:
    """Format a byte count with two decimals, e.g. ``1536 -> '1.50 KB'``."""
    size = float(n_bytes)
    index = 0
    while abs(size) >= 1024 and index < len(BYTE_SUFFIXES) - 1:
        size /= 1024
        index += 1
    return f"{size:.2f} {BYTE_SUFFIXES[index]}"


def format_reduction(original: float, transformed: float) -> str:
    """Size reduction as a percentage string, ``'N/A'`` for an empty original."""
    if original == 0:
        return "N/A"
    return f"{(1 - transformed / original) * 100:.2f}%"


__all__ = ["BYTE_SUFFIXES", "format_bytes", "format_reduction"]
