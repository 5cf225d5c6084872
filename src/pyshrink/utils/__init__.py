from pyshrink.utils.formatting import format_bytes, format_reduction

__all__ = ["format_bytes", "format_reduction"]
