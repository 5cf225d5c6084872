"""Built-in work functions and their registry.

Each transform is a module-level ``(Job) -> Result`` callable so it can be
pickled into a worker process.
"""

from collections.abc import Callable

from pyshrink.transforms.checksum import mutate_checksum
from pyshrink.transforms.recompress import recompress_image
from pyshrink.types.job import Job, Result

# =============================================================================
# TRANSFORM REGISTRATION
# =============================================================================
TRANSFORMS: dict[str, Callable[[Job], Result]] = {}

TRANSFORMS["compress"] = recompress_image
TRANSFORMS["md5"] = mutate_checksum


def list_transforms() -> list[str]:
    """Return all registered transform names."""
    return list(TRANSFORMS.keys())


def get_transform(name: str) -> Callable[[Job], Result]:
    """Get the work function registered as ``name``."""
    return TRANSFORMS[name]


__all__ = [
    "TRANSFORMS",
    "get_transform",
    "list_transforms",
    "mutate_checksum",
    "recompress_image",
]
