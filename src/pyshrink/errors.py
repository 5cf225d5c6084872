"""Exception types shared by the pool, the transforms and the CLI."""


class PyshrinkError(Exception):
    """Base class for pyshrink errors."""


class ConfigError(PyshrinkError, ValueError):
    """Invalid pool construction or configuration file.

    Raised before any job runs; fatal for the whole batch.
    """


class JobFailure(PyshrinkError):
    """Raised by a work function to fail its job with a clean message."""


class ExecutorFault(PyshrinkError):
    """The isolated execution context failed to start, died or timed out."""


__all__ = [
    "PyshrinkError",
    "ConfigError",
    "JobFailure",
    "ExecutorFault",
]
