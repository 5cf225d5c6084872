"""Shared record types."""

from pyshrink.types.job import Job, Result, ResultStatus

__all__ = ["Job", "Result", "ResultStatus"]
