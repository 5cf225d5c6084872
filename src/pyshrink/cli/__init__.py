from pyshrink.cli.main import app

__all__ = ["app"]
