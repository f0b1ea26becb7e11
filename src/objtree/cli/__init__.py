"""objtree CLI: browse and sync S3 buckets as directory trees."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _basic, _sync  # noqa: F401
