"""cowfs CLI: inspect and modify a copy-on-write view from the shell."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _basic  # noqa: F401
