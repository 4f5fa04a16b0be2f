"""cardsync CLI: version character cards in a hosted git repository."""

from ._helpers import main  # noqa: F401  (entry point)

# Import command modules to register Click commands with the main group.
from . import _basic, _refs, _remote  # noqa: F401
