"""CLI command modules."""

from .facts import facts
from .maintenance import cleanup
from .pipeline import materialize, reconcile, run_all
from .seed import seed
from .status import status

__all__ = [
    "materialize",
    "reconcile",
    "run_all",
    "seed",
    "status",
    "facts",
    "cleanup",
]
