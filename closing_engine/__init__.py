"""Closing engine for pre-construction condominium sales.

Calculates statements of adjustments, classifies closing shortfalls and
allocates the project's discount and VTB budget across open units.
"""

from .errors import ClosingEngineError, LockedStateError, NotFoundError, PreconditionNotMetError
from .services import ClosingRepository, SOAService, ShortfallService, SummaryService

__version__ = "0.1.0"

__all__ = [
    "ClosingEngineError",
    "LockedStateError",
    "NotFoundError",
    "PreconditionNotMetError",
    "ClosingRepository",
    "SOAService",
    "ShortfallService",
    "SummaryService",
]
