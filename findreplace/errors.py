"""Exception taxonomy for the find & replace engine.

Every error here is raised before the volume is touched, so catching one
never leaves a half-applied swap behind.
"""

from __future__ import annotations


class FindReplaceError(Exception):
    """Base class for all engine errors."""


class EmptyPatternError(FindReplaceError):
    """The pattern has no cells. Callers treat this as a no-op."""


class NoMatchesError(FindReplaceError):
    """A replace was requested with no matches to act on."""


class NoReplacementPatternError(FindReplaceError):
    """A replace was requested without any replacement pattern."""


class MissingCollaboratorError(FindReplaceError):
    """A required external collaborator (volume, undo sink) is missing."""


class AdjustmentStateError(FindReplaceError):
    """The operation needs an active adjustment session."""
