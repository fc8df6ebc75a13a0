"""Voxel find & replace engine."""

from .errors import (
    AdjustmentStateError,
    EmptyPatternError,
    FindReplaceError,
    MissingCollaboratorError,
    NoMatchesError,
    NoReplacementPatternError,
)
from .matcher import MatchSearch, find_matches
from .pattern import normalize, pattern_from_component, sample_region
from .replace import execute_replace
from .rotation import rotate
from .tool import FindReplaceTool
from .types import Bounds, CellDelta, FindReplaceSettings, Match, Pattern
from .volume import Volume, VolumeSnapshot

__all__ = [
    "AdjustmentStateError",
    "Bounds",
    "CellDelta",
    "EmptyPatternError",
    "FindReplaceError",
    "FindReplaceSettings",
    "FindReplaceTool",
    "Match",
    "MatchSearch",
    "MissingCollaboratorError",
    "NoMatchesError",
    "NoReplacementPatternError",
    "Pattern",
    "Volume",
    "VolumeSnapshot",
    "execute_replace",
    "find_matches",
    "normalize",
    "pattern_from_component",
    "rotate",
    "sample_region",
]
