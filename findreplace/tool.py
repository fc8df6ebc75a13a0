"""Find & replace tool: the stateful facade a host editor drives.

The tool owns everything between user gestures: the find pattern, the
replacement patterns, the current matches, the search in flight, and the
adjustment state. It borrows the volume and the undo sink from the host and
reports back through an ``EventSink`` (search progress, adjustment mode
changes, offset changes, pattern changes) instead of firing ambient events.

Typical cycle::

    tool.set_find_pattern(...)
    tool.add_replacement_pattern(...)
    tool.find_matches()              # or: await tool.find_matches_async()
    tool.execute_replace()           # enters adjustment
    tool.apply_offset_adjustment((1, 0, 0))
    tool.confirm_adjustment()        # or: tool.cancel_adjustment()

Starting a new swap or deactivating the tool while an adjustment is active
confirms it first; in-progress work is never discarded silently.
"""

from __future__ import annotations

import logging
from typing import Protocol

from . import adjustment
from .adjustment import IDLE, ZERO_OFFSET, Adjusting, AdjustmentState, UndoSink
from .errors import MissingCollaboratorError
from .matcher import MatchSearch
from .pattern import pattern_from_component, sample_region
from .prng import PCG32
from .replace import ReplaceResult, execute_replace
from .types import (
    AdjustmentEvent,
    Bounds,
    CellDelta,
    Coord,
    FindReplaceSettings,
    Match,
    OffsetEvent,
    Pattern,
    SearchProgress,
)
from .volume import VolumeAccessor, VolumeSnapshot

logger = logging.getLogger(__name__)

_AXES = {"x": 0, "y": 1, "z": 2}


class EventSink(Protocol):
    def search_progress(self, progress: SearchProgress) -> None: ...

    def adjustment_changed(self, event: AdjustmentEvent) -> None: ...

    def offset_changed(self, event: OffsetEvent) -> None: ...

    def patterns_changed(self, kind: str, patterns: list[Pattern]) -> None: ...


class NullEventSink:
    def search_progress(self, progress: SearchProgress) -> None:
        pass

    def adjustment_changed(self, event: AdjustmentEvent) -> None:
        pass

    def offset_changed(self, event: OffsetEvent) -> None:
        pass

    def patterns_changed(self, kind: str, patterns: list[Pattern]) -> None:
        pass


class FindReplaceTool:
    def __init__(
        self,
        volume: VolumeAccessor | None,
        undo_sink: UndoSink | None,
        events: EventSink | None = None,
        settings: FindReplaceSettings | None = None,
    ) -> None:
        self.volume = volume
        self.undo_sink = undo_sink
        self.events: EventSink = events or NullEventSink()
        self.settings = settings or FindReplaceSettings()
        self.rng = PCG32.from_optional_seed(self.settings.seed)

        self.active = False
        self.find_pattern: Pattern | None = None
        self.replacement_patterns: list[Pattern] = []
        self.matches: list[Match] = []
        self.state: AdjustmentState = IDLE
        self.replacement_offset: Coord = ZERO_OFFSET
        self._search: MatchSearch | None = None

    # -- Lifecycle ---------------------------------------------------

    @property
    def is_adjusting(self) -> bool:
        return isinstance(self.state, Adjusting)

    @property
    def is_searching(self) -> bool:
        return self._search is not None and not self._search.finished

    def activate(self) -> None:
        self.reset_state()
        self.active = True

    def deactivate(self) -> None:
        if self.is_adjusting:
            self.confirm_adjustment()
        self.cancel_search()
        self.reset_state()
        self.active = False

    def reset_state(self) -> None:
        self.matches = []
        self.state = IDLE
        self.replacement_offset = ZERO_OFFSET

    # -- Patterns ----------------------------------------------------

    def set_find_pattern(self, pattern: Pattern) -> None:
        self.find_pattern = pattern
        self.matches = []
        self.events.patterns_changed("find", [pattern])

    def set_find_pattern_from_component(self, component: dict) -> Pattern:
        pattern = pattern_from_component(component)
        self.set_find_pattern(pattern)
        return pattern

    def define_find_from_region(
        self, bounds: Bounds, name: str | None = None
    ) -> Pattern:
        pattern = sample_region(self._require_volume(), bounds, name)
        self.set_find_pattern(pattern)
        return pattern

    def set_replacement_pattern(self, pattern: Pattern) -> None:
        self.replacement_patterns = [pattern]
        self._replacements_changed()

    def add_replacement_pattern(self, pattern: Pattern) -> None:
        self.replacement_patterns.append(pattern)
        self._replacements_changed()

    def add_replacement_from_component(self, component: dict) -> Pattern:
        pattern = pattern_from_component(component)
        self.add_replacement_pattern(pattern)
        return pattern

    def define_replacement_from_region(
        self, bounds: Bounds, name: str | None = None
    ) -> Pattern:
        pattern = sample_region(self._require_volume(), bounds, name)
        self.set_replacement_pattern(pattern)
        return pattern

    def remove_replacement_pattern(self, index: int) -> None:
        del self.replacement_patterns[index]
        self._replacements_changed()

    def clear_replacement_patterns(self) -> None:
        self.replacement_patterns = []
        self._replacements_changed()

    def _replacements_changed(self) -> None:
        self.events.patterns_changed(
            "replace", list(self.replacement_patterns)
        )

    # -- Settings ----------------------------------------------------

    def set_scope(self, bounds: Bounds | None) -> None:
        self.update_settings(scope=bounds)

    def define_scope_from_corners(
        self, start: Coord, end: Coord, height: int = 1
    ) -> Bounds:
        """Scope spanning two ground corners, ``height`` cells up from ``start``."""
        base_y = start[1]
        bounds = Bounds(
            (min(start[0], end[0]), base_y, min(start[2], end[2])),
            (
                max(start[0], end[0]),
                base_y + max(1, height) - 1,
                max(start[2], end[2]),
            ),
        )
        self.set_scope(bounds)
        return bounds

    def update_settings(self, **changes) -> None:
        for key, value in changes.items():
            if not hasattr(self.settings, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self.settings, key, value)
        if "seed" in changes:
            self.rng = PCG32.from_optional_seed(self.settings.seed)
        if "scope" in changes or "match_rotations" in changes:
            self.matches = []

    # -- Search ------------------------------------------------------

    def _new_search(self) -> MatchSearch | None:
        self.cancel_search()
        if self.find_pattern is None or self.find_pattern.is_empty:
            self.matches = []
            self.events.search_progress(SearchProgress(0, False, 100))
            return None
        self._search = MatchSearch(
            self.find_pattern,
            self._require_volume(),
            scope=self.settings.scope,
            match_rotations=self.settings.match_rotations,
            batch_size=self.settings.batch_size,
        )
        return self._search

    def _finish_search(self, search: MatchSearch) -> list[Match]:
        if self._search is search:
            self._search = None
        if search.cancelled:
            return []
        self.matches = search.matches
        return self.matches

    def find_matches(self) -> list[Match]:
        search = self._new_search()
        if search is None:
            return []
        for progress in search.batches():
            self.events.search_progress(progress)
        return self._finish_search(search)

    async def find_matches_async(self) -> list[Match]:
        """Search cooperatively, yielding to the event loop between batches.

        Starting another search while this one is suspended cancels it; it
        then returns an empty list and leaves ``self.matches`` alone.
        """
        search = self._new_search()
        if search is None:
            return []
        await search.run_async(self.events.search_progress)
        return self._finish_search(search)

    def cancel_search(self) -> None:
        if self._search is not None and not self._search.finished:
            logger.info("Cancelling in-flight search")
            self._search.cancel()
        self._search = None

    # -- Swap and adjustment -----------------------------------------

    def execute_replace(self) -> ReplaceResult:
        # Only matches found during the adjustment survive the confirm.
        matches = list(self.matches)
        if self.is_adjusting:
            self.confirm_adjustment()
        volume = self._require_volume()
        if self.undo_sink is None:
            raise MissingCollaboratorError("No undo sink attached to the tool")
        pre_swap = VolumeSnapshot.capture(volume)
        result = execute_replace(
            volume,
            matches,
            self.find_pattern or Pattern(),
            self.replacement_patterns,
            random_rotation=self.settings.random_replacement_rotation,
            rng=self.rng,
        )
        self.replacement_offset = ZERO_OFFSET
        self.state = adjustment.begin_adjustment(
            pre_swap, result, [p.match for p in result.placements]
        )
        self.matches = []
        self.events.adjustment_changed(
            AdjustmentEvent(active=True, replaced=result.replaced)
        )
        self.events.offset_changed(OffsetEvent(ZERO_OFFSET))
        return result

    def apply_offset_adjustment(self, offset: Coord) -> CellDelta:
        self.state, delta = adjustment.apply_offset(
            self.state, self._require_volume(), offset
        )
        self.replacement_offset = self.state.session.offset
        if not delta.is_empty:
            self.events.offset_changed(OffsetEvent(self.replacement_offset))
        return delta

    def set_replacement_offset(self, axis: str, value: int) -> None:
        offset = list(self.replacement_offset)
        offset[_AXES[axis]] = int(value)
        new_offset = (offset[0], offset[1], offset[2])
        if self.is_adjusting:
            self.apply_offset_adjustment(new_offset)
        else:
            self.replacement_offset = new_offset
            self.events.offset_changed(OffsetEvent(new_offset))

    def reset_replacement_offset(self) -> None:
        if self.is_adjusting:
            self.apply_offset_adjustment(ZERO_OFFSET)
        else:
            self.replacement_offset = ZERO_OFFSET
            self.events.offset_changed(OffsetEvent(ZERO_OFFSET))

    def confirm_adjustment(self) -> CellDelta:
        replaced = self._replaced_count()
        self.state, delta = adjustment.confirm(
            self.state, self._require_volume(), self.undo_sink
        )
        self.matches = []
        self.replacement_offset = ZERO_OFFSET
        self.events.adjustment_changed(
            AdjustmentEvent(active=False, replaced=replaced, confirmed=True)
        )
        return delta

    def cancel_adjustment(self) -> CellDelta:
        self.state, delta = adjustment.cancel(
            self.state, self._require_volume()
        )
        self.matches = []
        self.replacement_offset = ZERO_OFFSET
        self.events.adjustment_changed(
            AdjustmentEvent(active=False, cancelled=True)
        )
        self.events.offset_changed(OffsetEvent(ZERO_OFFSET))
        return delta

    def _replaced_count(self) -> int:
        if isinstance(self.state, Adjusting):
            return self.state.session.replaced
        return 0

    def _require_volume(self) -> VolumeAccessor:
        if self.volume is None:
            raise MissingCollaboratorError("No volume attached to the tool")
        return self.volume
