"""Locating non-overlapping occurrences of a pattern in a volume.

The search never scans the volume's coordinate space. Instead:

  1. Each rotation variant of the find pattern is flattened into an
     ``OptimizedPattern``: a list of ``(dx, dy, dz, type_id)`` deltas plus an
     *anchor* delta (the cell at the local origin, or the first cell).
  2. ``build_index`` groups the volume's coordinates by type id.
  3. For each variant, every volume cell holding the anchor's type proposes
     the origin ``cell - anchor``. Origins outside the optional scope are
     dropped; the rest are pooled (deduplicated) across variants. An origin
     where no variant's anchor is physically present can never match, so
     this loses nothing.
  4. Candidates are visited in ascending ``(x, y, z)`` order. At each one the
     variants are tried in ascending rotation order; the first that matches
     every delta cell exactly, without touching a cell claimed by an earlier
     match, wins and claims its footprint.

Acceptance is order-dependent but deterministic, and independent of the
volume's insertion order. A brute-force scan over the same sorted order
(``findreplace_cmp``) must produce the identical match list.

``MatchSearch`` runs this in batches so a host event loop stays responsive:
``batches()`` is a generator yielding a ``SearchProgress`` between batches,
and ``cancel()`` sets a flag checked at the top of each batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from .errors import EmptyPatternError, MissingCollaboratorError
from .index import build_index
from .rotation import rotation_variants
from .types import (
    DEFAULT_BATCH_SIZE,
    Bounds,
    Coord,
    Match,
    Pattern,
    SearchProgress,
)
from .volume import VolumeAccessor

logger = logging.getLogger(__name__)

Delta = tuple[int, int, int, int]  # (dx, dy, dz, type_id)


@dataclass(frozen=True)
class OptimizedPattern:
    deltas: list[Delta]
    anchor: Delta
    width: int
    height: int
    depth: int
    rotation: int = 0


def optimize(pattern: Pattern, rotation: int = 0) -> OptimizedPattern:
    """Flatten a pattern's cells for the matching hot path."""
    if pattern.is_empty:
        raise EmptyPatternError(f"Pattern {pattern.name or ''!r} has no cells")
    deltas = [(x, y, z, t) for (x, y, z), t in pattern.cells.items()]
    anchor = deltas[0]
    for d in deltas:
        if d[0] == 0 and d[1] == 0 and d[2] == 0:
            anchor = d
            break
    return OptimizedPattern(
        deltas=deltas,
        anchor=anchor,
        width=pattern.width,
        height=pattern.height,
        depth=pattern.depth,
        rotation=rotation,
    )


def footprint(opt: OptimizedPattern, origin: Coord) -> list[Coord]:
    ox, oy, oz = origin
    return [(ox + dx, oy + dy, oz + dz) for dx, dy, dz, _ in opt.deltas]


def matches_at(
    volume: VolumeAccessor,
    opt: OptimizedPattern,
    origin: Coord,
    claimed: set[Coord],
) -> bool:
    """True if every delta cell is present with its exact type and unclaimed."""
    ox, oy, oz = origin
    for dx, dy, dz, type_id in opt.deltas:
        c = (ox + dx, oy + dy, oz + dz)
        if c in claimed:
            return False
        if volume.get(c) != type_id:
            return False
    return True


def candidate_origins(
    variants: list[OptimizedPattern],
    index: dict[int, list[Coord]],
    scope: Bounds | None = None,
) -> list[Coord]:
    """Origins where at least one variant's anchor cell is present, sorted."""
    origins: set[Coord] = set()
    for opt in variants:
        ax, ay, az, anchor_type = opt.anchor
        for x, y, z in index.get(anchor_type, ()):
            origin = (x - ax, y - ay, z - az)
            if scope is not None and not scope.contains(origin):
                continue
            origins.add(origin)
    return sorted(origins)


def accept_matches(
    volume: VolumeAccessor,
    variants: list[OptimizedPattern],
    origins: list[Coord],
    claimed: set[Coord],
    accepted: list[Match],
) -> None:
    """First-match-wins acceptance over ``origins``, updating in place."""
    for origin in origins:
        for opt in variants:
            if matches_at(volume, opt, origin, claimed):
                accepted.append(Match(origin, opt.rotation))
                claimed.update(footprint(opt, origin))
                break


def _percent(done: int, total: int) -> int:
    if total <= 0:
        return 100
    return int(done * 100 / total + 0.5)


class MatchSearch:
    """One cancellable, batch-driven search run."""

    def __init__(
        self,
        pattern: Pattern,
        volume: VolumeAccessor | None,
        scope: Bounds | None = None,
        match_rotations: bool = True,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if volume is None:
            raise MissingCollaboratorError("No volume available to search")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.pattern = pattern
        self.volume = volume
        self.scope = scope
        self.match_rotations = match_rotations
        self.batch_size = batch_size
        self.matches: list[Match] = []
        self.finished = False
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def batches(self) -> Iterator[SearchProgress]:
        """Run the search, yielding progress between batches.

        The last value yielded has ``searching=False``. ``self.matches`` is
        only populated once the run completes without being cancelled.
        """
        try:
            variants = [
                optimize(p, r)
                for r, p in rotation_variants(
                    self.pattern, self.match_rotations
                )
            ]
        except EmptyPatternError:
            logger.debug("Empty find pattern; nothing to search")
            self.finished = True
            yield SearchProgress(0, False, 100)
            return

        candidates = candidate_origins(
            variants, build_index(self.volume), self.scope
        )
        total = len(candidates)
        logger.info(
            "Searching %d candidate origin(s) over %d rotation(s)",
            total,
            len(variants),
        )
        yield SearchProgress(0, True, 0)

        accepted: list[Match] = []
        claimed: set[Coord] = set()
        for start in range(0, total, self.batch_size):
            if self._cancelled:
                logger.info(
                    "Search cancelled after %d of %d candidates", start, total
                )
                self.finished = True
                yield SearchProgress(0, False, _percent(start, total), True)
                return
            batch = candidates[start : start + self.batch_size]
            accept_matches(self.volume, variants, batch, claimed, accepted)
            done = start + len(batch)
            if done < total:
                yield SearchProgress(len(accepted), True, _percent(done, total))

        if self._cancelled:
            self.finished = True
            yield SearchProgress(0, False, 100, True)
            return

        self.matches = accepted
        self.finished = True
        logger.info("Search finished with %d match(es)", len(accepted))
        yield SearchProgress(len(accepted), False, 100)

    def run(self) -> list[Match]:
        for _ in self.batches():
            pass
        return self.matches

    async def run_async(
        self, on_progress: Callable[[SearchProgress], None] | None = None
    ) -> list[Match]:
        """Drive the search, yielding to the event loop between batches."""
        for progress in self.batches():
            if on_progress is not None:
                on_progress(progress)
            if progress.searching:
                await asyncio.sleep(0)
        return self.matches


def find_matches(
    pattern: Pattern,
    volume: VolumeAccessor,
    scope: Bounds | None = None,
    match_rotations: bool = True,
) -> list[Match]:
    """Synchronous search returning accepted matches in acceptance order."""
    return MatchSearch(pattern, volume, scope, match_rotations).run()
