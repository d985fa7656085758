"""
submap.py - Reference tile type for the map buffer

A submap is a SUBMAP_SIZE x SUBMAP_SIZE grid of terrain ids. The map buffer
only relies on the ``uniform`` flag plus the ``store``/``load`` pair, so any
object honouring that contract can be paged through it.

Terrain is stored row-major and run-length encoded: a run of one square is
written as the bare id, longer runs as ``[id, count]``.
"""

import logging
from typing import List, Optional

from tilepager.utils.constants import SUBMAP_SIZE
from tilepager.utils.coords import Tripoint, tile_to_squares

log = logging.getLogger(__name__)

DEFAULT_TERRAIN = "t_dirt"


class Submap:

    def __init__(self, coord: Tripoint, ter_id: str = DEFAULT_TERRAIN):
        self.coord = tuple(coord)
        self.origin = tile_to_squares(self.coord)
        self.terrain: List[List[str]] = [
            [ter_id] * SUBMAP_SIZE for _ in range(SUBMAP_SIZE)
        ]
        self.turn_last_touched = 0
        self.uniform = False

    @classmethod
    def uniform_of(cls, coord: Tripoint, ter_id: str = DEFAULT_TERRAIN) -> "Submap":
        """Submap that is entirely ``ter_id`` and never needs persisting."""
        sm = cls(coord, ter_id)
        sm.uniform = True
        return sm

    def get_ter(self, x: int, y: int) -> str:
        return self.terrain[y][x]

    def set_ter(self, x: int, y: int, ter_id: str) -> None:
        self.terrain[y][x] = ter_id
        self.uniform = False

    def __eq__(self, other):
        if not isinstance(other, Submap):
            return NotImplemented
        return (self.coord == other.coord
                and self.terrain == other.terrain
                and self.turn_last_touched == other.turn_last_touched)

    def __repr__(self):
        return f"Submap({self.coord}, uniform={self.uniform})"

    # ------------------------------------------------------------------
    # Payload codec
    # ------------------------------------------------------------------

    def store(self, writer: dict) -> None:
        writer["turn_last_touched"] = self.turn_last_touched
        writer["terrain"] = self._encode_terrain()

    def load(self, value, member_name: str, version: int,
             offset: Optional[Tripoint] = None) -> None:
        """Load one record member.

        ``offset`` is the absolute square offset of the submap; it must match
        the one derived from the record's coordinates.
        """
        if offset is not None and tuple(offset) != self.origin:
            raise ValueError(f"offset {offset} does not match submap origin {self.origin}")
        if member_name == "turn_last_touched":
            self.turn_last_touched = int(value)
        elif member_name == "terrain":
            self.terrain = self._decode_terrain(value)
        else:
            log.debug(f"Submap {self.coord}: skipping unknown member '{member_name}' (v{version})")

    def _encode_terrain(self) -> list:
        runs = []
        last = None
        count = 0
        for row in self.terrain:
            for ter in row:
                if ter == last:
                    count += 1
                    continue
                if last is not None:
                    runs.append(last if count == 1 else [last, count])
                last = ter
                count = 1
        if last is not None:
            runs.append(last if count == 1 else [last, count])
        return runs

    @staticmethod
    def _decode_terrain(runs) -> List[List[str]]:
        if not isinstance(runs, list):
            raise ValueError("terrain must be a list of runs")
        squares = SUBMAP_SIZE * SUBMAP_SIZE
        flat = []
        for run in runs:
            if isinstance(run, str):
                ter, count = run, 1
            elif (isinstance(run, list) and len(run) == 2 and isinstance(run[0], str)
                    and isinstance(run[1], int) and not isinstance(run[1], bool)):
                ter, count = run
            else:
                raise ValueError(f"bad terrain run {run!r}")
            # Counts are bounded before expanding
            if count < 1:
                raise ValueError(f"bad terrain run count {run!r}")
            if len(flat) + count > squares:
                raise ValueError(f"terrain run {run!r} overflows {squares} squares")
            flat.extend([ter] * count)
        if len(flat) != SUBMAP_SIZE * SUBMAP_SIZE:
            raise ValueError(f"terrain covers {len(flat)} squares, "
                             f"expected {SUBMAP_SIZE * SUBMAP_SIZE}")
        return [flat[i:i + SUBMAP_SIZE] for i in range(0, len(flat), SUBMAP_SIZE)]
