"""
mapbuffer.py - In-memory working set of submaps, paged to quad chunk files

Keeps every resident submap keyed by its submap coordinate and pages quads
(2x2 submaps) to and from ``<world_root>/maps/<segment>/<quad>.map``.

Key behaviours:
- At most one resident submap per coordinate; a duplicate insert is refused
  and the caller keeps the rejected submap
- Lookups that miss fault in the whole quad from disk, once
- Quads made only of uniform submaps are never written, the absent chunk
  means "regenerate"
- Saves drop quads that are far from the active region, and everything when
  asked to, after the save pass has finished iterating
- Read failures turn into a miss; write failures propagate

Single threaded. The progress reporter runs inside ``flush()`` and must not
call back into the buffer.
"""

import atexit
import logging
import os
import time
from typing import Callable, Dict, List, Optional

import psutil

from tilepager.mapconfig import CFG
from tilepager.pipeline.chunk_codec import (
    CHUNK_ELIDED,
    CHUNK_SKIPPED,
    CHUNK_WRITTEN,
    read_chunk,
    write_chunk,
)
from tilepager.services.active_region import active_region
from tilepager.services.progress_service import LogProgressReporter
from tilepager.submap import Submap
from tilepager.utils.constants import MAPS_DIRNAME, QUAD_SIZE
from tilepager.utils.coords import (
    Tripoint,
    find_chunk_path,
    quad_to_chunk_path,
    quad_to_segment_dir,
    tile_to_quad,
)
from tilepager.utils.fs_utils import assure_dir_exist

log = logging.getLogger(__name__)


class MapBuffer:
    """
    Owning cache of submaps for the running world.

    Inserting a submap hands it to the buffer; ``remove()`` and ``reset()``
    drop the buffer's reference. Settings not passed to the constructor are
    read from ``CFG`` each time they are needed.
    """

    def __init__(self, world_root: Optional[str] = None,
                 tile_factory: Optional[Callable[[Tripoint], object]] = None,
                 region=None, reporter=None,
                 half_mapsize: Optional[int] = None,
                 disable_mapgen: Optional[bool] = None,
                 savegame_version: Optional[int] = None,
                 progress_interval_ms: Optional[int] = None):
        """
        Args:
            world_root: Per-save directory; ``maps/`` is created beneath it.
                        Defaults to CFG.paths.world_root.
            tile_factory: Builds an empty submap for a coordinate before its
                          record members are loaded. Defaults to Submap.
            region: Active-region oracle. Defaults to the process-wide one.
            reporter: Progress channel for flush(). Defaults to logging.
        """
        self._world_root = world_root
        self._tile_factory = tile_factory or Submap
        self._region = region
        self._reporter = reporter
        self._half_mapsize = half_mapsize
        self._disable_mapgen = disable_mapgen
        self._savegame_version = savegame_version
        self._progress_interval_ms = progress_interval_ms

        self._submaps: Dict[Tripoint, object] = {}
        self._save_listeners: List[Callable[[], None]] = []

        # Statistics
        self._hits = 0
        self._misses = 0
        self._chunk_loads = 0
        self._chunks_written = 0
        self._quads_elided = 0
        self._removals = 0

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def world_root(self) -> str:
        return self._world_root or CFG.paths.world_root

    @property
    def region(self):
        return self._region or active_region

    @property
    def reporter(self):
        if self._reporter is None:
            self._reporter = LogProgressReporter()
        return self._reporter

    def _setting(self, override, name, default):
        if override is not None:
            return override
        return getattr(CFG.mapbuffer, name, default)

    @property
    def half_mapsize(self) -> int:
        return int(self._setting(self._half_mapsize, 'half_mapsize', 5))

    @property
    def disable_mapgen(self) -> bool:
        return self._setting(self._disable_mapgen, 'disable_mapgen', False) is True

    @property
    def savegame_version(self) -> int:
        return int(self._setting(self._savegame_version, 'savegame_version', 33))

    @property
    def progress_interval(self) -> float:
        """Seconds between progress ticks during flush()."""
        return int(self._setting(self._progress_interval_ms, 'progress_interval_ms', 500)) / 1000.0

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._submaps)

    def __contains__(self, p) -> bool:
        return tuple(p) in self._submaps

    def __iter__(self):
        return iter(self._submaps)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def insert(self, p: Tripoint, sm) -> bool:
        """Take ownership of ``sm`` at ``p``.

        Returns False, leaving ``sm`` with the caller, if ``p`` is already
        resident.
        """
        p = tuple(p)
        if p in self._submaps:
            return False
        self._submaps[p] = sm
        return True

    def remove(self, p: Tripoint) -> None:
        p = tuple(p)
        if self._submaps.pop(p, None) is None:
            log.warning(f"Tried to remove non-existing submap {p}")
            return
        self._removals += 1

    def get(self, p: Tripoint):
        """
        Return the submap at ``p``, faulting its quad in from disk on a miss.

        Returns None when the quad was never saved (the caller should
        generate it) or when loading it failed.
        """
        p = tuple(p)
        sm = self._submaps.get(p)
        if sm is not None:
            self._hits += 1
            return sm

        self._misses += 1
        return self._unserialize_submaps(p)

    def add_save_listener(self, callback: Callable[[], None]) -> None:
        """Call ``callback()`` after every completed flush()."""
        self._save_listeners.append(callback)

    def flush(self, delete_after_save: bool = False) -> None:
        """
        Save every resident quad.

        A quad is also dropped from memory after saving when
        ``delete_after_save`` is set, when the map has no z-levels and the
        quad is on another level, or when it lies outside the window of
        ``half_mapsize`` quads starting at the active region's origin.
        Removal happens after the save pass so the index is not modified
        while it is being walked.
        """
        world_root = self.world_root
        assure_dir_exist(os.path.join(world_root, MAPS_DIRNAME))

        num_saved_submaps = 0
        num_total_submaps = len(self._submaps)

        region = self.region
        origin_x, origin_y, _ = region.origin
        has_zlevels = region.has_zlevels
        levz = region.z_level
        half = self.half_mapsize
        version = self.savegame_version
        disable_mapgen = self.disable_mapgen
        reporter = self.reporter
        interval = self.progress_interval

        saved_quads = set()
        submaps_to_delete: List[Tripoint] = []
        written = elided = skipped = 0
        last_update = time.monotonic()

        for addr in self._submaps:
            now = time.monotonic()
            if last_update + interval < now:
                reporter.report(num_saved_submaps, num_total_submaps)
                reporter.pump_pending_events()
                last_update = now

            quad = tile_to_quad(addr)
            if quad in saved_quads:
                continue
            saved_quads.add(quad)

            dirname = quad_to_segment_dir(world_root, quad)
            quad_path = quad_to_chunk_path(dirname, quad)

            qx, qy, qz = quad
            zlev_del = not has_zlevels and qz != levz
            outside = (qx < origin_x or qy < origin_y or
                       qx > origin_x + half or qy > origin_y + half)

            result = write_chunk(self._submaps, quad, dirname, quad_path,
                                 submaps_to_delete,
                                 delete_after_save or zlev_del or outside,
                                 version, disable_mapgen)
            if result == CHUNK_WRITTEN:
                written += 1
            elif result == CHUNK_ELIDED:
                elided += 1
            elif result == CHUNK_SKIPPED:
                skipped += 1
            num_saved_submaps += QUAD_SIZE * QUAD_SIZE

        reporter.close()

        for addr in submaps_to_delete:
            self.remove(addr)

        self._chunks_written += written
        self._quads_elided += elided
        if skipped:
            log.debug(f"Map generation disabled, skipped writing {skipped} quads")

        log.info(f"Saved {len(saved_quads)} quads ({written} written, {elided} uniform), "
                 f"dropped {len(submaps_to_delete)} submaps, {len(self._submaps)} resident")

        for listener in self._save_listeners:
            listener()

    def reset(self) -> None:
        """Drop every resident submap."""
        count = len(self._submaps)
        self._submaps.clear()
        if count:
            log.debug(f"Map buffer reset, released {count} submaps")

    teardown = reset

    @property
    def stats(self) -> dict:
        """Return buffer statistics."""
        rss_mb = psutil.Process().memory_info().rss / (1024 * 1024)
        return {
            'resident': len(self._submaps),
            'hits': self._hits,
            'misses': self._misses,
            'chunk_loads': self._chunk_loads,
            'chunks_written': self._chunks_written,
            'quads_elided': self._quads_elided,
            'removals': self._removals,
            'process_rss_mb': round(rss_mb, 1),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _unserialize_submaps(self, p: Tripoint):
        quad = tile_to_quad(p)
        dirname = quad_to_segment_dir(self.world_root, quad)
        quad_path = find_chunk_path(dirname, quad)

        try:
            loaded = read_chunk(quad_path, self._tile_factory, self.insert)
        except Exception as e:
            log.warning(f"Failed to load submap {p} from {quad_path}: {e}")
            return None
        if loaded is None:
            # Never saved, the caller generates it
            return None
        self._chunk_loads += 1

        sm = self._submaps.get(p)
        if sm is None:
            log.warning(f"file {quad_path} did not contain the expected submap "
                        f"{p[0]},{p[1]},{p[2]}")
            return None
        return sm


MAPBUFFER = MapBuffer()
atexit.register(MAPBUFFER.reset)
