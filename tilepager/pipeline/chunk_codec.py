"""
chunk_codec.py - Quad chunk files for the map buffer

One chunk file holds the submaps of one quad (2x2 submaps) as a JSON array
of records::

    [
      {"version": 33, "coordinates": [x, y, z], <submap members...>},
      ...
    ]

A record may be missing for any member that was not resident when the quad
was saved. A quad whose members are all uniform is never written at all;
the missing file tells the caller to regenerate it.

Reading is best-effort: a bad record is logged and skipped, the remaining
records are still loaded.
"""

import json
import logging
from typing import Callable, List, Mapping, Optional

from tilepager.utils.coords import Tripoint, quad_members, tile_to_squares
from tilepager.utils.fs_utils import (
    assure_dir_exist,
    read_from_file_optional_json,
    write_to_file,
)

log = logging.getLogger(__name__)

# write_chunk() outcomes
CHUNK_WRITTEN = "written"
CHUNK_ELIDED = "elided"
CHUNK_SKIPPED = "skipped"


class MalformedChunkError(ValueError):
    """Chunk document is not an array of records."""


def is_quad_uniform(submaps: Mapping[Tripoint, object], quad: Tripoint) -> bool:
    """True when no resident member of ``quad`` needs persisting."""
    for addr in quad_members(quad):
        sm = submaps.get(addr)
        if sm is not None and not sm.uniform:
            return False
    return True


def build_records(submaps: Mapping[Tripoint, object], quad: Tripoint,
                  version: int) -> List[dict]:
    records = []
    for addr in quad_members(quad):
        sm = submaps.get(addr)
        if sm is None:
            continue
        record = {"version": version, "coordinates": list(addr)}
        sm.store(record)
        records.append(record)
    return records


def write_chunk(submaps: Mapping[Tripoint, object], quad: Tripoint,
                dirname: str, path: str, to_delete: List[Tripoint],
                delete_after_save: bool, version: int,
                disable_mapgen: bool = False) -> str:
    """
    Save one quad of ``submaps`` to ``path``.

    Members that should be dropped from memory afterwards are appended to
    ``to_delete``; the caller removes them once it is done iterating.

    Returns:
        CHUNK_ELIDED if every resident member is uniform (nothing written),
        CHUNK_SKIPPED if map generation is disabled, CHUNK_WRITTEN otherwise.
    """
    if is_quad_uniform(submaps, quad):
        # Regenerating this quad is cheaper than reading it back
        if delete_after_save:
            for addr in quad_members(quad):
                if submaps.get(addr) is not None:
                    to_delete.append(addr)
        return CHUNK_ELIDED

    if disable_mapgen:
        return CHUNK_SKIPPED

    records = build_records(submaps, quad, version)

    # Only create the directory once there is something to put in it
    assure_dir_exist(dirname)
    write_to_file(path, lambda f: json.dump(records, f, separators=(",", ":")))

    if delete_after_save:
        to_delete.extend(tuple(r["coordinates"]) for r in records)

    log.debug(f"Wrote {len(records)} submaps of quad {quad} to {path}")
    return CHUNK_WRITTEN


def _parse_coordinates(value) -> Tripoint:
    if (not isinstance(value, list) or len(value) != 3
            or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)):
        raise ValueError(f"coordinates must be three integers, got {value!r}")
    return tuple(value)


def deserialize_record(record, tile_factory: Callable[[Tripoint], object],
                       source: str = "<chunk>"):
    """Decode one record into ``(coordinates, submap)``.

    The coordinates member has to come before any payload member, since the
    submap is constructed from it. Returns None when the record is unusable.
    """
    if not isinstance(record, dict):
        log.warning(f"{source}: record is not an object, skipping")
        return None

    version = 0
    coords = None
    sm = None
    for name, value in record.items():
        if name == "version":
            try:
                version = int(value)
            except (TypeError, ValueError):
                log.warning(f"{source}: bad version {value!r}, skipping record")
                return None
        elif name == "coordinates":
            try:
                coords = _parse_coordinates(value)
            except ValueError as e:
                log.warning(f"{source}: {e}, skipping record")
                return None
            try:
                sm = tile_factory(coords)
            except Exception as e:
                log.warning(f"{source}: failed to create submap {coords}: {e}, skipping record")
                return None
        else:
            if sm is None:
                log.warning(f"{source}: coordinates was not at the top of submap json "
                            f"(found '{name}' first), skipping record")
                return None
            try:
                sm.load(value, name, version, tile_to_squares(coords))
            except Exception as e:
                log.warning(f"{source}: failed to load member '{name}' of submap {coords}: {e}")
                return None

    if sm is None:
        log.warning(f"{source}: record has no coordinates, skipping")
        return None
    return coords, sm


def deserialize(data, tile_factory: Callable[[Tripoint], object],
                add_submap: Callable[[Tripoint, object], bool],
                source: str = "<chunk>") -> int:
    """Feed every decodable record of a chunk document to ``add_submap``.

    Returns the number of submaps that were accepted.
    """
    if not isinstance(data, list):
        raise MalformedChunkError(f"{source}: expected an array of submap records")

    loaded = 0
    for record in data:
        decoded = deserialize_record(record, tile_factory, source)
        if decoded is None:
            continue
        coords, sm = decoded
        if not add_submap(coords, sm):
            log.warning(f"{source}: submap {coords[0]},{coords[1]},{coords[2]} was already loaded")
            continue
        loaded += 1
    return loaded


def read_chunk(path: str, tile_factory: Callable[[Tripoint], object],
               add_submap: Callable[[Tripoint, object], bool]) -> Optional[int]:
    """
    Load a chunk file into the working set.

    Returns None when the file does not exist, otherwise the number of
    submaps added. I/O and JSON errors propagate.
    """
    result = []

    def _reader(data):
        result.append(deserialize(data, tile_factory, add_submap, source=path))

    if not read_from_file_optional_json(path, _reader):
        return None
    log.debug(f"Loaded {result[0]} submaps from {path}")
    return result[0]
