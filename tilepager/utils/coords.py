""" module to hold coordinate conversions and on-disk path helpers """
import locale
import os
from functools import lru_cache
from typing import List, Tuple

from tilepager.utils.constants import (
    CHUNK_SUFFIX,
    MAPS_DIRNAME,
    QUAD_OFFSETS,
    QUAD_SIZE,
    SEGMENT_SIZE,
    SUBMAP_SIZE,
)

Tripoint = Tuple[int, int, int]


def tile_to_quad(tile: Tripoint) -> Tripoint:
    """ submap coordinate -> enclosing quad coordinate """
    x, y, z = tile
    return (x // QUAD_SIZE, y // QUAD_SIZE, z)


def quad_to_tile_anchor(quad: Tripoint) -> Tripoint:
    """ quad coordinate -> its lowest-offset member submap """
    x, y, z = quad
    return (x * QUAD_SIZE, y * QUAD_SIZE, z)


def quad_to_segment(quad: Tripoint) -> Tripoint:
    x, y, z = quad
    return (x // SEGMENT_SIZE, y // SEGMENT_SIZE, z)


def quad_members(quad: Tripoint) -> List[Tripoint]:
    """ the four submap coordinates of a quad, in write order """
    ax, ay, z = quad_to_tile_anchor(quad)
    return [(ax + dx, ay + dy, z) for dx, dy in QUAD_OFFSETS]


def tile_to_squares(tile: Tripoint) -> Tripoint:
    """ submap coordinate -> absolute offset of its first square """
    x, y, z = tile
    return (x * SUBMAP_SIZE, y * SUBMAP_SIZE, z)


@lru_cache(maxsize=1024)
def quad_to_segment_dir(world_root: str, quad: Tripoint) -> str:
    """ get the segment directory a quad's chunk file lives in """
    sx, sy, sz = quad_to_segment(quad)
    return os.path.join(world_root, MAPS_DIRNAME, f"{sx}.{sy}.{sz}")


def quad_to_chunk_path(dirname: str, quad: Tripoint) -> str:
    x, y, z = quad
    return os.path.join(dirname, f"{x}.{y}.{z}{CHUNK_SUFFIX}")


def _grouped(value: int) -> List[str]:
    # Older saves formatted the numbers through the current locale, which may
    # insert thousands separators ("1,234" instead of "1234").
    return [format(value, "n"), locale.format_string("%d", value, grouping=True), f"{value:,}"]


def legacy_chunk_paths(dirname: str, quad: Tripoint) -> List[str]:
    """ alternate chunk paths written by older versions, canonical excluded """
    canonical = quad_to_chunk_path(dirname, quad)
    x, y, z = quad
    paths = []
    for gx, gy, gz in zip(_grouped(x), _grouped(y), _grouped(z)):
        path = os.path.join(dirname, f"{gx}.{gy}.{gz}{CHUNK_SUFFIX}")
        if path != canonical and path not in paths:
            paths.append(path)
    return paths


def find_chunk_path(dirname: str, quad: Tripoint) -> str:
    """
    Return the path to read a quad's chunk from.

    The canonical path wins when it exists. Otherwise the first legacy path
    that exists is returned, and failing that the canonical path again so
    the caller sees a plain "missing" result.
    """
    canonical = quad_to_chunk_path(dirname, quad)
    if os.path.exists(canonical):
        return canonical
    for path in legacy_chunk_paths(dirname, quad):
        if os.path.exists(path):
            return path
    return canonical
