""" module to hold the simulation's current active region """

import logging

from tilepager.utils.coords import Tripoint, tile_to_quad

log = logging.getLogger(__name__)


class ActiveRegion(object):
    """
    Where the simulation currently is.

    ``origin`` is the quad coordinate of the loaded map's origin,
    ``z_level`` the vertical level being played and ``has_zlevels`` whether
    the loaded map spans more than one level.
    """

    def __init__(self, origin: Tripoint = (0, 0, 0), z_level: int = 0,
                 has_zlevels: bool = True):
        self.origin = tuple(origin)
        self.z_level = z_level
        self.has_zlevels = has_zlevels

    def set_origin_from_tile(self, tile: Tripoint) -> None:
        self.origin = tile_to_quad(tuple(tile))
        log.debug(f"Active region origin moved to quad {self.origin}")

    def __repr__(self):
        return (f"ActiveRegion(origin={self.origin}, z_level={self.z_level}, "
                f"has_zlevels={self.has_zlevels})")


active_region = ActiveRegion()
