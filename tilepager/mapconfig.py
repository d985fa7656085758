#!/usr/bin/env python3

"""
mapconfig.py - INI backed configuration for tilepager

Sections are exposed as attributes of the module level ``CFG`` object so
callers can write ``CFG.paths.world_root`` or
``getattr(CFG.mapbuffer, 'half_mapsize', 5)``.  Values are kept as strings
except for booleans, numeric coercion happens at the use site.
"""

import configparser
import logging
import os

log = logging.getLogger(__name__)

CONFIG_ENV = "TILEPAGER_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".tilepager.ini")

DEFAULTS = {
    "general": {
        "debug": "false",
    },
    "paths": {
        "world_root": os.path.join(os.curdir, "save"),
    },
    "mapbuffer": {
        "half_mapsize": "5",
        "disable_mapgen": "false",
        "savegame_version": "33",
        "progress_interval_ms": "500",
    },
}


class SectionParser(object):
    """Attribute view over one INI section."""

    true = ['true', 'yes', 'on']
    false = ['false', 'no', 'off']

    def __init__(self, section):
        for k, v in section.items():
            self.__dict__[k] = self._parse(v)

    def _parse(self, value):
        lowered = value.strip().lower()
        if lowered in self.true:
            return True
        if lowered in self.false:
            return False
        return value

    def __repr__(self):
        return f"{self.__class__.__name__}({self.__dict__})"


class MapConfig(object):

    def __init__(self, conf_file=None):
        self.conf_file = conf_file or os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH)
        self.config = configparser.ConfigParser(strict=False)
        self.load()

    def load(self):
        self.config.read_dict(DEFAULTS)
        if os.path.isfile(self.conf_file):
            log.debug(f"Reading config from {self.conf_file}")
            self.config.read(self.conf_file, encoding="utf-8")
        self._refresh()

    def _refresh(self):
        for name in self.config.sections():
            setattr(self, name, SectionParser(self.config[name]))

    def set(self, section, key, value):
        """Update one value in memory, visible through the section attribute."""
        if not self.config.has_section(section):
            self.config.add_section(section)
        if isinstance(value, bool):
            value = "true" if value else "false"
        self.config.set(section, key, str(value))
        self._refresh()

    def save(self):
        conf_dir = os.path.dirname(os.path.abspath(self.conf_file))
        os.makedirs(conf_dir, exist_ok=True)
        with open(self.conf_file, "w", encoding="utf-8") as f:
            self.config.write(f)
        log.info(f"Wrote config to {self.conf_file}")


CFG = MapConfig()
