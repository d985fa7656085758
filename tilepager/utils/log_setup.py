import logging
import os
import sys

from tilepager.mapconfig import CFG


def setup_logging(log_dir=None, debug=None):
    """
    Configure the root logger for tilepager.

    Logs go to stdout and, when ``log_dir`` is given, to ``tilepager.log``
    inside it. ``debug`` defaults to ``CFG.general.debug``.
    """
    if debug is None:
        debug = getattr(CFG.general, 'debug', False) is True
    level = logging.DEBUG if debug else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(
            os.path.join(log_dir, "tilepager.log"), mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s:%(lineno)d | %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,
    )
    return level
