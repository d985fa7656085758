""" module to hold filesystem primitives used by the chunk store """

import json
import logging
import os

log = logging.getLogger(__name__)


def file_exist(path: str) -> bool:
    return os.path.isfile(path)


def assure_dir_exist(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def write_to_file(path: str, writer) -> None:
    """Write a file atomically through ``writer(fileobj)``.

    The data goes to a temp file first and is moved into place with
    ``os.replace``. Failures are re-raised after the temp file is removed.
    """
    tmp = path + f".tmp.{os.getpid()}"
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            writer(f)
        os.replace(tmp, path)
    except Exception:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise


def read_from_file_optional_json(path: str, reader) -> bool:
    """Parse ``path`` as JSON and hand the document to ``reader``.

    Returns False when the file does not exist. Decode and I/O errors
    propagate to the caller.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return False
    reader(data)
    return True
