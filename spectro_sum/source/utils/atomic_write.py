"""Atomic JSON write for summary records."""

import json
import os
import tempfile
from typing import Optional


def atomic_json_write(path: str, data: dict, indent: Optional[int] = 2) -> None:
    """Write JSON through a temp file in the target directory, then rename.

    A reader never sees a half-written summary; if json.dump fails the
    temp file is removed and the previous file (if any) is left untouched.
    """
    dir_name = os.path.dirname(path) or "."
    with tempfile.NamedTemporaryFile(
        mode="w", dir=dir_name, suffix=".tmp", delete=False
    ) as tmp:
        tmp_path = tmp.name
        try:
            json.dump(data, tmp, indent=indent)
        except (TypeError, ValueError):
            tmp.close()
            os.remove(tmp_path)
            raise
    os.replace(tmp_path, path)
