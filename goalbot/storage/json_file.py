"""
JSON array-of-objects file used by the file-backed stores.

The whole collection is read once at construction and rewritten on every
mutation. Writes go to a temp file in the same directory and are moved into
place with os.replace, so a crash mid-write leaves the previous file intact.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

from goalbot.errors import StoreIOError

logger = logging.getLogger(__name__)


class JSONFileCollection:
    """Load/rewrite helper for one JSON file holding a list of records."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> List[Dict[str, Any]]:
        """Return the stored records, or [] if the file does not exist.

        Raises StoreIOError when the file exists but is unreadable or does not
        hold a JSON array.
        """
        if not self.path.exists():
            logger.info("No existing %s found, starting empty", self.path)
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreIOError(f"Could not read {self.path}: {e}", path=str(self.path)) from e

        if not isinstance(data, list):
            raise StoreIOError(
                f"{self.path} does not contain a JSON array (got {type(data).__name__})",
                path=str(self.path),
            )
        logger.info("Loaded %d records from %s", len(data), self.path)
        return data

    def write(self, records: List[Dict[str, Any]]) -> None:
        """Atomically replace the file contents with ``records``."""
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise StoreIOError(f"Could not write {self.path}: {e}", path=str(self.path)) from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
        logger.debug("Wrote %d records to %s", len(records), self.path)
