import logging
import os
import tempfile
from pathlib import Path

from errors import CacheNotFoundError, CacheReadError, CacheWriteError
from services.base import ScheduleStore


CACHE_FILE_SUFFIX = "_cache.json"


class FileScheduleStore(ScheduleStore):
    def __init__(self, cache_dir, logger=None):
        self.cache_dir = Path(cache_dir)
        self.logger = logger or logging.getLogger("tpir")

    def path_for(self, area_code):
        return self.cache_dir / f"{area_code}{CACHE_FILE_SUFFIX}"

    def read(self, area_code):
        path = self.path_for(area_code)
        self.logger.debug("Looking for price list cache file at %s", path)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            self.logger.debug("Price list cache file not found at %s", path)
            raise CacheNotFoundError(f"price list cache file not found at {path}") from None
        except OSError as exc:
            raise CacheReadError(f"error while loading cache file {path}: {exc}") from exc

    def write(self, area_code, raw):
        path = self.path_for(area_code)
        self.logger.debug("Saving new price list cache file to %s", path)
        tmp_name = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{area_code}-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(raw)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheWriteError(f"error while saving cache file {path}: {exc}") from exc

    def status(self):
        status = {
            "dir": str(self.cache_dir),
            "count": 0,
            "latest": None,
            "size_bytes": 0,
        }
        if not self.cache_dir.exists():
            return status
        files = sorted(self.cache_dir.glob(f"*{CACHE_FILE_SUFFIX}"))
        latest_mtime = None
        for path in files:
            try:
                stat = path.stat()
            except OSError:
                continue
            status["count"] += 1
            status["size_bytes"] += stat.st_size
            if latest_mtime is None or stat.st_mtime > latest_mtime:
                latest_mtime = stat.st_mtime
                status["latest"] = path.name[: -len(CACHE_FILE_SUFFIX)]
        return status
