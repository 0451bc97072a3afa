from fastapi import APIRouter, Depends
from typing import Any, Dict
import json
import logging
import os
import threading
import time
from datetime import datetime

from app.config import Settings, get_settings
from app.errors import NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["catalog"],
    responses={
        404: {"description": "Catalog document not found"},
        500: {"description": "Catalog document unreadable"}
    }
)

CATALOG_TOPICS = ("tours", "destinations", "gallery", "team", "hotel", "transport", "visa")


class CatalogCache:
    """Parsed catalog documents keyed by file path, reloaded when the file's mtime changes."""

    def __init__(self):
        self.documents: Dict[str, Any] = {}
        self.modified_times: Dict[str, float] = {}
        self.last_refresh_time = 0
        self.access_count = 0
        self.hit_count = 0
        self.miss_count = 0
        self._lock = threading.Lock()

    def get(self, path: str):
        modified_time = os.path.getmtime(path)
        with self._lock:
            self.access_count += 1
            if self.modified_times.get(path) == modified_time:
                self.hit_count += 1
                return self.documents[path]
            self.miss_count += 1

        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)

        with self._lock:
            self.documents[path] = document
            self.modified_times[path] = modified_time
            self.last_refresh_time = time.time()
        return document

    def clear(self):
        with self._lock:
            self.documents.clear()
            self.modified_times.clear()
            self.last_refresh_time = 0


_cache = CatalogCache()


def get_cache_stats():
    with _cache._lock:
        access_count = _cache.access_count
        hit_count = _cache.hit_count
        miss_count = _cache.miss_count
        documents = len(_cache.documents)
        last_refresh_time = _cache.last_refresh_time

    hit_rate = (hit_count / access_count) * 100 if access_count else 0
    return {
        "access_count": access_count,
        "hit_count": hit_count,
        "miss_count": miss_count,
        "hit_rate_percentage": hit_rate,
        "documents": documents,
        "last_refresh": datetime.fromtimestamp(last_refresh_time).isoformat() if last_refresh_time > 0 else None
    }


def read_catalog(topic: str, catalog_dir: str):
    if topic not in CATALOG_TOPICS:
        raise NotFound(f"Catalog '{topic}' not found", available=list(CATALOG_TOPICS))

    path = os.path.join(catalog_dir, f"{topic}.json")
    try:
        return _cache.get(path)
    except FileNotFoundError:
        raise NotFound(f"Catalog '{topic}' not found", available=list(CATALOG_TOPICS))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read catalog %s: %s", path, e)
        raise StoreUnavailable(f"Failed to read catalog '{topic}'", diagnostic=str(e))


@router.get("/catalog/cache-stats", response_model=Dict[str, Any])
def get_catalog_cache_stats():
    return get_cache_stats()


@router.get("/{topic}")
def get_catalog(topic: str, settings: Settings = Depends(get_settings)):
    return read_catalog(topic, settings.CATALOG_DIR)
