"""
Offline write queue.

When the document store rejects an admin write, the write is kept here
and replayed later, in order. Only ``$set`` / ``$push`` updates against an
existing document are queued; nothing is ever read from the queue as if
it were data.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from fastapi import Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings, get_settings
from database import object_id
from helpers import isoformat, utcnow

logger = logging.getLogger(__name__)


class OfflineQueue:
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or None
        self._lock = threading.Lock()
        self._pending: List[Dict[str, Any]] = self._load()

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path or not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self) -> None:
        if not self.path:
            return
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._pending, f)
        os.replace(tmp, self.path)

    def __len__(self) -> int:
        return len(self._pending)

    def pending(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(w) for w in self._pending]

    def enqueue(self, collection: str, document_id: str, set_fields: Dict[str, Any],
                push_fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        write = {
            "collection": collection,
            "documentId": document_id,
            "set": set_fields,
            "push": push_fields or {},
            "queuedAt": isoformat(utcnow()),
        }
        with self._lock:
            self._pending.append(write)
            self._save()
        logger.warning("Queued offline write for %s/%s", collection, document_id)
        return write

    def replay(self, database: Database) -> Dict[str, int]:
        """Apply queued writes in order, stopping at the first store failure."""
        applied = 0
        with self._lock:
            while self._pending:
                write = self._pending[0]
                update: Dict[str, Any] = {"$set": write["set"]}
                if write["push"]:
                    update["$push"] = write["push"]
                try:
                    database[write["collection"]].update_one({"_id": object_id(write["documentId"])}, update)
                except PyMongoError as e:
                    logger.error("Offline replay stopped at %s/%s: %s",
                                 write["collection"], write["documentId"], e)
                    break
                self._pending.pop(0)
                applied += 1
            self._save()
            remaining = len(self._pending)
        logger.info("Offline replay applied %d writes, %d remaining", applied, remaining)
        return {"applied": applied, "remaining": remaining}


_queue: Optional[OfflineQueue] = None


def get_offline_queue(settings: Settings = Depends(get_settings)) -> OfflineQueue:
    global _queue
    if _queue is None:
        _queue = OfflineQueue(settings.offline_queue_path or None)
    return _queue
