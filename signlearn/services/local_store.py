"""Durable string key-value store, one namespace per user, plus favorites."""
import json
from typing import List, Optional
from sqlalchemy.orm import Session
from signlearn.db.models import LocalStorageEntry
from signlearn.db.store import store_operation
from signlearn.constants import KEY_FAVORITES
from signlearn.logging_config import get_logger

logger = get_logger(__name__)


class LocalStore:
    """get/set/remove/clear over the local_storage table for one namespace."""

    def __init__(self, db: Session, namespace: str):
        self.db = db
        self.namespace = namespace

    def _entry(self, key: str) -> Optional[LocalStorageEntry]:
        return self.db.query(LocalStorageEntry).filter(
            LocalStorageEntry.namespace == self.namespace,
            LocalStorageEntry.key == key
        ).first()

    def get(self, key: str) -> Optional[str]:
        with store_operation(self.db, "local_store.get"):
            entry = self._entry(key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with store_operation(self.db, "local_store.set"):
            entry = self._entry(key)
            if entry is None:
                self.db.add(LocalStorageEntry(namespace=self.namespace, key=key, value=value))
            else:
                entry.value = value
            self.db.commit()

    def remove(self, key: str) -> None:
        with store_operation(self.db, "local_store.remove"):
            self.db.query(LocalStorageEntry).filter(
                LocalStorageEntry.namespace == self.namespace,
                LocalStorageEntry.key == key
            ).delete()
            self.db.commit()

    def clear(self) -> None:
        with store_operation(self.db, "local_store.clear"):
            self.db.query(LocalStorageEntry).filter(
                LocalStorageEntry.namespace == self.namespace
            ).delete()
            self.db.commit()

    # --- Favorites ------------------------------------------------------------

    def get_favorites(self) -> List[str]:
        """
        Favorite sign ids, in the order they were added.

        A missing or corrupt entry reads as an empty list.
        """
        raw = self.get(KEY_FAVORITES)
        if not raw:
            return []
        try:
            favorites = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable favorites entry", extra={"user_id": self.namespace})
            return []
        if not isinstance(favorites, list):
            return []
        return [str(sign_id) for sign_id in favorites]

    def is_favorite(self, sign_id: str) -> bool:
        return sign_id in self.get_favorites()

    def toggle_favorite(self, sign_id: str) -> bool:
        """Add or remove a sign from favorites. Returns the new favorite state."""
        favorites = self.get_favorites()
        if sign_id in favorites:
            favorites = [fav for fav in favorites if fav != sign_id]
            now_favorite = False
        else:
            favorites.append(sign_id)
            now_favorite = True
        self.set(KEY_FAVORITES, json.dumps(favorites))
        return now_favorite

    def favorites_count(self) -> int:
        return len(self.get_favorites())
