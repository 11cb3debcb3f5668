"""Tests for the per-user key-value store and favorites."""
from signlearn.constants import KEY_FAVORITES, KEY_USER_NAME
from signlearn.services.local_store import LocalStore


class TestLocalStore:
    """Tests for get/set/remove/clear."""

    def test_missing_key(self, test_db):
        assert LocalStore(test_db, "u1").get("nothing") is None

    def test_set_and_overwrite(self, test_db):
        local = LocalStore(test_db, "u1")
        local.set(KEY_USER_NAME, "Asha")
        local.set(KEY_USER_NAME, "Asha K")
        assert local.get(KEY_USER_NAME) == "Asha K"

    def test_namespaces_are_separate(self, test_db):
        LocalStore(test_db, "u1").set(KEY_USER_NAME, "Asha")
        assert LocalStore(test_db, "u2").get(KEY_USER_NAME) is None

    def test_remove(self, test_db):
        local = LocalStore(test_db, "u1")
        local.set("a", "1")
        local.remove("a")
        assert local.get("a") is None

    def test_clear_only_own_namespace(self, test_db):
        LocalStore(test_db, "u1").set("a", "1")
        LocalStore(test_db, "u2").set("a", "2")
        LocalStore(test_db, "u1").clear()
        assert LocalStore(test_db, "u1").get("a") is None
        assert LocalStore(test_db, "u2").get("a") == "2"


class TestFavorites:
    """Tests for the favorites list stored as JSON."""

    def test_toggle_round_trip(self, test_db):
        local = LocalStore(test_db, "u1")
        assert local.toggle_favorite("stop") is True
        assert local.is_favorite("stop")
        assert local.toggle_favorite("stop") is False
        assert local.get_favorites() == []

    def test_order_preserved(self, test_db):
        local = LocalStore(test_db, "u1")
        for sign_id in ("stop", "no_horn", "hospital"):
            local.toggle_favorite(sign_id)
        local.toggle_favorite("no_horn")
        assert local.get_favorites() == ["stop", "hospital"]
        assert local.favorites_count() == 2

    def test_corrupt_entry_reads_empty(self, test_db):
        local = LocalStore(test_db, "u1")
        local.set(KEY_FAVORITES, "{not json")
        assert local.get_favorites() == []
        assert local.toggle_favorite("stop") is True
        assert local.get_favorites() == ["stop"]

    def test_non_list_entry_reads_empty(self, test_db):
        local = LocalStore(test_db, "u1")
        local.set(KEY_FAVORITES, '{"stop": true}')
        assert local.favorites_count() == 0
