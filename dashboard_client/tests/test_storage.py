from __future__ import annotations

from dashboard_client.storage import LocalStorage


def test_in_memory_storage():
    storage = LocalStorage()

    assert storage.get_item("missing") is None
    storage.set_item("theme", "dark")
    assert storage.get_item("theme") == "dark"
    storage.remove_item("theme")
    assert storage.get_item("theme") is None


def test_file_storage_survives_restart(tmp_path):
    path = tmp_path / "state" / "storage.json"

    LocalStorage(path).set_item("weatherFavorites", "[]")

    assert path.exists()
    assert LocalStorage(path).get_item("weatherFavorites") == "[]"


def test_remove_missing_key_is_noop(tmp_path):
    path = tmp_path / "storage.json"
    storage = LocalStorage(path)

    storage.remove_item("nothing")

    assert not path.exists()
