import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import json
from siggil.favorites import FavoritesStore
from siggil.storage import FAVORITES_KEY, MemoryStorage


def test_add_remove_toggle():
    favorites = FavoritesStore(MemoryStorage())

    favorites.add("P1")
    favorites.add("P1")
    favorites.toggle("P2")

    assert favorites.count() == 2
    assert favorites.is_favorite("P2")

    favorites.toggle("P2")
    favorites.remove("P1")

    assert favorites.count() == 0
    assert not favorites.is_favorite("P1")


def test_favorites_persisted():
    storage = MemoryStorage()
    FavoritesStore(storage).add("P7")

    assert json.loads(storage.get_raw(FAVORITES_KEY)) == ["P7"]
    assert FavoritesStore(storage).is_favorite("P7")


def test_malformed_snapshot_removed():
    """Повреждённое значение отбрасывается и удаляется из хранилища"""
    storage = MemoryStorage({FAVORITES_KEY: json.dumps({"oops": 1})})
    favorites = FavoritesStore(storage)

    assert favorites.count() == 0
    assert storage.get_raw(FAVORITES_KEY) is None
