"""
Tests for the distributed method inventory.
"""

import pytest

from classforge.runtime import inventory
from classforge.runtime.inventory import Inventory, InventoryError, PyMethodsInventory


def _point(name: str, module: str = "mod_a") -> type:
  return type(name, (PyMethodsInventory,), {"NAME": name, "__module__": module})


def test_submissions_keep_their_items_in_order():
  inv = Inventory()
  inv.collect(_point("PyMethodsInventoryForFoo"))
  inv.submit("PyMethodsInventoryForFoo", ["a", "b"])
  inv.submit("PyMethodsInventoryForFoo", ["c"])
  items = list(inv.items("PyMethodsInventoryForFoo"))
  assert sorted(items) == ["a", "b", "c"]
  assert items.index("a") < items.index("b")


def test_submission_before_collection():
  inv = Inventory()
  inv.submit("PyMethodsInventoryForFoo", ["early"])
  inv.collect(_point("PyMethodsInventoryForFoo"))
  assert list(inv.items("PyMethodsInventoryForFoo")) == ["early"]


def test_unknown_name_yields_nothing():
  assert list(Inventory().items("PyMethodsInventoryForNobody")) == []


def test_collect_returns_point():
  inv = Inventory()
  point = _point("PyMethodsInventoryForFoo")
  assert inv.collect(point) is point
  assert inv.is_collected("PyMethodsInventoryForFoo")
  assert not inv.is_collected("PyMethodsInventoryForBar")


def test_duplicate_collection_point():
  inv = Inventory()
  inv.collect(_point("PyMethodsInventoryForFoo", "mod_a"))
  with pytest.raises(InventoryError) as exc:
    inv.collect(_point("PyMethodsInventoryForFoo", "mod_b"))
  assert "'mod_a'" in str(exc.value)
  assert "'mod_b'" in str(exc.value)


def test_clear():
  inv = Inventory()
  inv.collect(_point("PyMethodsInventoryForFoo"))
  inv.submit("PyMethodsInventoryForFoo", ["a"])
  inv.clear()
  assert not inv.is_collected("PyMethodsInventoryForFoo")
  assert list(inv.items("PyMethodsInventoryForFoo")) == []


def test_module_level_registry_and_point_items():
  point = inventory.collect(_point("PyMethodsInventoryForGlobal"))
  inventory.submit("PyMethodsInventoryForGlobal", ["x"])
  assert list(point.items()) == ["x"]
  assert list(inventory.items("PyMethodsInventoryForGlobal")) == ["x"]
