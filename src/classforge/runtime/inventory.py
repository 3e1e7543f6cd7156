"""
Distributed Method Inventory.

Used when generation runs with ``methods_type = "inventory"``. Each bound type
gets a collection point class named ``PyMethodsInventoryFor<Ident>``; every
declaration site, in any module, submits its method list under that name when
the module is imported. The type object reads all submissions when it is
first initialized.

Submissions may arrive before the collection point is registered (import
order is not constrained). Items of one submission keep their order; the order
across submissions is unspecified.
"""

import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple


class InventoryError(Exception):
  """Raised when two collection points claim the same name."""


class Inventory:
  """
  A lock guarded registry of collection points and their submissions.
  """

  def __init__(self) -> None:
    self._lock = threading.Lock()
    self._points: Dict[str, Optional[str]] = {}
    self._submissions: Dict[str, List[Tuple[Any, ...]]] = {}

  def collect(self, point: type) -> type:
    """
    Registers a collection point class.

    Args:
        point: A `PyMethodsInventory` subclass.

    Returns:
        type: `point`, so the call can be used as a decorator.

    Raises:
        InventoryError: If a collection point of that name already exists.
    """
    name = point.NAME
    owner = getattr(point, "__module__", None)
    with self._lock:
      if name in self._points:
        raise InventoryError(
          f"collection point '{name}' is already registered by module '{self._points[name]}'; "
          f"cannot register it again from '{owner}'"
        )
      self._points[name] = owner
    return point

  def submit(self, name: str, items: Iterable[Any]) -> None:
    batch = tuple(items)
    with self._lock:
      self._submissions.setdefault(name, []).append(batch)

  def items(self, name: str) -> Iterator[Any]:
    with self._lock:
      batches = list(self._submissions.get(name, ()))
    for batch in batches:
      yield from batch

  def is_collected(self, name: str) -> bool:
    with self._lock:
      return name in self._points

  def clear(self) -> None:
    with self._lock:
      self._points.clear()
      self._submissions.clear()


_INVENTORY = Inventory()


def get_inventory() -> Inventory:
  return _INVENTORY


def collect(point: type) -> type:
  return _INVENTORY.collect(point)


def submit(name: str, items: Iterable[Any]) -> None:
  """
  Deposits one site's items under the collection point `name`.

  Args:
      name: Collection point name, e.g. ``PyMethodsInventoryForCounter``.
      items: The site's `MethodDef` records, in source order.
  """
  _INVENTORY.submit(name, items)


def items(name: str) -> Iterator[Any]:
  return _INVENTORY.items(name)


class PyMethodsInventory:
  """
  Base of the generated collection point classes.

  Attributes:
      NAME (str): The name submissions are filed under.
  """

  NAME: str = ""

  @classmethod
  def items(cls) -> Iterator[Any]:
    return _INVENTORY.items(cls.NAME)
