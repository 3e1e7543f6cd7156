"""
Object Allocators.

Managed object shells are obtained from the type's allocator and handed back
to it on release. `DefaultAlloc` creates a fresh shell every time.
`FreeListAlloc` keeps released shells in one bounded pool shared by every
instance of the type; the pool is created on first use.
"""

import threading
from typing import Any, List, Optional


class FreeList:
  """
  A bounded stack of reusable shells.

  Args:
      capacity: Maximum number of shells retained.
  """

  def __init__(self, capacity: int) -> None:
    if capacity < 0:
      raise ValueError(f"free list capacity must be non-negative, got {capacity}")
    self.capacity = capacity
    self._items: List[Any] = []

  def __len__(self) -> int:
    return len(self._items)

  def pop(self) -> Optional[Any]:
    if self._items:
      return self._items.pop()
    return None

  def insert(self, item: Any) -> Optional[Any]:
    """Stores `item`, or returns it back when the pool is full."""
    if len(self._items) < self.capacity:
      self._items.append(item)
      return None
    return item


class DefaultAlloc:
  def alloc(self, shell_type: type) -> Any:
    return object.__new__(shell_type)

  def dealloc(self, shell: Any) -> None:
    pass


class FreeListAlloc:
  """
  Allocator backed by a single shared, lazily constructed `FreeList`.

  Args:
      capacity: Pool size. Evaluated once, when the generated impl is created.
  """

  def __init__(self, capacity: int) -> None:
    self.capacity = capacity
    self._free_list: Optional[FreeList] = None
    self._lock = threading.Lock()

  def get_free_list(self) -> FreeList:
    free_list = self._free_list
    if free_list is not None:
      return free_list
    with self._lock:
      if self._free_list is None:
        self._free_list = FreeList(self.capacity)
      return self._free_list

  def alloc(self, shell_type: type) -> Any:
    free_list = self.get_free_list()
    with self._lock:
      shell = free_list.pop()
    if shell is None:
      shell = object.__new__(shell_type)
    return shell

  def dealloc(self, shell: Any) -> None:
    free_list = self.get_free_list()
    with self._lock:
      free_list.insert(shell)
