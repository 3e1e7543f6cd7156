"""
Lazily initialized type objects.
"""

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class LazyStaticType(Generic[T]):
  """
  Holds one value built at most once.

  Reads after initialization do not take the lock. Concurrent first readers
  block until the single initializer finishes.
  """

  def __init__(self) -> None:
    self._value: Optional[T] = None
    self._lock = threading.Lock()

  @property
  def initialized(self) -> bool:
    return self._value is not None

  def get_or_init(self, init: Callable[[], T]) -> T:
    value = self._value
    if value is not None:
      return value
    with self._lock:
      if self._value is None:
        self._value = init()
      return self._value
