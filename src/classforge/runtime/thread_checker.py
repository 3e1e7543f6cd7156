"""
Thread Affinity Checkers.

Every managed object owns a checker, created when the object is wrapped:

- `ThreadCheckerStub`: no restriction.
- `ThreadCheckerImpl`: only the creating thread may touch the value
  (``unsendable`` declarations).
- `ThreadCheckerInherited`: delegates to the checker of the declared base.
"""

import threading
from typing import Type

from classforge.utils.console import log_error


class ThreadCheckerStub:
  def __init__(self, type_name: str) -> None:
    self.type_name = type_name

  def ensure(self) -> None:
    pass

  def can_drop(self) -> bool:
    return True


class ThreadCheckerImpl:
  """
  Pins the value to the thread that created it.

  Attributes:
      type_name (str): Exposed name of the type, used in messages.
      owner (int): Identifier of the creating thread.
  """

  def __init__(self, type_name: str) -> None:
    self.type_name = type_name
    self.owner = threading.get_ident()

  def ensure(self) -> None:
    """
    Raises:
        RuntimeError: If called from a thread other than the owner.
    """
    if threading.get_ident() != self.owner:
      raise RuntimeError(f"{self.type_name} is unsendable, but sent to another thread!")

  def can_drop(self) -> bool:
    """Releasing on another thread leaks the value and reports it."""
    if threading.get_ident() != self.owner:
      log_error(f"{self.type_name} is unsendable, but is being dropped on another thread!")
      return False
    return True


class ThreadCheckerInherited:
  """Checker of a subclass: the base type's checker decides."""

  BASE: Type = ThreadCheckerStub

  def __init__(self, type_name: str) -> None:
    self.inner = self.BASE(type_name)

  def ensure(self) -> None:
    self.inner.ensure()

  def can_drop(self) -> bool:
    return self.inner.can_drop()

  @classmethod
  def over(cls, base_checker: Type) -> Type["ThreadCheckerInherited"]:
    """
    Returns a checker class delegating to `base_checker`.

    Args:
        base_checker: The `ThreadChecker` of the base type's impl.
    """
    return type(f"ThreadCheckerInherited[{base_checker.__name__}]", (cls,), {"BASE": base_checker})
