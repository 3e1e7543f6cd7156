"""
Layout Slots.

A bound type carries two optional layout extension points: storage for
arbitrary instance attributes (``dict``) and support for weak references
(``weakref``). Each is one of these classes; a declaration without the flag
gets the zero-size `PyClassDummySlot`.
"""

from typing import Any, Dict, Optional


class PyClassDummySlot:
  """Placeholder with no storage. Attribute and weak reference access is refused."""

  ENABLED = False

  __slots__ = ()

  def get(self) -> Optional[Dict[str, Any]]:
    return None


class PyClassDictSlot:
  """Per-instance attribute dictionary."""

  ENABLED = True

  __slots__ = ("_dict",)

  def __init__(self) -> None:
    self._dict: Dict[str, Any] = {}

  def get(self) -> Dict[str, Any]:
    return self._dict


class PyClassWeakRefSlot:
  """Marks the instance as weakly referenceable."""

  ENABLED = True

  __slots__ = ()

  def get(self) -> None:
    return None
