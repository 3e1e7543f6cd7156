"""
Enumerations for classforge.

This module defines the closed vocabularies shared by the generator and the
runtime: method registration strategies, slot sources, allocator and thread
checker selections, and the calling-convention kinds of method records.
"""

from enum import Enum


class MethodsType(str, Enum):
  """
  Strategy used to gather methods contributed to a type.

  Selected once per build through `RuntimeConfig.methods_type`.
  """

  SPECIALIZATION = "specialization"  # one aggregation point per module
  INVENTORY = "inventory"  # distributed registry populated at import time


class SlotSource(str, Enum):
  """Where a layout slot (dict / weakref storage) comes from."""

  OWN = "own"
  INHERITED = "inherited"
  DUMMY = "dummy"


class AllocatorKind(str, Enum):
  DEFAULT = "default"
  FREELIST = "freelist"


class ThreadCheckerKind(str, Enum):
  """
  Thread-safety guard attached to a type.
  """

  UNSENDABLE = "unsendable"  # instances bound to the creating thread
  INHERITED = "inherited"  # delegates to the base type's guard
  STUB = "stub"  # no-op, safe across threads


class FnType(str, Enum):
  """
  Self-binding kind of a method record.
  """

  GETTER = "getter"
  SETTER = "setter"
  FN = "fn"
  CLASS_METHOD = "classmethod"
  STATIC_METHOD = "staticmethod"
  NEW = "new"
  CALL = "call"
