"""
classforge.runtime: the object runtime generated bindings are built against.

Generated modules import this package as ``_classforge`` and refer to its
names only through that alias.
"""

from classforge.runtime import inventory
from classforge.runtime.alloc import DefaultAlloc, FreeList, FreeListAlloc
from classforge.runtime.impl_ import (
  GCProtocol,
  PyAny,
  PyClassImpl,
  constructor,
  impl_of,
  member_getter,
  member_setter,
  new_object,
  register,
)
from classforge.runtime.inventory import InventoryError, PyMethodsInventory
from classforge.runtime.lazy import LazyStaticType
from classforge.runtime.object import PyObject, into_object
from classforge.runtime.slots import PyClassDictSlot, PyClassDummySlot, PyClassWeakRefSlot
from classforge.runtime.thread_checker import ThreadCheckerImpl, ThreadCheckerInherited, ThreadCheckerStub
from classforge.runtime.type_object import BufferProcs, MethodDef, ProtoSlot, TypeObject

__all__ = [
  "BufferProcs",
  "DefaultAlloc",
  "FreeList",
  "FreeListAlloc",
  "GCProtocol",
  "InventoryError",
  "LazyStaticType",
  "MethodDef",
  "ProtoSlot",
  "PyAny",
  "PyClassDictSlot",
  "PyClassDummySlot",
  "PyClassImpl",
  "PyClassWeakRefSlot",
  "PyMethodsInventory",
  "PyObject",
  "ThreadCheckerImpl",
  "ThreadCheckerInherited",
  "ThreadCheckerStub",
  "TypeObject",
  "constructor",
  "impl_of",
  "into_object",
  "inventory",
  "member_getter",
  "member_setter",
  "new_object",
  "register",
]
