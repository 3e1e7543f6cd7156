"""
Managed Object Handles.

A `PyObject` wraps one owned value of a bound type. Every access goes through
the type's thread checker; attribute access goes through the property tables
and the dict slot; the usual Python protocols are served from the type's
protocol slots.
"""

import functools
import weakref
from typing import Any, Callable, Dict, Optional

from classforge.runtime.type_object import CLASS_METHOD, STATIC_METHOD, TypeObject

_EQ_SLOT = "tp_richcompare"


class PyObject:
  """
  Handle to a managed value.

  Instances are produced by `PyObject.new` (or `into_object`), never by calling
  the class directly, so that allocation goes through the type's allocator.
  """

  __slots__ = ("_type", "_impl", "_value", "_dict", "_weakref", "_checker", "_released", "__weakref__")

  @classmethod
  def new(cls, impl: Any, value: Any) -> "PyObject":
    """
    Wraps `value` as an instance of the bound type described by `impl`.

    Args:
        impl: The generated `PyClassImpl`.
        value: The owned value.

    Returns:
        PyObject: A fresh handle.
    """
    type_object = impl.type_object()
    obj = impl.ALLOC.alloc(cls)
    obj._type = type_object
    obj._impl = impl
    obj._value = value
    obj._dict = impl.Dict()
    obj._weakref = impl.WeakRef()
    obj._checker = impl.ThreadChecker(type_object.name)
    obj._released = False
    return obj

  @property
  def type_object(self) -> TypeObject:
    return self._type

  @property
  def released(self) -> bool:
    return self._released

  def _ensure_live(self) -> None:
    if self._released:
      raise RuntimeError(f"'{self._type.name}' object has already been released")
    self._checker.ensure()

  @property
  def value(self) -> Any:
    self._ensure_live()
    return self._value

  def getattr(self, name: str) -> Any:
    """
    Reads an exposed property or an attribute stored in the dict slot.

    Raises:
        AttributeError: If the name is neither.
    """
    value = self.value
    getter = self._type.find_getter(name)
    if getter is not None:
      return getter(value)
    storage = self._dict.get()
    if storage is not None and name in storage:
      return storage[name]
    raise AttributeError(f"'{self._type.name}' object has no attribute '{name}'")

  def setattr(self, name: str, new_value: Any) -> None:
    """
    Writes an exposed property, or stores into the dict slot.

    Raises:
        AttributeError: If the property is read-only or the type has no dict slot.
    """
    value = self.value
    setter = self._type.find_setter(name)
    if setter is not None:
      setter(value, new_value)
      return
    if self._type.find_getter(name) is not None:
      raise AttributeError(f"attribute '{name}' of '{self._type.name}' objects is not writable")
    storage = self._dict.get()
    if storage is None:
      raise AttributeError(f"'{self._type.name}' object has no attribute '{name}'")
    storage[name] = new_value

  @property
  def attributes(self) -> Dict[str, Any]:
    """The dict slot contents.

    Raises:
        AttributeError: If the type has no dict slot.
    """
    self._ensure_live()
    storage = self._dict.get()
    if storage is None:
      raise AttributeError(f"'{self._type.name}' object has no attribute '__dict__'")
    return storage

  def call_method(self, name: str, *args: Any, **kwargs: Any) -> Any:
    value = self.value
    method = self._type.find_method(name)
    if method is None:
      raise AttributeError(f"'{self._type.name}' object has no attribute '{name}'")
    if method.fn_type == STATIC_METHOD:
      return method.fn(*args, **kwargs)
    if method.fn_type == CLASS_METHOD:
      return method.fn(type(value), *args, **kwargs)
    return method.fn(value, *args, **kwargs)

  def invoke(self, slot: str, dunder: str, *args: Any) -> Any:
    """
    Calls a protocol slot.

    Raises:
        TypeError: If the type does not fill the slot.
    """
    fn = self._type.find_slot(slot, dunder)
    if fn is None:
      raise TypeError(f"'{self._type.name}' object does not support {dunder}")
    return fn(self.value, *args)

  def _slot(self, slot: str, dunder: str) -> Optional[Callable[..., Any]]:
    return self._type.find_slot(slot, dunder)

  def downgrade(self) -> "weakref.ref[PyObject]":
    """
    Raises:
        TypeError: Without a weakref slot.
    """
    self._ensure_live()
    if not self._weakref.ENABLED:
      raise TypeError(f"cannot create weak reference to '{self._type.name}' object")
    return weakref.ref(self)

  def traverse(self, visit: Callable[[Any], Any]) -> Any:
    """Runs the value's ``__traverse__``; a no-op for types without `gc`."""
    fn = self._slot("tp_traverse", "__traverse__")
    if fn is None or not self._type.is_gc:
      return None
    return fn(self.value, visit)

  def clear(self) -> None:
    fn = self._slot("tp_clear", "__clear__")
    if fn is not None and self._type.is_gc:
      fn(self.value)

  def buffer(self, flags: int = 0) -> Any:
    procs = self._type.buffer
    if procs is None:
      raise TypeError(f"a bytes-like object is required, not '{self._type.name}'")
    return procs.get(self.value, flags)

  def release_buffer(self, view: Any) -> None:
    procs = self._type.buffer
    if procs is not None and procs.release is not None:
      procs.release(self.value, view)

  def release(self) -> None:
    """
    Drops the value and returns the shell to the allocator.

    Releasing twice is a no-op, and every later access raises `RuntimeError`.
    A shell that weak references still point at is never pooled, so those
    references keep seeing the released object instead of a reused one.
    """
    if self._released or not self._checker.can_drop():
      return
    self._released = True
    self._value = None
    self._dict = None
    if weakref.getweakrefcount(self):
      return
    self._impl.ALLOC.dealloc(self)

  def __call__(self, *args: Any, **kwargs: Any) -> Any:
    call = self._type.call
    if call is None:
      raise TypeError(f"'{self._type.name}' object is not callable")
    return call(self.value, *args, **kwargs)

  def __repr__(self) -> str:
    fn = self._slot("tp_repr", "__repr__")
    if fn is not None:
      return fn(self.value)
    return f"<{self._type.qualname} object at {hex(id(self))}>"

  def __str__(self) -> str:
    fn = self._slot("tp_str", "__str__")
    if fn is not None:
      return fn(self.value)
    return repr(self)

  def __hash__(self) -> int:
    fn = self._slot("tp_hash", "__hash__")
    if fn is not None:
      return fn(self.value)
    return object.__hash__(self)

  def __eq__(self, other: Any) -> Any:
    fn = self._slot(_EQ_SLOT, "__eq__")
    if fn is None:
      return self is other
    other_value = other.value if isinstance(other, PyObject) else other
    return fn(self.value, other_value)

  def __bool__(self) -> bool:
    fn = self._slot("nb_bool", "__bool__")
    if fn is not None:
      return bool(fn(self.value))
    if self._slot("mp_length", "__len__") is not None:
      return len(self) > 0
    return True

  def __len__(self) -> int:
    return self.invoke("mp_length", "__len__")

  def __getitem__(self, key: Any) -> Any:
    return self.invoke("mp_subscript", "__getitem__", key)

  def __setitem__(self, key: Any, item: Any) -> None:
    self.invoke("mp_ass_subscript", "__setitem__", key, item)

  def __delitem__(self, key: Any) -> None:
    self.invoke("mp_ass_subscript", "__delitem__", key)

  def __contains__(self, item: Any) -> bool:
    return bool(self.invoke("sq_contains", "__contains__", item))

  def __iter__(self) -> Any:
    return iter(self.invoke("tp_iter", "__iter__"))


@functools.singledispatch
def into_object(value: Any) -> PyObject:
  """
  Wraps an owned value of a bound type in a fresh managed `PyObject`.

  Each generated binding registers its class here unless it extends a declared base.

  Raises:
      TypeError: If the value's type has no binding, or extends a bound type.
  """
  raise TypeError(f"'{type(value).__name__}' is not a bound type and cannot be converted to an object")
