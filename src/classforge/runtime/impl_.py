"""
Generated Impl Base and Type Registry.

Every binding emitted by the generator is a subclass of `PyClassImpl`,
overriding the identity constants, the slot and checker selections, the
allocator and the aggregation closures. `register` records the impl of a
class so that subclasses and `into_object` can find it.
"""

import functools
import operator
import threading
from typing import Any, Callable, Dict, Optional, Protocol, Type, runtime_checkable

from classforge.runtime.alloc import DefaultAlloc
from classforge.runtime.lazy import LazyStaticType
from classforge.runtime.object import PyObject
from classforge.runtime.slots import PyClassDummySlot
from classforge.runtime.thread_checker import ThreadCheckerStub
from classforge.runtime.type_object import STATIC_METHOD, BufferProcs, MethodDef, ProtoSlot, TypeObject, unwrap


class PyAny:
  """The universal root object type."""


@runtime_checkable
class GCProtocol(Protocol):
  """
  Capability required by ``@pyclass(gc)``.

  ``__traverse__`` reports each held reference to `visit`; ``__clear__``
  drops them.
  """

  def __traverse__(self, visit: Callable[[Any], Any]) -> Any: ...

  def __clear__(self) -> None: ...


class PyClassImpl:
  """
  Static description of a bound type.

  Generated subclasses set the attributes below and override the aggregation
  closures as staticmethods.
  """

  CLASS: type = PyAny
  NAME: str = "PyAny"
  MODULE: Optional[str] = None
  DOC: str = ""
  BASE: type = PyAny

  IS_GC = False
  IS_BASETYPE = False
  IS_SUBCLASS = False

  Dict: Type = PyClassDummySlot
  WeakRef: Type = PyClassDummySlot
  ThreadChecker: Type = ThreadCheckerStub
  ALLOC: Any = DefaultAlloc()
  INVENTORY: Optional[str] = None

  TYPE_OBJECT: LazyStaticType = LazyStaticType()

  @classmethod
  def type_object(cls) -> TypeObject:
    return cls.TYPE_OBJECT.get_or_init(lambda: TypeObject.build(cls))

  @classmethod
  def base_impl(cls) -> Optional[Type["PyClassImpl"]]:
    if not cls.IS_SUBCLASS:
      return None
    return impl_of(cls.BASE)

  @classmethod
  def into_object(cls, value: Any) -> PyObject:
    """
    Wraps a value whose exact type is `CLASS`.

    `into_object` dispatches on the class hierarchy, so a value of a subclass
    reaches the nearest registered base. Subclasses have no conversion of
    their own and are refused here rather than wrapped with the base's layout.

    Raises:
        TypeError: If `value` is an instance of a subclass of `CLASS`.
    """
    if type(value) is not cls.CLASS:
      raise TypeError(
        f"'{type(value).__name__}' extends '{cls.NAME}' and cannot be converted to an object; "
        f"construct it with new_object instead"
      )
    return PyObject.new(cls, value)

  @staticmethod
  def for_each_method_def(visitor: Callable[[MethodDef], None]) -> None:
    pass

  @staticmethod
  def for_each_proto_slot(visitor: Callable[[ProtoSlot], None]) -> None:
    pass

  @staticmethod
  def get_new() -> Optional[Callable[..., Any]]:
    return None

  @staticmethod
  def get_call() -> Optional[Callable[..., Any]]:
    return None

  @staticmethod
  def get_buffer() -> Optional[BufferProcs]:
    return None


class PyAnyImpl(PyClassImpl):
  IS_BASETYPE = True
  TYPE_OBJECT = LazyStaticType()


_lock = threading.Lock()
_IMPLS: Dict[type, Type[PyClassImpl]] = {PyAny: PyAnyImpl}


def register(cls: type, impl: Type[PyClassImpl]) -> Type[PyClassImpl]:
  with _lock:
    _IMPLS[cls] = impl
  return impl


def impl_of(cls: type) -> Type[PyClassImpl]:
  """
  Returns the generated impl registered for `cls`.

  Raises:
      TypeError: If `cls` has no binding.
  """
  with _lock:
    impl = _IMPLS.get(cls)
  if impl is None:
    raise TypeError(f"'{getattr(cls, '__name__', cls)}' is not a bound type")
  return impl


def new_object(cls: type, *args: Any, **kwargs: Any) -> PyObject:
  """
  Constructs a value through the type's constructor hook and wraps it.

  Raises:
      TypeError: If the type declares no constructor.
  """
  impl = impl_of(cls)
  type_object = impl.type_object()
  if type_object.new is None:
    raise TypeError(f"No constructor defined for {type_object.name}")
  return PyObject.new(impl, type_object.new(*args, **kwargs))


def constructor(cls: type, fn: Any) -> Callable[..., Any]:
  """
  Adapts a constructor defined outside the class body.

  Args:
      cls: The bound class.
      fn: ``__new__`` or ``__init__`` as found in the defining block's namespace.
  """
  fn = unwrap(STATIC_METHOD, fn)
  if fn.__name__ == "__new__":
    return functools.partial(fn, cls)

  def construct(*args: Any, **kwargs: Any) -> Any:
    obj = cls.__new__(cls)
    fn(obj, *args, **kwargs)
    return obj

  return construct


def member_getter(name: str) -> Callable[[Any], Any]:
  return operator.attrgetter(name)


def member_setter(name: str) -> Callable[[Any, Any], None]:
  def setter(obj: Any, value: Any) -> None:
    setattr(obj, name, value)

  setter.__name__ = f"set_{name}"
  return setter
