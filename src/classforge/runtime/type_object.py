"""
Runtime Type Objects.

A `TypeObject` is what the runtime knows about a bound type once its lazy
initializer has run: identity, base linkage, the method and property tables
gathered by ``for_each_method_def`` and the protocol slots gathered by
``for_each_proto_slot``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Optional

GETTER = "getter"
SETTER = "setter"
CLASS_METHOD = "classmethod"
STATIC_METHOD = "staticmethod"


class MethodDef(NamedTuple):
  """
  One entry of a method table.

  Attributes:
      name: Exposed name.
      fn: The function, or the `staticmethod`/`classmethod`/`property` object found in the class namespace.
      fn_type: One of "fn", "getter", "setter", "classmethod", "staticmethod".
      doc: Documentation.
  """

  name: str
  fn: Any
  fn_type: str
  doc: str = ""


class ProtoSlot(NamedTuple):
  slot: str
  dunder: str
  fn: Callable[..., Any]


class BufferProcs(NamedTuple):
  get: Callable[..., Any]
  release: Optional[Callable[..., Any]] = None


def unwrap(fn_type: str, fn: Any) -> Callable[..., Any]:
  """Returns the plain function behind a class namespace entry."""
  if isinstance(fn, (staticmethod, classmethod)):
    return fn.__func__
  if isinstance(fn, property):
    return fn.fset if fn_type == SETTER else fn.fget
  return fn


@dataclass
class TypeObject:
  """
  The initialized runtime view of a bound type.

  Attributes:
      name: Exposed name.
      module: Exposed module, or None.
      doc: Documentation, including any text signature header.
      cls: The Python class holding the value layout.
      impl: The generated impl class.
      base: Type object of the declared base, None for root types.
  """

  name: str
  module: Optional[str]
  doc: str
  cls: type
  impl: Any
  base: Optional["TypeObject"] = None
  is_gc: bool = False
  is_basetype: bool = False
  methods: Dict[str, MethodDef] = field(default_factory=dict)
  getters: Dict[str, Callable[..., Any]] = field(default_factory=dict)
  setters: Dict[str, Callable[..., Any]] = field(default_factory=dict)
  slots: Dict[str, Dict[str, Callable[..., Any]]] = field(default_factory=dict)
  new: Optional[Callable[..., Any]] = None
  call: Optional[Callable[..., Any]] = None
  buffer: Optional[BufferProcs] = None

  @property
  def qualname(self) -> str:
    return f"{self.module}.{self.name}" if self.module else self.name

  @classmethod
  def build(cls, impl: Any) -> "TypeObject":
    """
    Runs the aggregation closures of `impl` and records the results.

    Raises:
        TypeError: If the declared base does not accept subclasses.
    """
    base_impl = impl.base_impl()
    base = base_impl.type_object() if base_impl is not None else None
    if base is not None and not base.is_basetype:
      raise TypeError(f"type '{base.qualname}' is not an acceptable base type")

    type_object = cls(
      name=impl.NAME,
      module=impl.MODULE,
      doc=impl.DOC,
      cls=impl.CLASS,
      impl=impl,
      base=base,
      is_gc=impl.IS_GC,
      is_basetype=impl.IS_BASETYPE,
      new=impl.get_new(),
      call=impl.get_call(),
      buffer=impl.get_buffer(),
    )
    impl.for_each_method_def(type_object._add_method)
    impl.for_each_proto_slot(type_object._add_slot)
    return type_object

  def _add_method(self, method: MethodDef) -> None:
    fn = unwrap(method.fn_type, method.fn)
    if method.fn_type == GETTER:
      self.getters[method.name] = fn
    elif method.fn_type == SETTER:
      self.setters[method.name] = fn
    else:
      self.methods[method.name] = method._replace(fn=fn)

  def _add_slot(self, entry: ProtoSlot) -> None:
    self.slots.setdefault(entry.slot, {})[entry.dunder] = entry.fn

  def mro(self):
    """Yields this type object, then its bases."""
    current: Optional[TypeObject] = self
    while current is not None:
      yield current
      current = current.base

  def find_method(self, name: str) -> Optional[MethodDef]:
    for tp in self.mro():
      if name in tp.methods:
        return tp.methods[name]
    return None

  def find_getter(self, name: str) -> Optional[Callable[..., Any]]:
    for tp in self.mro():
      if name in tp.getters:
        return tp.getters[name]
    return None

  def find_setter(self, name: str) -> Optional[Callable[..., Any]]:
    for tp in self.mro():
      if name in tp.setters:
        return tp.setters[name]
    return None

  def find_slot(self, slot: str, dunder: str) -> Optional[Callable[..., Any]]:
    for tp in self.mro():
      fn = tp.slots.get(slot, {}).get(dunder)
      if fn is not None:
        return fn
    return None
