"""
Protocol Category Table.

Declarative table of the optional behaviors a bound type may implement. Each
category maps dunder names to the type slot they fill, or to None when the
dunder is exposed as a plain method definition.

Two canonical walk orders are derived from the table:

- `METHOD_DEF_ORDER`: order in which slot-less protocol methods follow the
  type's own methods and property descriptors.
- `SLOT_ORDER`: order of the type slot enumeration.

The relative order of categories is not meaningful to the runtime; it is fixed
so that generated artifacts compare equal across runs.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from classforge.core.descriptor import ProtocolMethod

PROTOCOLS: Dict[str, Tuple[Tuple[str, Optional[str]], ...]] = {
  "object": (
    ("__getattr__", "tp_getattro"),
    ("__setattr__", "tp_setattro"),
    ("__delattr__", "tp_setattro"),
    ("__str__", "tp_str"),
    ("__repr__", "tp_repr"),
    ("__hash__", "tp_hash"),
    ("__lt__", "tp_richcompare"),
    ("__le__", "tp_richcompare"),
    ("__eq__", "tp_richcompare"),
    ("__ne__", "tp_richcompare"),
    ("__gt__", "tp_richcompare"),
    ("__ge__", "tp_richcompare"),
    ("__bool__", "nb_bool"),
    ("__format__", None),
    ("__bytes__", None),
  ),
  "async": (
    ("__await__", "am_await"),
    ("__aiter__", "am_aiter"),
    ("__anext__", "am_anext"),
    ("__aenter__", None),
    ("__aexit__", None),
  ),
  "context": (
    ("__enter__", None),
    ("__exit__", None),
  ),
  "descr": (
    ("__get__", "tp_descr_get"),
    ("__set__", "tp_descr_set"),
    ("__delete__", "tp_descr_set"),
    ("__set_name__", None),
  ),
  "mapping": (
    ("__len__", "mp_length"),
    ("__getitem__", "mp_subscript"),
    ("__setitem__", "mp_ass_subscript"),
    ("__delitem__", "mp_ass_subscript"),
    ("__reversed__", None),
  ),
  "number": (
    ("__add__", "nb_add"),
    ("__radd__", "nb_add"),
    ("__sub__", "nb_subtract"),
    ("__rsub__", "nb_subtract"),
    ("__mul__", "nb_multiply"),
    ("__rmul__", "nb_multiply"),
    ("__matmul__", "nb_matrix_multiply"),
    ("__truediv__", "nb_true_divide"),
    ("__floordiv__", "nb_floor_divide"),
    ("__mod__", "nb_remainder"),
    ("__divmod__", "nb_divmod"),
    ("__pow__", "nb_power"),
    ("__lshift__", "nb_lshift"),
    ("__rshift__", "nb_rshift"),
    ("__and__", "nb_and"),
    ("__xor__", "nb_xor"),
    ("__or__", "nb_or"),
    ("__iadd__", "nb_inplace_add"),
    ("__isub__", "nb_inplace_subtract"),
    ("__imul__", "nb_inplace_multiply"),
    ("__neg__", "nb_negative"),
    ("__pos__", "nb_positive"),
    ("__abs__", "nb_absolute"),
    ("__invert__", "nb_invert"),
    ("__int__", "nb_int"),
    ("__float__", "nb_float"),
    ("__index__", "nb_index"),
    ("__round__", None),
    ("__complex__", None),
  ),
  "sequence": (("__contains__", "sq_contains"),),
  "iter": (
    ("__iter__", "tp_iter"),
    ("__next__", "tp_iternext"),
  ),
  "buffer": (
    ("__buffer__", "bf_getbuffer"),
    ("__release_buffer__", "bf_releasebuffer"),
  ),
  "gc": (
    ("__traverse__", "tp_traverse"),
    ("__clear__", "tp_clear"),
  ),
}

METHOD_DEF_ORDER = ("object", "async", "context", "descr", "mapping", "number", "sequence", "buffer", "gc")
SLOT_ORDER = ("object", "number", "iter", "gc", "descr", "mapping", "sequence", "async", "buffer")

GC_REQUIRED = ("__traverse__", "__clear__")

# dunder -> (category, slot, position within the category)
_INDEX: Dict[str, Tuple[str, Optional[str], int]] = {
  dunder: (category, slot, pos)
  for category, entries in PROTOCOLS.items()
  for pos, (dunder, slot) in enumerate(entries)
}


def lookup(dunder: str) -> Optional[Tuple[str, Optional[str]]]:
  """Returns (category, slot) for a protocol dunder, None for anything else."""
  hit = _INDEX.get(dunder)
  if hit is None:
    return None
  return hit[0], hit[1]


def _sort_key(order: Tuple[str, ...]):
  def key(method: ProtocolMethod) -> Tuple[int, int]:
    return order.index(method.category), _INDEX[method.dunder][2]

  return key


def method_def_entries(methods: Iterable[ProtocolMethod]) -> List[ProtocolMethod]:
  """Slot-less protocol methods, in canonical method-def order."""
  entries = [m for m in methods if m.slot is None]
  return sorted(entries, key=_sort_key(METHOD_DEF_ORDER))


def slot_entries(methods: Iterable[ProtocolMethod]) -> List[ProtocolMethod]:
  """Slot-filling protocol methods, in canonical slot order."""
  entries = [m for m in methods if m.slot is not None]
  return sorted(entries, key=_sort_key(SLOT_ORDER))
