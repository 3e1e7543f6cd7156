"""
Method Classification.

Turns the `def` statements of a declaration site into method records:

- protocol dunders (see `classforge.core.protocols`) become `ProtocolMethod`s,
- ``__new__`` / ``__init__`` and ``__call__`` become the constructor and call hooks,
- everything else becomes a `MethodDef` whose `FnType` is read from its
  decorators (``staticmethod``, ``classmethod``, ``property``, ``<name>.setter``).
"""

from typing import List, Optional

import libcst as cst

from classforge.core import protocols
from classforge.core.descriptor import MethodDef, MethodSite, ProtocolMethod
from classforge.core.docs import get_doc
from classforge.core.scanners import get_full_name
from classforge.enums import FnType

_NEW = ("__new__", "__init__")
_CALL = "__call__"


def classify(func: cst.FunctionDef) -> FnType:
  """
  Reads the calling convention of a plain (non-protocol) method.

  Args:
      func: The method definition.

  Returns:
      FnType: The self-binding kind.
  """
  name = func.name.value
  if name in _NEW:
    return FnType.NEW
  if name == _CALL:
    return FnType.CALL

  for dec in func.decorators:
    full = get_full_name(dec.decorator)
    if full == "staticmethod":
      return FnType.STATIC_METHOD
    if full == "classmethod":
      return FnType.CLASS_METHOD
    if full in ("property", "getter"):
      return FnType.GETTER
    if full == "setter" or full.endswith(".setter"):
      return FnType.SETTER
  return FnType.FN


def _functions(node: cst.ClassDef) -> List[cst.FunctionDef]:
  return [stmt for stmt in node.body.body if isinstance(stmt, cst.FunctionDef)]


def collect_site(node: cst.ClassDef, owner: Optional[str] = None) -> MethodSite:
  """
  Collects the method records contributed by one class body.

  Args:
      node: Declaration or `@pymethods` block.
      owner: Identifier the functions are reachable through; defaults to the class name.

  Returns:
      MethodSite: Records in source order.
  """
  owner = owner or node.name.value
  methods: List[MethodDef] = []
  protocol_methods: List[ProtocolMethod] = []
  constructors: List[MethodDef] = []
  call: Optional[MethodDef] = None

  for func in _functions(node):
    name = func.name.value
    doc = get_doc(func)
    hit = protocols.lookup(name)
    if hit is not None:
      category, slot = hit
      protocol_methods.append(ProtocolMethod(category=category, dunder=name, slot=slot, owner=owner, doc=doc))
      continue

    record = MethodDef(name=name, owner=owner, fn_type=classify(func), doc=doc)
    if record.fn_type == FnType.NEW:
      constructors.append(record)
    elif record.fn_type == FnType.CALL:
      call = record
    else:
      methods.append(record)

  return MethodSite(
    owner=owner,
    methods=tuple(methods),
    protocol_methods=tuple(protocol_methods),
    new=constructors[0] if constructors else None,
    constructors=tuple(constructors),
    call=call,
  )
