"""
Binding Emitter.

Renders a `TypeDescriptor` as the statements that follow the declaration in
the generated module:

.. code-block:: python

    class CounterClassImpl(_classforge.PyClassImpl):
        CLASS = Counter
        NAME = 'Counter'
        ...
        TYPE_OBJECT = _classforge.LazyStaticType()

        @staticmethod
        def for_each_method_def(visitor):
            visitor(_classforge.MethodDef('incr', vars(Counter)['incr'], 'fn', ''))

    _classforge.register(Counter, CounterClassImpl)
    _classforge.into_object.register(Counter)(CounterClassImpl.into_object)

Functions are looked up in the namespace of the class that defines them when
the closures run, so blocks declared further down the module resolve.
"""

from typing import List, Optional, Sequence

import libcst as cst

from classforge.core.args import ROOT_BASE
from classforge.core.descriptor import MethodDef, MethodSite, PropertyDef, ProtocolMethod, TypeDescriptor
from classforge.enums import AllocatorKind, FnType, MethodsType, SlotSource, ThreadCheckerKind


def impl_name(ident: str) -> str:
  return f"{ident}ClassImpl"


def _lit(value: Optional[str]) -> str:
  return repr(value)


class BindingEmitter:
  """
  Produces libcst statements for generated bindings.

  Args:
      alias: Name the runtime package is imported under in the generated module.
  """

  def __init__(self, alias: str = "_classforge"):
    self.alias = alias

  # --- expressions ---

  def _rt(self, name: str) -> str:
    return f"{self.alias}.{name}"

  def base_expr(self, desc: TypeDescriptor) -> str:
    if desc.base == ROOT_BASE:
      return self._rt("PyAny")
    return desc.base

  def slot_expr(self, source: SlotSource, own: str, attr: str, desc: TypeDescriptor) -> str:
    if source == SlotSource.OWN:
      return self._rt(own)
    if source == SlotSource.INHERITED:
      return f"{self._rt('impl_of')}({self.base_expr(desc)}).{attr}"
    return self._rt("PyClassDummySlot")

  def thread_checker_expr(self, desc: TypeDescriptor) -> str:
    if desc.thread_checker == ThreadCheckerKind.UNSENDABLE:
      return self._rt("ThreadCheckerImpl")
    if desc.thread_checker == ThreadCheckerKind.INHERITED:
      base_checker = f"{self._rt('impl_of')}({self.base_expr(desc)}).ThreadChecker"
      return f"{self._rt('ThreadCheckerInherited')}.over({base_checker})"
    return self._rt("ThreadCheckerStub")

  def alloc_expr(self, desc: TypeDescriptor) -> str:
    if desc.allocator == AllocatorKind.FREELIST:
      return f"{self._rt('FreeListAlloc')}({desc.freelist})"
    return f"{self._rt('DefaultAlloc')}()"

  def _fn_ref(self, owner: str, name: str) -> str:
    return f"vars({owner})[{name!r}]"

  def method_expr(self, method: MethodDef) -> str:
    fn = self._fn_ref(method.owner, method.name)
    return f"{self._rt('MethodDef')}({method.name!r}, {fn}, {method.fn_type.value!r}, {_lit(method.doc)})"

  def property_expr(self, prop: PropertyDef) -> str:
    accessor = "member_getter" if prop.fn_type == FnType.GETTER else "member_setter"
    fn = f"{self._rt(accessor)}({prop.name!r})"
    return f"{self._rt('MethodDef')}({prop.name!r}, {fn}, {prop.fn_type.value!r}, {_lit(prop.doc)})"

  def protocol_method_expr(self, method: ProtocolMethod) -> str:
    fn = self._fn_ref(method.owner, method.dunder)
    return f"{self._rt('MethodDef')}({method.dunder!r}, {fn}, {FnType.FN.value!r}, {_lit(method.doc)})"

  def proto_slot_expr(self, method: ProtocolMethod) -> str:
    fn = self._fn_ref(method.owner, method.dunder)
    return f"{self._rt('ProtoSlot')}({method.slot!r}, {method.dunder!r}, {fn})"

  # --- statements ---

  def _static_fn(self, name: str, params: str, lines: Sequence[str]) -> cst.FunctionDef:
    body = [cst.parse_statement(line) for line in lines] or [cst.parse_statement("pass")]
    params_node = cst.Parameters(params=[cst.Param(name=cst.Name(params))]) if params else cst.Parameters()
    return cst.FunctionDef(
      name=cst.Name(name),
      params=params_node,
      body=cst.IndentedBlock(body=body),
      decorators=[cst.Decorator(decorator=cst.Name("staticmethod"))],
      leading_lines=[cst.EmptyLine(indent=False)],
    )

  def _method_def_lines(self, desc: TypeDescriptor) -> List[str]:
    lines: List[str] = []
    if desc.methods_type == MethodsType.INVENTORY:
      lines.append(f"for item in {desc.inventory_name}.items():\n    visitor(item)\n")
    else:
      for site in desc.method_sites:
        lines.extend(f"visitor({self.method_expr(m)})" for m in site.methods)
    lines.extend(f"visitor({self.property_expr(p)})" for p in desc.descriptors)
    lines.extend(f"visitor({self.protocol_method_expr(m)})" for m in desc.protocol_methods)
    return lines

  def _new_lines(self, desc: TypeDescriptor) -> List[str]:
    if desc.new is None:
      return []
    if desc.new.owner == desc.ident:
      return [f"return {desc.ident}"]
    fn = self._fn_ref(desc.new.owner, desc.new.name)
    return [f"return {self._rt('constructor')}({desc.ident}, {fn})"]

  def _buffer_lines(self, desc: TypeDescriptor) -> List[str]:
    get = next((m for m in desc.protocol_slots if m.dunder == "__buffer__"), None)
    if not desc.has_buffer or get is None:
      return []
    release = next((m for m in desc.protocol_slots if m.dunder == "__release_buffer__"), None)
    release_ref = self._fn_ref(release.owner, release.dunder) if release is not None else "None"
    return [f"return {self._rt('BufferProcs')}({self._fn_ref(get.owner, get.dunder)}, {release_ref})"]

  def emit_impl(self, desc: TypeDescriptor) -> cst.ClassDef:
    """
    Builds the `<Ident>ClassImpl` class of a descriptor.

    Args:
        desc: The resolved artifact.

    Returns:
        cst.ClassDef: The impl class.
    """
    constants = [
      f"CLASS = {desc.ident}",
      f"NAME = {desc.name!r}",
      f"MODULE = {_lit(desc.module)}",
      f"DOC = {_lit(desc.doc)}",
      f"BASE = {self.base_expr(desc)}",
      f"IS_GC = {desc.is_gc}",
      f"IS_BASETYPE = {desc.is_basetype}",
      f"IS_SUBCLASS = {desc.is_subclass}",
      f"Dict = {self.slot_expr(desc.dict_slot, 'PyClassDictSlot', 'Dict', desc)}",
      f"WeakRef = {self.slot_expr(desc.weakref_slot, 'PyClassWeakRefSlot', 'WeakRef', desc)}",
      f"ThreadChecker = {self.thread_checker_expr(desc)}",
      f"ALLOC = {self.alloc_expr(desc)}",
      f"INVENTORY = {_lit(desc.inventory_name)}",
      f"TYPE_OBJECT = {self._rt('LazyStaticType')}()",
    ]
    body: List[cst.BaseStatement] = [cst.parse_statement(line) for line in constants]

    body.append(self._static_fn("for_each_method_def", "visitor", self._method_def_lines(desc)))
    slot_lines = [f"visitor({self.proto_slot_expr(m)})" for m in desc.protocol_slots]
    body.append(self._static_fn("for_each_proto_slot", "visitor", slot_lines))

    new_lines = self._new_lines(desc)
    if new_lines:
      body.append(self._static_fn("get_new", "", new_lines))
    if desc.call is not None:
      body.append(self._static_fn("get_call", "", [f"return {self._fn_ref(desc.call.owner, desc.call.name)}"]))
    buffer_lines = self._buffer_lines(desc)
    if buffer_lines:
      body.append(self._static_fn("get_buffer", "", buffer_lines))

    return cst.ClassDef(
      name=cst.Name(impl_name(desc.ident)),
      bases=[cst.Arg(value=cst.parse_expression(self._rt("PyClassImpl")))],
      body=cst.IndentedBlock(body=body),
      leading_lines=[cst.EmptyLine(), cst.EmptyLine()],
    )

  def emit_collection_point(self, desc: TypeDescriptor) -> cst.ClassDef:
    return cst.ClassDef(
      name=cst.Name(desc.inventory_name),
      bases=[cst.Arg(value=cst.parse_expression(self._rt("PyMethodsInventory")))],
      body=cst.IndentedBlock(body=[cst.parse_statement(f"NAME = {desc.inventory_name!r}")]),
      decorators=[cst.Decorator(decorator=cst.parse_expression(self._rt("inventory.collect")))],
      leading_lines=[cst.EmptyLine(), cst.EmptyLine()],
    )

  def emit_submission(self, inventory_name: str, site: MethodSite) -> Optional[cst.SimpleStatementLine]:
    """
    Builds the import-time deposit of one site's methods, or None if it has none.
    """
    if not site.methods:
      return None
    items = ", ".join(self.method_expr(m) for m in site.methods)
    stmt = cst.parse_statement(f"{self._rt('inventory.submit')}({inventory_name!r}, [{items}])")
    return stmt.with_changes(leading_lines=[cst.EmptyLine()])

  def emit(self, desc: TypeDescriptor) -> List[cst.BaseStatement]:
    """
    All statements generated for one declaration, in module order.

    Args:
        desc: The resolved artifact.

    Returns:
        List[cst.BaseStatement]: Collection point (inventory only), impl class,
        registration, conversion registration and the class body's submission.
    """
    stmts: List[cst.BaseStatement] = []
    if desc.methods_type == MethodsType.INVENTORY:
      stmts.append(self.emit_collection_point(desc))
    stmts.append(self.emit_impl(desc))

    register = cst.parse_statement(f"{self._rt('register')}({desc.ident}, {impl_name(desc.ident)})")
    stmts.append(register.with_changes(leading_lines=[cst.EmptyLine()]))
    if desc.into_object:
      stmts.append(
        cst.parse_statement(f"{self._rt('into_object')}.register({desc.ident})({impl_name(desc.ident)}.into_object)")
      )

    if desc.methods_type == MethodsType.INVENTORY and desc.method_sites:
      submission = self.emit_submission(desc.inventory_name, desc.method_sites[0])
      if submission is not None:
        stmts.append(submission)
    return stmts
