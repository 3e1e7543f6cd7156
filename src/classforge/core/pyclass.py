"""
Type Binding Generator.

Resolves a binding declaration into a `TypeDescriptor`. The resolution rules
are independent pure functions of the `PyClassArgs` record:

- allocator: free list when ``freelist`` is given, default allocator otherwise;
- dict / weakref slots: own storage if flagged, the base's slot when the type
  extends a declared base, a zero-size placeholder otherwise;
- thread checker: ``unsendable`` guard, else inherited from a declared base,
  else a no-op stub.

`build_py_class` combines them with the member descriptors and the method
sites collected from the module.
"""

from typing import List, Optional, Sequence

import libcst as cst

from classforge.config import RuntimeConfig
from classforge.core import protocols
from classforge.core.args import PyClassArgs
from classforge.core.descriptor import MethodDef, MethodSite, ProtocolMethod, TypeDescriptor
from classforge.core.diagnostics import CapabilityError, Locator, StructuralError
from classforge.core.docs import get_doc, parse_text_signature
from classforge.core.fields import extract_members, impl_descriptors
from classforge.core.method import collect_site
from classforge.core.registration import strategy_for
from classforge.core.scanners import get_full_name
from classforge.enums import AllocatorKind, SlotSource, ThreadCheckerKind


def get_class_python_name(ident: str, args: PyClassArgs) -> str:
  return args.name or ident


def resolve_allocator(args: PyClassArgs) -> AllocatorKind:
  return AllocatorKind.FREELIST if args.freelist is not None else AllocatorKind.DEFAULT


def resolve_slot(own: bool, args: PyClassArgs) -> SlotSource:
  """
  Resolves one layout slot.

  Args:
      own: Whether the declaration asked for its own storage.
      args: The configuration record.

  Returns:
      SlotSource: OWN, INHERITED (from a declared base) or DUMMY.
  """
  if own:
    return SlotSource.OWN
  if args.has_extends:
    return SlotSource.INHERITED
  return SlotSource.DUMMY


def resolve_thread_checker(args: PyClassArgs) -> ThreadCheckerKind:
  if args.has_unsendable:
    return ThreadCheckerKind.UNSENDABLE
  if args.has_extends:
    return ThreadCheckerKind.INHERITED
  return ThreadCheckerKind.STUB


def ensure_no_generics(node: cst.ClassDef, locator: Locator) -> None:
  """
  Rejects PEP 695 type parameters and `Generic[...]` bases.

  Raises:
      StructuralError: If the declaration is generic.
  """
  type_params = getattr(node, "type_parameters", None)
  if type_params is not None:
    raise locator.error(StructuralError, "@pyclass cannot have generic parameters", type_params)

  for base in node.bases:
    value = base.value
    if isinstance(value, cst.Subscript) and get_full_name(value.value).rsplit(".", 1)[-1] == "Generic":
      raise locator.error(StructuralError, "@pyclass cannot have generic parameters", value)


def ensure_gc_capability(
  ident: str,
  args: PyClassArgs,
  protocol_methods: Sequence[ProtocolMethod],
  anchor: Optional[cst.CSTNode],
  locator: Locator,
) -> None:
  """
  With `gc` set, the type must implement the GC traversal protocol.

  Raises:
      CapabilityError: If a required dunder is missing.
  """
  if not args.is_gc:
    return
  present = {m.dunder for m in protocol_methods if m.category == "gc"}
  missing = [d for d in protocols.GC_REQUIRED if d not in present]
  if missing:
    raise locator.error(
      CapabilityError,
      f"`gc` requires '{ident}' to implement the GC protocol (missing {', '.join(missing)})",
      anchor,
    )


def _single(kind: str, ident: str, records: List[MethodDef], locator: Locator, node: cst.CSTNode) -> Optional[MethodDef]:
  if len(records) > 1:
    owners = ", ".join(r.owner for r in records)
    raise locator.error(StructuralError, f"'{ident}' has more than one {kind} (defined in {owners})", node)
  return records[0] if records else None


def build_py_class(
  node: cst.ClassDef,
  args: PyClassArgs,
  blocks: Sequence[cst.ClassDef] = (),
  config: Optional[RuntimeConfig] = None,
  locator: Optional[Locator] = None,
  anchor: Optional[cst.CSTNode] = None,
) -> TypeDescriptor:
  """
  Generates the descriptor of one binding declaration.

  Args:
      node: The `@pyclass` class.
      args: Its parsed configuration record.
      blocks: `@pymethods` blocks for this type declared in the same module, in source order.
      config: Build configuration (strategy, marker names).
      locator: Span resolver for diagnostics.
      anchor: Node diagnostics about the whole declaration point at (the decorator).

  Returns:
      TypeDescriptor: The resolved artifact.

  Raises:
      BindingError: On any structural, grammar or capability problem.
  """
  config = config or RuntimeConfig()
  locator = locator or Locator()
  anchor = anchor or node.name
  ident = node.name.value
  python_name = get_class_python_name(ident, args)

  text_signature = parse_text_signature(node, config.text_signature_decorator, python_name, locator)
  doc = get_doc(node, text_signature)

  ensure_no_generics(node, locator)

  _, fields = extract_members(node, config.marker, locator)
  descriptors = impl_descriptors(fields, config.marker, locator)

  sites: List[MethodSite] = [collect_site(node, ident)]
  sites.extend(collect_site(block) for block in blocks)

  all_protocol = [m for site in sites for m in site.protocol_methods]
  ensure_gc_capability(ident, args, all_protocol, anchor, locator)

  # Calling the class runs both its own __new__ and __init__; a block's are called one at a time.
  ctors = [sites[0].new] if sites[0].new is not None else []
  ctors += [m for s in sites[1:] for m in s.constructors]
  new = _single("constructor", ident, ctors, locator, node.name)
  call = _single("__call__", ident, [s.call for s in sites if s.call is not None], locator, node.name)

  strategy = strategy_for(config.methods_type)

  return TypeDescriptor(
    ident=ident,
    name=python_name,
    module=args.module,
    doc=doc,
    base=args.base,
    is_gc=args.is_gc,
    is_basetype=args.is_basetype,
    is_subclass=args.has_extends,
    dict_slot=resolve_slot(args.has_dict, args),
    weakref_slot=resolve_slot(args.has_weaklist, args),
    allocator=resolve_allocator(args),
    freelist=args.freelist,
    thread_checker=resolve_thread_checker(args),
    methods_type=strategy.methods_type,
    inventory_name=strategy.inventory_name(ident),
    method_sites=tuple(sites),
    descriptors=tuple(descriptors),
    protocol_methods=tuple(protocols.method_def_entries(all_protocol)),
    protocol_slots=tuple(protocols.slot_entries(all_protocol)),
    new=new,
    call=call,
    has_buffer=any(m.category == "buffer" and m.dunder == "__buffer__" for m in all_protocol),
    into_object=not args.has_extends,
  )
