"""
Field Descriptor Extraction.

Members are exposed to the runtime with a marker inside `Annotated` metadata:

.. code-block:: python

    @pyclass
    class Point:
      x: Annotated[float, prop(get, set)] = 0.0
      \"\"\"Horizontal coordinate.\"\"\"

Named members are annotated class attributes. Positional members are the
element types of a ``tuple[...]`` base, the tuple-struct shape:

.. code-block:: python

    @pyclass
    class Pair(tuple[Annotated[int, prop(get)], str]): ...

Extraction drains the marker from the annotation and returns the accessor kinds
it named. Any other metadata is left in place.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import libcst as cst

from classforge.core.diagnostics import GrammarError, Locator, StructuralError
from classforge.core.descriptor import PropertyDef
from classforge.core.docs import attribute_doc, comment_doc
from classforge.core.scanners import get_full_name
from classforge.enums import FnType

_ACCESSORS = {"get": FnType.GETTER, "set": FnType.SETTER}
_TUPLE_BASES = ("tuple", "Tuple")


@dataclass
class Member:
  """
  A struct member of a binding declaration.

  Attributes:
      name: Attribute name, or None for a positional member.
      annotation: The annotation with markers removed.
      node: Original node, for diagnostics.
      doc: Member documentation, empty if none.
  """

  name: Optional[str]
  annotation: cst.BaseExpression
  node: cst.CSTNode
  doc: str = ""


@dataclass
class FieldDescriptor:
  """A member together with the accessors its marker requested, in marker order."""

  member: Member
  kinds: List[FnType] = field(default_factory=list)


def _is_named(expr: cst.BaseExpression, names: Tuple[str, ...]) -> bool:
  full = get_full_name(expr)
  return bool(full) and full.rsplit(".", 1)[-1] in names


def parse_descriptors(
  annotation: cst.BaseExpression,
  marker: str,
  locator: Optional[Locator] = None,
) -> Tuple[cst.BaseExpression, List[FnType]]:
  """
  Drains `marker(get, set)` entries from an `Annotated[...]` annotation.

  Args:
      annotation: The member annotation.
      marker: Name of the marker call (e.g. "prop").
      locator: Span resolver for diagnostics.

  Returns:
      Tuple: The annotation without markers and the accessor kinds in marker order.

  Raises:
      GrammarError: If a marker argument is neither `get` nor `set`.
  """
  locator = locator or Locator()
  if not isinstance(annotation, cst.Subscript) or not _is_named(annotation.value, ("Annotated",)):
    return annotation, []

  elements = list(annotation.slice)
  if len(elements) < 2:
    return annotation, []

  kinds: List[FnType] = []
  kept: List[cst.SubscriptElement] = []
  for element in elements[1:]:
    item = element.slice
    expr = item.value if isinstance(item, cst.Index) else None
    if isinstance(expr, cst.Call) and _is_named(expr.func, (marker,)):
      for arg in expr.args:
        kind = None
        if arg.keyword is None and not arg.star and isinstance(arg.value, cst.Name):
          kind = _ACCESSORS.get(arg.value.value)
        if kind is None:
          raise locator.error(GrammarError, "only get and set are supported", arg)
        kinds.append(kind)
    else:
      kept.append(element)

  if not kinds:
    return annotation, []

  base_type = elements[0]
  if not kept:
    return base_type.slice.value, kinds

  rebuilt = [base_type, *kept]
  rebuilt[-1] = rebuilt[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
  return annotation.with_changes(slice=rebuilt), kinds


def _ann_assign(stmt: cst.CSTNode) -> Optional[cst.AnnAssign]:
  if isinstance(stmt, cst.SimpleStatementLine) and len(stmt.body) == 1:
    stmt = stmt.body[0]
  if isinstance(stmt, cst.AnnAssign) and isinstance(stmt.target, cst.Name):
    return stmt
  return None


def _member_doc(stmt: cst.CSTNode, following: Optional[cst.CSTNode]) -> str:
  doc = attribute_doc(following)
  if doc is not None:
    return doc
  if isinstance(stmt, cst.SimpleStatementLine):
    return comment_doc(stmt.leading_lines)
  return ""


def extract_members(
  node: cst.ClassDef,
  marker: str,
  locator: Optional[Locator] = None,
) -> Tuple[cst.ClassDef, List[FieldDescriptor]]:
  """
  Scans positional then named members for accessor markers.

  Args:
      node: The declaration.
      marker: Name of the marker call.
      locator: Span resolver for diagnostics.

  Returns:
      Tuple: The declaration with markers stripped, and one descriptor per
      marked member in declaration order.
  """
  locator = locator or Locator()
  descriptors: List[FieldDescriptor] = []

  new_bases = []
  for base in node.bases:
    value = base.value
    if isinstance(value, cst.Subscript) and _is_named(value.value, _TUPLE_BASES):
      new_elements = []
      for element in value.slice:
        if not isinstance(element.slice, cst.Index):
          new_elements.append(element)
          continue
        stripped, kinds = parse_descriptors(element.slice.value, marker, locator)
        if kinds:
          member = Member(name=None, annotation=stripped, node=element)
          descriptors.append(FieldDescriptor(member, kinds))
        new_elements.append(element.with_changes(slice=element.slice.with_changes(value=stripped)))
      base = base.with_changes(value=value.with_changes(slice=new_elements))
    new_bases.append(base)

  statements = list(node.body.body)
  new_statements = []
  for index, stmt in enumerate(statements):
    assign = _ann_assign(stmt)
    if assign is None:
      new_statements.append(stmt)
      continue

    stripped, kinds = parse_descriptors(assign.annotation.annotation, marker, locator)
    if kinds:
      following = statements[index + 1] if index + 1 < len(statements) else None
      member = Member(
        name=assign.target.value,
        annotation=stripped,
        node=stmt,
        doc=_member_doc(stmt, following),
      )
      descriptors.append(FieldDescriptor(member, kinds))

    new_assign = assign.with_changes(annotation=assign.annotation.with_changes(annotation=stripped))
    if isinstance(stmt, cst.SimpleStatementLine):
      new_statements.append(stmt.with_changes(body=[new_assign]))
    else:
      new_statements.append(new_assign)

  new_node = node.with_changes(
    bases=new_bases,
    body=node.body.with_changes(body=new_statements),
  )
  return new_node, descriptors


def impl_descriptors(
  descriptors: Sequence[FieldDescriptor],
  marker: str,
  locator: Optional[Locator] = None,
) -> List[PropertyDef]:
  """
  Turns field descriptors into property bindings.

  Raises:
      StructuralError: If a positional member carries a marker.
  """
  locator = locator or Locator()
  props: List[PropertyDef] = []
  for desc in descriptors:
    for kind in desc.kinds:
      if desc.member.name is None:
        raise locator.error(
          StructuralError,
          f"`{marker}(get, set)` is not supported on tuple struct fields",
          desc.member.node,
        )
      props.append(PropertyDef(name=desc.member.name, fn_type=kind, doc=desc.member.doc))
  return props
