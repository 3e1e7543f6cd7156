"""
Declaration Scanners.

LibCST helpers that locate binding declarations in a module:

1.  `get_full_name` flattens `Name` / `Attribute` chains to dotted strings.
2.  `decorator_name` resolves the (last segment of the) name a decorator calls.
3.  `DeclarationScanner` collects every `@pyclass` class and every
    `@pymethods(Target)` block, in source order.
"""

from typing import Dict, List, Optional, Tuple

import libcst as cst


def get_full_name(node: cst.CSTNode) -> str:
  """
  Recursively resolves a CST Name or Attribute chain to a dot-separated string.

  Args:
    node: The CST node representing the identifier.

  Returns:
    str: The dotted name (e.g., "base.Animal"), or an empty string if the node
    is not a pure Name/Attribute chain.

  Example:
    >>> get_full_name(cst.Attribute(value=cst.Name("base"), attr=cst.Name("Animal")))
    'base.Animal'
  """
  if isinstance(node, cst.Name):
    return node.value
  elif isinstance(node, cst.Attribute):
    prefix = get_full_name(node.value)
    if not prefix:
      return ""
    return f"{prefix}.{node.attr.value}"
  return ""


def decorator_name(decorator: cst.Decorator) -> str:
  """
  Returns the last segment of the callable a decorator refers to.

  `@pyclass`, `@pyclass(gc)` and `@classforge.pyclass(gc)` all yield "pyclass".
  """
  expr = decorator.decorator
  if isinstance(expr, cst.Call):
    expr = expr.func
  full = get_full_name(expr)
  return full.rsplit(".", 1)[-1] if full else ""


def find_decorator(node: cst.ClassDef, name: str) -> Optional[cst.Decorator]:
  for dec in node.decorators:
    if decorator_name(dec) == name:
      return dec
  return None


def strip_decorators(node: cst.ClassDef, names: Tuple[str, ...]) -> cst.ClassDef:
  """Removes every decorator whose name is in `names`, keeping the others in order."""
  kept = [d for d in node.decorators if decorator_name(d) not in names]
  return node.with_changes(decorators=kept)


class MethodsBlock:
  """
  A `@pymethods(Target)` class found in the module.

  Attributes:
      node: The decorated class.
      target: Identifier of the bound type (last segment of the target path).
      target_node: The expression naming the target, for diagnostics.
  """

  def __init__(self, node: cst.ClassDef, target: str, target_node: Optional[cst.CSTNode]):
    self.node = node
    self.target = target
    self.target_node = target_node


class DeclarationScanner(cst.CSTVisitor):
  """
  Collects binding declarations and method blocks at any nesting level.

  Attributes:
    declarations (List[cst.ClassDef]): `@pyclass` classes in source order.
    methods_blocks (List[MethodsBlock]): `@pymethods` classes in source order.
  """

  def __init__(self, decorator: str, methods_decorator: str) -> None:
    self.decorator = decorator
    self.methods_decorator = methods_decorator
    self.declarations: List[cst.ClassDef] = []
    self.methods_blocks: List[MethodsBlock] = []

  def visit_ClassDef(self, node: cst.ClassDef) -> None:
    if find_decorator(node, self.decorator) is not None:
      self.declarations.append(node)
      return

    dec = find_decorator(node, self.methods_decorator)
    if dec is None:
      return

    target_node: Optional[cst.CSTNode] = None
    if isinstance(dec.decorator, cst.Call) and len(dec.decorator.args) == 1:
      target_node = dec.decorator.args[0].value
    target = get_full_name(target_node) if target_node is not None else ""
    self.methods_blocks.append(MethodsBlock(node, target.rsplit(".", 1)[-1], target_node or dec))

  def blocks_by_target(self) -> Dict[str, List[MethodsBlock]]:
    grouped: Dict[str, List[MethodsBlock]] = {}
    for block in self.methods_blocks:
      grouped.setdefault(block.target, []).append(block)
    return grouped
