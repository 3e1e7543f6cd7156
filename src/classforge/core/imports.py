"""
Runtime Import Injection.

Generated bindings refer to the runtime through a module alias. The import is
inserted once, after the module docstring and any ``from __future__`` imports.
"""

from typing import List

import libcst as cst

RUNTIME_MODULE = "classforge.runtime"


def is_docstring(node: cst.CSTNode, idx: int) -> bool:
  """
  Determines if a statement node represents a module docstring.

  Args:
      node: The statement node from the module body.
      idx: The index of this statement in the body list.

  Returns:
      bool: True if it is a docstring (string expression at index 0).
  """
  if idx != 0:
    return False
  if isinstance(node, cst.SimpleStatementLine):
    if len(node.body) == 1 and isinstance(node.body[0], cst.Expr):
      expr = node.body[0].value
      if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        return True
  return False


def is_future_import(node: cst.CSTNode) -> bool:
  if isinstance(node, cst.SimpleStatementLine):
    for small_stmt in node.body:
      if isinstance(small_stmt, cst.ImportFrom):
        if small_stmt.module and isinstance(small_stmt.module, cst.Name):
          if small_stmt.module.value == "__future__":
            return True
  return False


def runtime_import(alias: str) -> cst.SimpleStatementLine:
  return cst.parse_statement(f"import {RUNTIME_MODULE} as {alias}")


def _is_runtime_import(node: cst.CSTNode, alias: str) -> bool:
  if not isinstance(node, cst.SimpleStatementLine):
    return False
  for small_stmt in node.body:
    if not isinstance(small_stmt, cst.Import):
      continue
    for name in small_stmt.names:
      target = cst.Module(body=[]).code_for_node(name.name)
      if target == RUNTIME_MODULE and name.asname is not None:
        asname = name.asname.name
        if isinstance(asname, cst.Name) and asname.value == alias:
          return True
  return False


def inject_runtime_import(module: cst.Module, alias: str) -> cst.Module:
  """
  Adds ``import classforge.runtime as <alias>`` unless already present.

  Args:
      module: The generated module.
      alias: Local name of the runtime package.

  Returns:
      cst.Module: The module with the import in place.
  """
  body: List[cst.CSTNode] = list(module.body)
  if any(_is_runtime_import(stmt, alias) for stmt in body):
    return module

  insert_idx = 0
  for i, stmt in enumerate(body):
    if is_docstring(stmt, i) or is_future_import(stmt):
      insert_idx = i + 1
      continue
    break

  merged = body[:insert_idx] + [runtime_import(alias)] + body[insert_idx:]
  return module.with_changes(body=merged)
