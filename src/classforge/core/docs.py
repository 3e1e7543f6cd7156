"""
Documentation and Text Signature Extraction.

Docstrings of declarations and methods come from libcst's `get_docstring`.
Members have no docstring slot of their own; their documentation is either the
string statement that follows them (attribute docstring) or the ``#:`` comment
lines preceding them, the two conventions Sphinx autodoc understands.

A ``@text_signature("(a, b)")`` decorator prefixes the docstring with
``Name(a, b)\\n--\\n\\n``, the layout CPython parses into ``__text_signature__``.
"""

import inspect
from typing import Optional, Sequence, Union

import libcst as cst

from classforge.core.diagnostics import GrammarError, Locator
from classforge.core.scanners import find_decorator


def get_doc(node: Union[cst.ClassDef, cst.FunctionDef], text_signature: Optional[str] = None) -> str:
  """
  Builds the exposed documentation of a class or function.

  Args:
      node: The definition carrying the docstring.
      text_signature: Already formatted ``Name(args)`` string, if any.

  Returns:
      str: The documentation, possibly empty.
  """
  doc = node.get_docstring(clean=True) or ""
  if text_signature is not None:
    return f"{text_signature}\n--\n\n{doc}"
  return doc


def parse_text_signature(
  node: Union[cst.ClassDef, cst.FunctionDef],
  decorator: str,
  python_name: str,
  locator: Optional[Locator] = None,
) -> Optional[str]:
  """
  Reads the text signature decorator of a definition.

  Args:
      node: The decorated definition.
      decorator: Name of the text signature decorator.
      python_name: Exposed name the signature is prefixed with.
      locator: Span resolver for diagnostics.

  Returns:
      Optional[str]: ``python_name + signature``, or None without a decorator.

  Raises:
      GrammarError: If the decorator does not hold a single parenthesized string.
  """
  locator = locator or Locator()
  dec = find_decorator(node, decorator)
  if dec is None:
    return None

  expr = dec.decorator
  literal = None
  if isinstance(expr, cst.Call) and len(expr.args) == 1 and expr.args[0].keyword is None:
    value = expr.args[0].value
    if isinstance(value, cst.SimpleString):
      literal = value.evaluated_value
  if not isinstance(literal, str):
    raise locator.error(GrammarError, f'expected a string literal, e.g. @{decorator}("(a, b)")', dec)

  if not (literal.startswith("(") and literal.endswith(")")):
    raise locator.error(GrammarError, 'text signature must be parenthesized, e.g. "(a, b)"', expr)
  return f"{python_name}{literal}"


def comment_doc(leading_lines: Sequence[cst.EmptyLine]) -> str:
  """Joins ``#:`` comment lines into a documentation string."""
  lines = []
  for line in leading_lines:
    if line.comment is None:
      continue
    text = line.comment.value
    if text.startswith("#:"):
      lines.append(text[2:].strip())
  return "\n".join(lines)


def attribute_doc(stmt: Optional[cst.CSTNode]) -> Optional[str]:
  """
  Returns the docstring carried by `stmt` if it is a lone string statement.

  Bytes and f-strings are not documentation; they yield None.
  """
  if not isinstance(stmt, cst.SimpleStatementLine) or len(stmt.body) != 1:
    return None
  expr = stmt.body[0]
  if not isinstance(expr, cst.Expr):
    return None
  if not isinstance(expr.value, (cst.SimpleString, cst.ConcatenatedString)):
    return None
  value = expr.value.evaluated_value
  if not isinstance(value, str):
    return None
  return inspect.cleandoc(value)
