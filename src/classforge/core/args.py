"""
Configuration Model for `@pyclass(...)`.

Parses the decorator argument list into a `PyClassArgs` record. Each argument
is either a bare identifier (a flag) or a `key = value` keyword:

.. code-block:: python

    @pyclass(gc, weakref, freelist=8 * 64, name="Counter", extends=base.Base, module="demo")

Flags: ``gc``, ``weakref``, ``subclass``, ``dict``, ``unsendable``.
Keys: ``freelist`` (any expression, kept as source text), ``name`` (quoted
identifier), ``extends`` (dotted type path), ``module`` (string literal).

Re-specifying a flag or key overwrites the earlier value. The parser records a
warning for it, or raises in strict mode.

Order does not matter to the parser. In decorator form Python's call syntax
still requires flags before keys; `parse_class_args` accepts any order.
"""

import io
import keyword
import tokenize
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import libcst as cst
from libcst.metadata import CodePosition, CodeRange, MetadataWrapper, PositionProvider
from pydantic import BaseModel, ConfigDict, Field

from classforge.core.diagnostics import DeprecatedFormError, GrammarError, Locator
from classforge.core.scanners import get_full_name

ROOT_BASE = "PyAny"
DEPRECATED_NAME_SINCE = "0.2"

FLAGS: Dict[str, str] = {
  "gc": "is_gc",
  "weakref": "has_weaklist",
  "subclass": "is_basetype",
  "dict": "has_dict",
  "unsendable": "has_unsendable",
}
KEYS = ("freelist", "name", "extends", "module")


class PyClassArgs(BaseModel):
  """
  The parsed arguments of the `@pyclass` decorator.
  """

  model_config = ConfigDict(frozen=True)

  freelist: Optional[str] = Field(None, description="Source text of the free-list capacity expression.")
  name: Optional[str] = Field(None, description="Exposed name override.")
  base: str = Field(ROOT_BASE, description="Dotted path of the base type.")
  has_dict: bool = False
  has_weaklist: bool = False
  is_gc: bool = False
  is_basetype: bool = False
  has_extends: bool = False
  has_unsendable: bool = False
  module: Optional[str] = None


def _is_identifier(text: str) -> bool:
  return text.isidentifier() and not keyword.iskeyword(text)


class ClassArgsParser:
  """
  Builds a `PyClassArgs` from libcst call arguments.

  Attributes:
      warnings (List[str]): Located warnings for re-specified flags/keys.
  """

  def __init__(self, locator: Optional[Locator] = None, strict: bool = False):
    self.locator = locator or Locator()
    self.strict = strict
    self.warnings: List[str] = []

  def parse(self, args: Sequence[cst.Arg]) -> PyClassArgs:
    """
    Parses a decorator's argument list.

    Args:
        args: The `args` of the decorator call (empty for a bare `@pyclass`).

    Returns:
        PyClassArgs: The configuration record.

    Raises:
        GrammarError: On any malformed or unrecognized argument.
    """
    values: Dict[str, Any] = {}
    seen: Set[str] = set()
    for arg in args:
      self._add_arg(arg, values, seen)
    return PyClassArgs(**values)

  def _add_arg(self, arg: cst.Arg, values: Dict[str, Any], seen: Set[str]) -> None:
    if arg.star:
      raise self.locator.error(GrammarError, "failed to parse arguments", arg)

    if arg.keyword is None:
      if not isinstance(arg.value, cst.Name):
        raise self.locator.error(GrammarError, "failed to parse arguments", arg.value)
      self._add_flag(arg.value, values, seen)
    else:
      self._add_assign(arg.keyword, arg.value, values, seen)

  def _add_flag(self, node: cst.Name, values: Dict[str, Any], seen: Set[str]) -> None:
    flag = node.value
    field = FLAGS.get(flag)
    if field is None:
      raise self.locator.error(GrammarError, "expected one of gc/weakref/subclass/dict/unsendable", node)
    self._mark_seen(flag, node, seen)
    values[field] = True

  def _add_assign(self, key_node: cst.Name, right: cst.BaseExpression, values: Dict[str, Any], seen: Set[str]) -> None:
    key = key_node.value

    def expected(what: str) -> GrammarError:
      return self.locator.error(GrammarError, f"expected {what}", right)

    if key == "freelist":
      # Arbitrary expressions are allowed so you can write e.g. `8 * 64`.
      values["freelist"] = cst.Module(body=[]).code_for_node(right)
    elif key == "name":
      if isinstance(right, cst.SimpleString):
        literal = right.evaluated_value
        if not isinstance(literal, str):
          raise expected('type name (e.g. "Name")')
        if not _is_identifier(literal):
          raise self.locator.error(GrammarError, "expected a single identifier in double-quotes", right)
        values["name"] = literal
      elif isinstance(right, cst.Name):
        raise self.locator.error(
          DeprecatedFormError,
          f'since classforge {DEPRECATED_NAME_SINCE} a pyclass name should be in double-quotes, e.g. "{right.value}"',
          right,
        )
      else:
        raise expected('type name (e.g. "Name")')
    elif key == "extends":
      path = get_full_name(right)
      if not path:
        raise expected("type path (e.g., my_mod.BaseClass)")
      values["base"] = path
      values["has_extends"] = True
    elif key == "module":
      literal = right.evaluated_value if isinstance(right, cst.SimpleString) else None
      if not isinstance(literal, str):
        raise expected('string literal (e.g., "my_mod")')
      values["module"] = literal
    else:
      raise self.locator.error(GrammarError, "expected one of freelist/name/extends/module", key_node)

    self._mark_seen(key, key_node, seen)

  def _mark_seen(self, key: str, node: cst.CSTNode, seen: Set[str]) -> None:
    if key not in seen:
      seen.add(key)
      return
    if self.strict:
      raise self.locator.error(GrammarError, f"'{key}' is specified more than once", node)
    span = self.locator.span(node)
    where = f"{span}: " if span else ""
    self.warnings.append(f"{where}'{key}' is specified more than once; the last value wins")


_PREFIX = "pyclass("
_OPENERS = "([{"
_CLOSERS = ")]}"


def _split_arguments(text: str) -> List[Tuple[int, int, str]]:
  """
  Splits `text` at its top-level commas.

  Returns:
      List[Tuple[int, int, str]]: ``(line, column, source)`` of each element,
      where line is 1-based and column 0-based within `text`.

  Raises:
      GrammarError: If `text` cannot be tokenized.
  """
  lines = io.StringIO(text).readlines()
  starts = [0]
  for line in lines:
    starts.append(starts[-1] + len(line))

  # Tokenized inside parentheses so line breaks never start a new statement.
  cuts: List[Tuple[int, int]] = []
  depth = 0
  try:
    for tok in tokenize.generate_tokens(io.StringIO(f"({text})").readline):
      if tok.type != tokenize.OP:
        continue
      if tok.string in _OPENERS:
        depth += 1
      elif tok.string in _CLOSERS:
        depth -= 1
      elif tok.string == "," and depth == 1:
        row, col = tok.start
        cuts.append((row, col - 1 if row == 1 else col))
  except (tokenize.TokenError, SyntaxError) as e:
    raise GrammarError(f"failed to parse arguments: {e}") from e

  elements = []
  line, col, offset = 1, 0, 0
  for cut_line, cut_col in cuts:
    end = starts[cut_line - 1] + cut_col
    elements.append((line, col, text[offset:end]))
    line, col, offset = cut_line, cut_col + 1, end + 1
  elements.append((line, col, text[offset:]))
  return elements


def _shift(rng: CodeRange, line: int, col: int) -> CodeRange:
  def move(pos: CodePosition) -> CodePosition:
    if pos.line == 1:
      return CodePosition(line, max(pos.column - len(_PREFIX) + col, 0))
    return CodePosition(pos.line + line - 1, pos.column)

  return CodeRange(move(rng.start), move(rng.end))


def parse_class_args(text: str, strict: bool = False) -> PyClassArgs:
  """
  Parses a textual argument list, e.g. ``'gc, name = "Foo"'``.

  Each top-level element is parsed on its own, so flags may follow keys
  (``'name = "Foo", gc'``), which decorator call syntax itself forbids.
  Spans in raised errors refer to positions within `text`.

  Args:
      text: The comma separated argument list, without the surrounding call.
      strict: Treat re-specified flags/keys as errors.

  Returns:
      PyClassArgs: The configuration record.

  Raises:
      GrammarError: If the text does not parse or contains invalid arguments.
  """
  if not text.strip():
    return ClassArgsParser(strict=strict).parse([])

  elements = _split_arguments(text)
  # A single trailing comma is allowed, as in a call.
  if len(elements) > 1 and not elements[-1][2].strip():
    elements.pop()

  args: List[cst.Arg] = []
  positions: Dict[cst.CSTNode, CodeRange] = {}
  for line, col, source in elements:
    if not source.strip():
      raise GrammarError("failed to parse arguments: empty argument")
    try:
      module = cst.parse_module(f"{_PREFIX}{source})\n")
    except cst.ParserSyntaxError as e:
      raise GrammarError(f"failed to parse arguments: {e.message}") from e

    wrapper = MetadataWrapper(module)
    for node, rng in wrapper.resolve(PositionProvider).items():
      positions[node] = _shift(rng, line, col)
    call = wrapper.module.body[0].body[0].value
    args.extend(call.args)

  return ClassArgsParser(Locator(positions), strict=strict).parse(args)
