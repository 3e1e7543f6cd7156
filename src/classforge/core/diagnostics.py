"""
Span-located Diagnostics.

Every failure raised while generating a binding is a `BindingError` attached
to the source range of the node that caused it. Positions come from libcst's
`PositionProvider`, looked up through a `Locator`.
"""

from typing import Mapping, Optional

import libcst as cst
from libcst.metadata import CodeRange
from pydantic import BaseModel, ConfigDict


class Span(BaseModel):
  """
  A source range. Lines are 1-based, columns 0-based (libcst convention).
  """

  model_config = ConfigDict(frozen=True)

  start_line: int
  start_col: int
  end_line: int
  end_col: int

  def __str__(self) -> str:
    return f"{self.start_line}:{self.start_col}"


class BindingError(Exception):
  """
  Root of all generation-time diagnostics.

  Attributes:
      message (str): Human readable description.
      span (Optional[Span]): Location of the offending node, if known.
  """

  def __init__(self, message: str, span: Optional[Span] = None):
    super().__init__(message)
    self.message = message
    self.span = span

  def __str__(self) -> str:
    if self.span is None:
      return self.message
    return f"{self.span}: {self.message}"


class GrammarError(BindingError):
  """Unrecognized flag/key, malformed argument, or wrong literal kind."""


class DeprecatedFormError(GrammarError):
  """A form that used to be accepted; the message carries the correction."""


class StructuralError(BindingError):
  """Declaration shape the generator cannot represent."""


class CapabilityError(BindingError):
  """A flag requires a capability the declaration does not implement."""


class Locator:
  """
  Resolves CST nodes to `Span`s.

  Args:
      positions: Mapping produced by `MetadataWrapper.resolve(PositionProvider)`,
          or any mapping of nodes to `CodeRange`s.
  """

  def __init__(self, positions: Optional[Mapping[cst.CSTNode, CodeRange]] = None):
    self._positions = positions or {}

  def span(self, node: Optional[cst.CSTNode]) -> Optional[Span]:
    if node is None:
      return None
    rng = self._positions.get(node)
    if rng is None:
      return None
    return Span(
      start_line=rng.start.line,
      start_col=rng.start.column,
      end_line=rng.end.line,
      end_col=rng.end.column,
    )

  def error(self, exc_type: type, message: str, node: Optional[cst.CSTNode]) -> BindingError:
    """Builds (does not raise) an error of `exc_type` located at `node`."""
    return exc_type(message, self.span(node))
