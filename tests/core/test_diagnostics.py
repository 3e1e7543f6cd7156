"""
Tests for span-located diagnostics.
"""

import libcst as cst
from libcst.metadata import CodePosition, CodeRange, MetadataWrapper, PositionProvider

from classforge.core.diagnostics import (
  BindingError,
  CapabilityError,
  DeprecatedFormError,
  GrammarError,
  Locator,
  Span,
  StructuralError,
)


def test_error_hierarchy():
  assert issubclass(DeprecatedFormError, GrammarError)
  for cls in (GrammarError, StructuralError, CapabilityError):
    assert issubclass(cls, BindingError)


def test_error_without_span():
  err = GrammarError("bad")
  assert err.span is None
  assert str(err) == "bad"


def test_locator_resolves_nodes():
  wrapper = MetadataWrapper(cst.parse_module("x = 1\nclass Foo:\n    pass\n"))
  locator = Locator(wrapper.resolve(PositionProvider))
  name = wrapper.module.body[1].name

  span = locator.span(name)
  assert span == Span(start_line=2, start_col=6, end_line=2, end_col=9)
  err = locator.error(StructuralError, "nope", name)
  assert isinstance(err, StructuralError)
  assert str(err) == "2:6: nope"


def test_locator_accepts_plain_mappings():
  node = cst.Name("gc")
  rng = CodeRange(CodePosition(2, 2), CodePosition(2, 4))
  assert Locator({node: rng}).span(node) == Span(start_line=2, start_col=2, end_line=2, end_col=4)


def test_unknown_nodes_have_no_span():
  locator = Locator()
  assert locator.span(cst.Name("x")) is None
  assert locator.span(None) is None
  assert str(locator.error(GrammarError, "bad", cst.Name("x"))) == "bad"
