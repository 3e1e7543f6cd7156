"""
Tests for the BindingEngine pipeline.

Verifies:
1.  Declarations are replaced by the stripped class plus the generated binding.
2.  The runtime import is injected once, after docstrings and future imports.
3.  Failing declarations are preserved in escape-hatch markers with located errors,
    and do not stop the other declarations.
4.  Method blocks are attached per registration strategy.
"""

import textwrap

from classforge.core.escape_hatch import EscapeHatch
from classforge.core.tracer import TraceEventType
from classforge.enums import MethodsType

COUNTER = textwrap.dedent(
  '''
  """Counters."""
  from typing import Annotated


  @pyclass(freelist = 4)
  @text_signature("(start=0)")
  class Counter:
      """Counts."""

      value: Annotated[int, prop(get, set)] = 0

      def __init__(self, start=0):
          self.value = start

      def incr(self, by=1):
          self.value += by
          return self.value
  '''
)


def test_declaration_is_bound(make_engine):
  result = make_engine().run(COUNTER)

  assert result.success
  assert result.errors == []
  code = result.code
  assert "@pyclass" not in code
  assert "@text_signature" not in code
  assert "value: int = 0" in code
  assert "class CounterClassImpl(_classforge.PyClassImpl):" in code
  assert "ALLOC = _classforge.FreeListAlloc(4)" in code
  assert "_classforge.register(Counter, CounterClassImpl)" in code
  assert "_classforge.into_object.register(Counter)(CounterClassImpl.into_object)" in code
  assert [d.ident for d in result.descriptors] == ["Counter"]


def test_runtime_import_follows_docstring(make_engine):
  code = make_engine().run(COUNTER).code
  lines = code.lstrip("\n").splitlines()
  assert lines[0] == '"""Counters."""'
  assert lines[1] == "import classforge.runtime as _classforge"
  assert code.count("import classforge.runtime as _classforge") == 1


def test_runtime_import_follows_future_imports(make_engine):
  src = "from __future__ import annotations\n\n@pyclass\nclass A:\n    pass\n"
  lines = make_engine().run(src).code.splitlines()
  assert lines[0] == "from __future__ import annotations"
  assert lines[1] == "import classforge.runtime as _classforge"


def test_custom_runtime_alias(make_engine):
  code = make_engine(runtime_alias="rt").run("@pyclass\nclass A:\n    pass\n").code
  assert "import classforge.runtime as rt" in code
  assert "class AClassImpl(rt.PyClassImpl):" in code


def test_module_without_declarations_is_untouched(make_engine):
  src = "class Plain:\n    x = 1\n"
  result = make_engine().run(src)
  assert result.success
  assert result.code == src
  assert result.descriptors == []


def test_parse_error(make_engine):
  result = make_engine().run("class (:\n")
  assert not result.success
  assert result.errors[0].startswith("Parse Error:")
  assert result.code == "class (:\n"


def test_failed_declaration_is_escaped(make_engine):
  src = textwrap.dedent(
    """
    @pyclass(bogus)
    class Broken:
        pass


    @pyclass
    class Fine:
        pass
    """
  )
  result = make_engine().run(src)

  assert not result.success
  assert result.errors == ["2:9: expected one of gc/weakref/subclass/dict/unsendable"]
  assert EscapeHatch.START_MARKER in result.code
  assert EscapeHatch.END_MARKER in result.code
  assert "# Reason: 2:9: expected one of gc/weakref/subclass/dict/unsendable" in result.code
  # The broken declaration is kept verbatim.
  assert "@pyclass(bogus)\nclass Broken:" in result.code
  assert "BrokenClassImpl" not in result.code
  # The other declaration is still bound.
  assert "class FineClassImpl(_classforge.PyClassImpl):" in result.code
  assert [d.ident for d in result.descriptors] == ["Fine"]


def test_deprecated_name_form(make_engine):
  result = make_engine().run("@pyclass(name = Foo)\nclass A:\n    pass\n")
  assert result.errors == ['1:16: since classforge 0.2 a pyclass name should be in double-quotes, e.g. "Foo"']


def test_gc_capability_error_points_at_decorator(make_engine):
  result = make_engine().run("@pyclass(gc)\nclass Node:\n    pass\n")
  assert result.errors == [
    "1:0: `gc` requires 'Node' to implement the GC protocol (missing __traverse__, __clear__)"
  ]


def test_repeated_flags_warn(make_engine, recorded_console):
  result = make_engine().run("@pyclass(gc, dict, dict)\nclass A:\n    def __traverse__(self, v): ...\n    def __clear__(self): ...\n")
  assert result.success
  assert result.warnings == ["1:19: 'dict' is specified more than once; the last value wins"]
  assert "'dict' is specified more than once" in recorded_console.getvalue()


def test_repeated_flags_fail_in_strict_mode(make_engine):
  result = make_engine(strict_mode=True).run("@pyclass(dict, dict)\nclass A:\n    pass\n")
  assert result.errors == ["1:15: 'dict' is specified more than once"]


def test_duplicate_declaration(make_engine):
  result = make_engine().run("@pyclass\nclass A:\n    pass\n\n@pyclass\nclass A:\n    pass\n")
  assert result.errors == ["6:6: 'A' is declared more than once in this module"]
  assert len(result.descriptors) == 1


def test_nested_declaration(make_engine):
  src = "def factory():\n    @pyclass\n    class Inner:\n        pass\n"
  result = make_engine().run(src)
  assert result.errors == ["3:10: @pyclass classes must be declared at module level"]


def test_custom_decorator_names(make_engine):
  src = "@binding(gc)\nclass A:\n    x: Annotated[int, expose(get)] = 0\n    def __traverse__(self, v): ...\n    def __clear__(self): ...\n"
  result = make_engine(decorator="binding", marker="expose").run(src)
  assert result.success
  assert "x: int = 0" in result.code
  assert "member_getter('x')" in result.code


# --- method blocks ---

BLOCKS = textwrap.dedent(
  """
  @pyclass
  class Counter:
      def incr(self): ...


  @pymethods(Counter)
  class CounterExtra:
      def decr(self): ...
  """
)


def test_specialization_aggregates_blocks(make_engine):
  result = make_engine().run(BLOCKS)
  assert result.success
  code = result.code
  assert "@pymethods" not in code
  assert "vars(Counter)['incr']" in code
  assert "vars(CounterExtra)['decr']" in code
  assert "inventory" not in code


def test_specialization_rejects_foreign_blocks(make_engine):
  src = "import other\n\n@pymethods(other.Elsewhere)\nclass More:\n    def f(self): ...\n"
  result = make_engine().run(src)
  assert result.errors == [
    "3:11: @pymethods target 'Elsewhere' is not declared in this module; "
    'blocks in other modules require methods_type = "inventory"'
  ]
  assert EscapeHatch.START_MARKER in result.code


def test_block_without_target(make_engine):
  result = make_engine().run("@pymethods\nclass More:\n    pass\n")
  assert result.errors == ["1:0: expected a single target type, e.g. @pymethods(MyClass)"]


def test_inventory_submits_at_every_site(make_engine):
  result = make_engine(methods_type=MethodsType.INVENTORY).run(BLOCKS)
  assert result.success
  code = result.code
  assert "@_classforge.inventory.collect\nclass PyMethodsInventoryForCounter(_classforge.PyMethodsInventory):" in code
  assert "for item in PyMethodsInventoryForCounter.items():" in code
  assert (
    "_classforge.inventory.submit('PyMethodsInventoryForCounter', "
    "[_classforge.MethodDef('incr', vars(Counter)['incr'], 'fn', '')])"
  ) in code
  assert (
    "_classforge.inventory.submit('PyMethodsInventoryForCounter', "
    "[_classforge.MethodDef('decr', vars(CounterExtra)['decr'], 'fn', '')])"
  ) in code


def test_inventory_accepts_foreign_blocks(make_engine):
  src = "import other\n\n@pymethods(other.Elsewhere)\nclass More:\n    def f(self): ...\n"
  result = make_engine(methods_type=MethodsType.INVENTORY).run(src)
  assert result.success
  assert result.code.splitlines()[0] == "import classforge.runtime as _classforge"
  assert "_classforge.inventory.submit('PyMethodsInventoryForElsewhere'" in result.code
  assert result.descriptors == []


def test_inventory_rejects_foreign_protocol_methods(make_engine):
  src = "import other\n\n@pymethods(other.Elsewhere)\nclass More:\n    def __len__(self): ...\n"
  result = make_engine(methods_type=MethodsType.INVENTORY).run(src)
  assert result.errors == ["4:6: '__len__' of 'Elsewhere' must be declared in the module that declares 'Elsewhere'"]


# --- tracing ---


def test_trace_records_phases_and_outcomes(make_engine):
  result = make_engine().run(BLOCKS)
  events = result.trace_events
  phases = [e["description"] for e in events if e["type"] == TraceEventType.PHASE_START]
  assert phases == ["Binding Pipeline", "Parsing", "Scanning", "Generation", "Rewriting"]
  outcomes = [e["metadata"]["outcome"] for e in events if e["type"] == TraceEventType.DECLARATION]
  assert outcomes == ["bound", "attached"]
  assert any(e["type"] == TraceEventType.BINDING_EMITTED for e in events)
  assert any(e["type"] == TraceEventType.IMPORT_ACTION for e in events)
