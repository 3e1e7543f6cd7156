"""
Tests for the generation trace logger.
"""

import json

from classforge.core.tracer import TraceEventType, TraceLogger, get_tracer, reset_tracer


def test_phases_nest():
  tracer = TraceLogger()
  outer = tracer.start_phase("Outer", "detail")
  inner = tracer.start_phase("Inner")
  tracer.end_phase()
  tracer.end_phase()

  events = tracer.export()
  assert [e["type"] for e in events] == [
    TraceEventType.PHASE_START,
    TraceEventType.PHASE_START,
    TraceEventType.PHASE_END,
    TraceEventType.PHASE_END,
  ]
  assert events[0]["parent_id"] is None
  assert events[0]["metadata"] == {"detail": "detail"}
  assert events[1]["parent_id"] == outer
  assert events[2]["parent_id"] == inner


def test_end_without_phase_is_ignored():
  tracer = TraceLogger()
  tracer.end_phase()
  assert tracer.export() == []


def test_events_attach_to_active_phase():
  tracer = TraceLogger()
  phase = tracer.start_phase("Generation")
  tracer.log_declaration("Counter", "failed", "1:9: bad flag")
  tracer.log_warning("1:3: 'gc' is specified more than once; the last value wins")
  tracer.log_emission("Counter", "class Counter: ...", "class CounterClassImpl: ...")
  tracer.log_import("import classforge.runtime as _classforge")

  events = tracer.export()[1:]
  assert all(e["parent_id"] == phase for e in events)
  assert events[0]["metadata"] == {"outcome": "failed", "detail": "1:9: bad flag"}
  assert events[1]["type"] == TraceEventType.ANALYSIS_WARNING
  assert events[2]["metadata"]["after"] == "class CounterClassImpl: ..."
  assert events[3]["metadata"] == {"statement": "import classforge.runtime as _classforge"}


def test_export_is_json_serializable():
  tracer = TraceLogger()
  tracer.start_phase("Parsing")
  tracer.end_phase()
  decoded = json.loads(json.dumps(tracer.export()))
  assert decoded[0]["type"] == "phase_start"


def test_reset_replaces_global_tracer():
  before = get_tracer()
  before.start_phase("Stale")
  reset_tracer()
  assert get_tracer() is not before
  assert get_tracer().export() == []
