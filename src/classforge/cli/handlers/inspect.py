"""
Inspect Command Handler.

Implements `classforge inspect`: runs generation on one file without writing
anything and renders the resolved descriptors as tables.
"""

from pathlib import Path
from typing import Optional

from rich.table import Table

from classforge.config import RuntimeConfig
from classforge.core.descriptor import TypeDescriptor
from classforge.core.engine import BindingEngine
from classforge.utils.console import console, log_error, log_warning


def handle_inspect(input_path: Path, methods_type: Optional[str] = None) -> int:
  """
  Handles the 'inspect' command execution.

  Args:
      input_path: Source file.
      methods_type: Override for the registration strategy.

  Returns:
      int: Exit code (0 if every declaration resolved).
  """
  if not input_path.is_file():
    log_error(f"Input not found: {input_path}")
    return 1

  config = RuntimeConfig.load(methods_type=methods_type, search_path=input_path.parent)
  result = BindingEngine(config=config).run(input_path.read_text(encoding="utf-8"))

  if not result.descriptors and result.success:
    log_warning(f"No @{config.decorator} declarations found in {input_path}")

  for desc in result.descriptors:
    console.print(_descriptor_table(desc))

  for error in result.errors:
    log_error(f"{input_path}:{error}")
  return 0 if result.success else 1


def _descriptor_table(desc: TypeDescriptor) -> Table:
  table = Table(title=f"{desc.ident} -> {desc.name}")
  table.add_column("Field", style="cyan")
  table.add_column("Value")

  table.add_row("module", str(desc.module))
  table.add_row("base", desc.base)
  table.add_row("flags", ", ".join(f for f, on in _flags(desc) if on) or "-")
  table.add_row("dict / weakref", f"{desc.dict_slot.value} / {desc.weakref_slot.value}")
  alloc = desc.allocator.value if desc.freelist is None else f"{desc.allocator.value}({desc.freelist})"
  table.add_row("allocator", alloc)
  table.add_row("thread checker", desc.thread_checker.value)
  table.add_row("methods", f"{desc.methods_type.value} ({sum(len(s.methods) for s in desc.method_sites)})")
  table.add_row("properties", ", ".join(f"{p.name}:{p.fn_type.value}" for p in desc.descriptors) or "-")
  table.add_row("protocol slots", ", ".join(f"{m.dunder}->{m.slot}" for m in desc.protocol_slots) or "-")
  table.add_row("protocol methods", ", ".join(m.dunder for m in desc.protocol_methods) or "-")
  return table


def _flags(desc: TypeDescriptor):
  return [
    ("gc", desc.is_gc),
    ("subclass", desc.is_basetype),
    ("extends", desc.is_subclass),
    ("buffer", desc.has_buffer),
    ("into_object", desc.into_object),
  ]
