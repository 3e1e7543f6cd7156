"""
Generate Command Handler.

This module implements the `classforge generate` command. It orchestrates:
1. Configuration loading (``[tool.classforge]`` plus CLI overrides).
2. Binding generation via the Engine, per file.
3. Output writing and trace logging.
4. A summary table of failed declarations.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from rich.markup import escape
from rich.table import Table

from classforge.config import RuntimeConfig
from classforge.core.engine import BindingEngine, GenerationResult
from classforge.utils.console import console, log_error, log_info, log_success, log_warning


def handle_generate(
  input_path: Path,
  output_path: Optional[Path],
  methods_type: Optional[str],
  strict: Optional[bool],
  json_trace_path: Optional[Path] = None,
) -> int:
  """
  Handles the 'generate' command execution.

  Args:
      input_path: Source file or directory.
      output_path: Destination file or directory. Prints to stdout for a single file if omitted.
      methods_type: Override for the registration strategy.
      strict: Override for strict mode.
      json_trace_path: Optional path to dump the execution trace JSON.

  Returns:
      int: Exit code (0 for success, 1 if any declaration failed).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  config = RuntimeConfig.load(
    methods_type=methods_type,
    strict_mode=strict,
    search_path=input_path if input_path.is_dir() else input_path.parent,
  )
  results: Dict[str, GenerationResult] = {}

  if input_path.is_file():
    result = _generate_single_file(input_path, output_path, config, json_trace_path)
    results[input_path.name] = result
  else:
    if not output_path:
      log_error("Directory generation requires --out destination directory.")
      return 1

    py_files = sorted(input_path.rglob("*.py"))
    if not py_files:
      log_warning(f"No .py files found in {input_path}")
      return 0

    log_info(f"Processing {len(py_files)} files from {input_path}...")
    for src_file in py_files:
      rel_path = src_file.relative_to(input_path)
      batch_trace = (output_path / rel_path).with_suffix(".trace.json") if json_trace_path else None
      results[str(rel_path)] = _generate_single_file(src_file, output_path / rel_path, config, batch_trace)

  _print_summary(results)
  return 0 if all(r.success for r in results.values()) else 1


def _generate_single_file(
  input_path: Path,
  output_path: Optional[Path],
  config: RuntimeConfig,
  json_trace_path: Optional[Path] = None,
) -> GenerationResult:
  """
  Runs the engine on one file and writes its output.

  Generated code is written even when some declarations failed; the failed
  ones are preserved inside escape-hatch markers.
  """
  try:
    code = input_path.read_text(encoding="utf-8")
  except OSError as e:
    log_error(f"Failed to read {input_path}: {e}")
    return GenerationResult(success=False, errors=[str(e)])

  result = BindingEngine(config=config).run(code)

  if json_trace_path and result.trace_events:
    json_trace_path.parent.mkdir(parents=True, exist_ok=True)
    json_trace_path.write_text(json.dumps(result.trace_events, indent=2), encoding="utf-8")
    log_info(f"Trace saved to [path]{json_trace_path}[/path]")

  for error in result.errors:
    log_error(f"{input_path}:{error}")

  if output_path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.code, encoding="utf-8")
    if result.success:
      log_success(f"Generated: [path]{input_path}[/path] -> [path]{output_path}[/path]")
  else:
    print(result.code, end="")

  return result


def _print_summary(results: Dict[str, GenerationResult]) -> None:
  """
  Renders a summary table of generation results to the console.

  Args:
      results: Dictionary mapping filenames to results.
  """
  total = len(results)
  failures = sum(1 for r in results.values() if not r.success)
  bound = sum(len(r.descriptors) for r in results.values())

  if failures == 0:
    log_success(f"Complete: {bound} binding(s) generated from {total} file(s).")
    return

  table = Table(title="Generation Report")
  table.add_column("File", style="cyan")
  table.add_column("Bound", justify="right")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success:
      continue
    table.add_row(filename, str(len(res.descriptors)), escape("; ".join(res.errors)) or "Unknown Error")

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {total - failures} Passed, {failures} with Issues.")
