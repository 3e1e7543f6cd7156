"""
Main Entry Point for the classforge CLI.

This module handles argument parsing and dispatches to the command handlers
defined in `classforge.cli.handlers`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from classforge import __version__
from classforge.cli import handlers
from classforge.enums import MethodsType


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="classforge: attribute-driven binding generator")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)
  methods_choices = [m.value for m in MethodsType]

  # --- Command: GENERATE ---
  cmd_gen = subparsers.add_parser("generate", help="Generate bindings for a Python file or directory")
  cmd_gen.add_argument("path", type=Path, help="Input source file or directory")
  cmd_gen.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_gen.add_argument(
    "--methods-type",
    choices=methods_choices,
    default=None,
    help="Method registration strategy (default: from toml, else specialization)",
  )
  cmd_gen.add_argument(
    "--strict",
    action="store_true",
    default=None,
    help="Reject re-specified flags and keys instead of warning (Overrides config)",
  )
  cmd_gen.add_argument("--json-trace", type=Path, default=None, help="Dump the execution trace to a JSON file.")

  # --- Command: INSPECT ---
  cmd_insp = subparsers.add_parser("inspect", help="Show the resolved descriptors of a file")
  cmd_insp.add_argument("path", type=Path, help="Input source file")
  cmd_insp.add_argument("--methods-type", choices=methods_choices, default=None)

  args = parser.parse_args(argv)

  if args.command == "generate":
    return handlers.handle_generate(args.path, args.out, args.methods_type, args.strict, args.json_trace)

  elif args.command == "inspect":
    return handlers.handle_inspect(args.path, args.methods_type)

  return 0


if __name__ == "__main__":
  sys.exit(main())
