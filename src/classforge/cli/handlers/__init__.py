from .generate import handle_generate, _generate_single_file, _print_summary
from .inspect import handle_inspect

__all__ = [
  "_generate_single_file",
  "_print_summary",
  "handle_generate",
  "handle_inspect",
]
