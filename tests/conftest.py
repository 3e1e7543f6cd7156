"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- An engine factory and a loader that executes generated code as a module.
- Global registry isolation so collection points do not leak between tests.
"""

import io
import sys
import types
from pathlib import Path
from typing import Callable, List

import pytest
from rich.console import Console

# Add src to path so we can import 'classforge' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from classforge.config import RuntimeConfig  # noqa: E402
from classforge.core.engine import BindingEngine  # noqa: E402
from classforge.runtime.inventory import get_inventory  # noqa: E402
from classforge.utils.console import reset_console, set_console  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_inventory():
  """
  Ensures collection points registered by generated modules in one test do
  not collide with those of the next.
  """
  get_inventory().clear()
  yield
  get_inventory().clear()


@pytest.fixture
def make_engine() -> Callable[..., BindingEngine]:
  """Builds an engine from explicit settings, ignoring any pyproject.toml."""

  def _make(**settings) -> BindingEngine:
    return BindingEngine(config=RuntimeConfig(**settings))

  return _make


@pytest.fixture
def load_generated():
  """
  Executes generated source as a fresh module registered in sys.modules.

  Yields a loader `(code, name="generated_mod") -> module`. Registered modules
  are removed on teardown.
  """
  loaded: List[str] = []

  def _load(code: str, name: str = "generated_mod") -> types.ModuleType:
    module = types.ModuleType(name)
    sys.modules[name] = module
    loaded.append(name)
    exec(compile(code, f"<{name}>", "exec"), module.__dict__)
    return module

  yield _load

  for name in loaded:
    sys.modules.pop(name, None)


@pytest.fixture
def recorded_console():
  """Routes classforge logging into an in-memory console; yields the buffer."""
  buffer = io.StringIO()
  set_console(Console(file=buffer, width=200, color_system=None))
  yield buffer
  reset_console()
