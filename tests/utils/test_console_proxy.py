"""
Tests for the Console Utilities.

Verifies:
1. The proxy forwards to the injected backend.
2. Log records follow the backend.
3. Theme styles resolve on injected consoles.
"""

from rich.console import Console

from classforge.utils.console import (
  console,
  log_error,
  log_info,
  log_success,
  log_warning,
  reset_console,
  set_console,
)


def test_custom_console_injection():
  capture = Console(record=True, file=None, width=200)
  set_console(capture)
  try:
    log_info("Captured [path]some/file.py[/path]")
    log_success("Done")
    log_warning("1:3: careful [not markup]")
    log_error("1:4: broken [x]")
    output = capture.export_text()
  finally:
    reset_console()

  assert "Captured some/file.py" in output
  assert "Done" in output
  assert "careful [not markup]" in output
  assert "broken [x]" in output


def test_reset_creates_fresh_backend():
  temp = Console()
  set_console(temp)
  assert console.backend is temp

  reset_console()
  assert console.backend is not temp
  assert isinstance(console.backend, Console)


def test_proxy_getattr_delegation():
  width = console.width
  assert isinstance(width, int)
  assert width > 0
