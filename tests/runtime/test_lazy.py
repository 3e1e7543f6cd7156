"""
Tests for LazyStaticType.
"""

import threading
import time

from classforge.runtime.lazy import LazyStaticType


def test_initializer_runs_once():
  calls = []
  lazy = LazyStaticType()

  def init():
    calls.append(1)
    return object()

  first = lazy.get_or_init(init)
  assert lazy.get_or_init(init) is first
  assert calls == [1]
  assert lazy.initialized


def test_concurrent_readers_share_one_value():
  calls = []
  lazy = LazyStaticType()
  barrier = threading.Barrier(6)
  results = []

  def init():
    calls.append(1)
    time.sleep(0.01)
    return object()

  def reader():
    barrier.wait()
    results.append(lazy.get_or_init(init))

  threads = [threading.Thread(target=reader) for _ in range(6)]
  for t in threads:
    t.start()
  for t in threads:
    t.join()

  assert calls == [1]
  assert len(results) == 6
  assert all(r is results[0] for r in results)


def test_failed_initializer_can_be_retried():
  lazy = LazyStaticType()

  def broken():
    raise TypeError("not yet")

  try:
    lazy.get_or_init(broken)
  except TypeError:
    pass
  assert not lazy.initialized
  assert lazy.get_or_init(lambda: "ready") == "ready"
