"""
classforge Package.

An attribute-driven binding generator. Classes decorated with ``@pyclass(...)``
are rewritten into classes followed by a statically resolved type descriptor
that lets `classforge.runtime` manage their instances.

Usage
-----

Simple String Generation
^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import classforge
    code = '''
    @pyclass(name="Counter", freelist=16)
    class Counter:
        value: Annotated[int, prop(get, set)] = 0
    '''
    print(classforge.generate(code))

Advanced Usage (Engine)
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from classforge import BindingEngine, RuntimeConfig

    engine = BindingEngine(config=RuntimeConfig(methods_type="inventory", strict_mode=True))
    res = engine.run(code)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional

from classforge.config import RuntimeConfig
from classforge.core.args import PyClassArgs, parse_class_args
from classforge.core.descriptor import TypeDescriptor
from classforge.core.diagnostics import BindingError
from classforge.core.engine import BindingEngine, GenerationResult
from classforge.enums import MethodsType

__version__ = "0.3.0"


def generate(
  code: str,
  methods_type: Optional[str] = None,
  strict: bool = False,
  config: Optional[RuntimeConfig] = None,
) -> str:
  """
  Generates bindings for a string of Python source.

  Convenience wrapper around `BindingEngine`. Failed declarations are kept
  inside escape-hatch comments; use the engine directly to inspect errors.

  Args:
      code (str): Source containing ``@pyclass`` declarations.
      methods_type (str, optional): "specialization" (default) or "inventory".
      strict (bool): Treat re-specified flags/keys as errors.
      config (RuntimeConfig, optional): Full configuration; overrides the other arguments.

  Returns:
      str: The generated source code.
  """
  if config is None:
    config = RuntimeConfig(methods_type=methods_type or MethodsType.SPECIALIZATION, strict_mode=strict)
  engine = BindingEngine(config=config)
  result = engine.run(code)
  return result.code


__all__ = [
  "BindingEngine",
  "BindingError",
  "GenerationResult",
  "PyClassArgs",
  "RuntimeConfig",
  "TypeDescriptor",
  "generate",
  "parse_class_args",
  "__version__",
]
