"""
Runtime Configuration Store.

Holds the build-wide settings of the generator: which method registration
strategy is used, which decorator and marker names are recognized, and how
strictly the configuration grammar is enforced.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, Field, field_validator

from classforge.enums import MethodsType

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the binding engine.
  """

  methods_type: MethodsType = Field(
    MethodsType.SPECIALIZATION,
    description="How methods from several declaration sites are aggregated.",
  )
  decorator: str = Field("pyclass", description="Decorator that marks a binding declaration.")
  methods_decorator: str = Field("pymethods", description="Decorator that marks an extra method block.")
  marker: str = Field("prop", description="Member marker accepting get/set inside Annotated metadata.")
  text_signature_decorator: str = Field("text_signature", description="Decorator carrying a text signature.")
  runtime_alias: str = Field("_classforge", description="Local alias the generated code imports the runtime as.")
  strict_mode: bool = Field(False, description="If True, re-specified flags/keys are errors instead of warnings.")

  @field_validator("decorator", "methods_decorator", "marker", "text_signature_decorator", "runtime_alias")
  @classmethod
  def validate_identifier(cls, v: str) -> str:
    """
    Ensures configured names are usable as Python identifiers.

    Args:
        v (str): The configured name.

    Returns:
        str: The stripped name.

    Raises:
        ValueError: If the name is not an identifier.
    """
    v_clean = v.strip()
    if not v_clean.isidentifier():
      raise ValueError(f"Not a valid identifier: '{v_clean}'")
    return v_clean

  @classmethod
  def load(
    cls,
    methods_type: Optional[str] = None,
    strict_mode: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        methods_type (Optional[str]): Override for the registration strategy.
        strict_mode (Optional[bool]): Override for strict mode setting.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)

    settings: Dict[str, Any] = dict(toml_config)
    if methods_type is not None:
      settings["methods_type"] = methods_type
    if strict_mode is not None:
      settings["strict_mode"] = strict_mode

    return cls.model_validate(settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory definition was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      with open(toml_path, "rb") as f:
        data = tomllib.load(f)

      tool_section = data.get("tool", {})
      return tool_section.get("classforge", {}), parent

  return {}, None
