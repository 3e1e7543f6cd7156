"""
Orchestration Engine for Binding Generation.

This module provides the `BindingEngine`, the driver that turns a module of
binding declarations into a module of generated bindings.

The pipeline consists of:

1.  **Parsing**: the source is parsed into a LibCST tree and wrapped with
    position metadata so diagnostics carry source spans.
2.  **Scanning**: `DeclarationScanner` collects every ``@pyclass`` class and
    every ``@pymethods(Target)`` block.
3.  **Generation**: per declaration, the configuration record is parsed, the
    member descriptors are extracted and the `TypeDescriptor` is resolved and
    rendered. Method blocks are attached according to the registration
    strategy. A failing declaration is preserved inside escape-hatch markers
    and does not stop the others.
4.  **Rewriting**: `BindingRewriter` replaces each declaration with its
    stripped class followed by the generated statements.
5.  **Import Injection**: the runtime import is added when anything was emitted.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Union

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider
from pydantic import BaseModel, Field

from classforge.config import RuntimeConfig
from classforge.core.args import ClassArgsParser, PyClassArgs
from classforge.core.descriptor import TypeDescriptor
from classforge.core.diagnostics import BindingError, GrammarError, Locator, StructuralError
from classforge.core.emitter import BindingEmitter
from classforge.core.escape_hatch import EscapeHatch
from classforge.core.fields import extract_members
from classforge.core.imports import inject_runtime_import
from classforge.core.method import collect_site
from classforge.core.pyclass import build_py_class
from classforge.core.registration import strategy_for
from classforge.core.scanners import DeclarationScanner, MethodsBlock, find_decorator, strip_decorators
from classforge.core.tracer import get_tracer, reset_tracer
from classforge.utils.console import log_warning

Replacement = Callable[[cst.ClassDef], Union[cst.BaseStatement, cst.FlattenSentinel]]


class GenerationResult(BaseModel):
  """
  Structured result of generating one module.
  """

  code: str = Field(default="", description="The generated source code.")
  errors: List[str] = Field(default_factory=list, description="Located diagnostics of failed declarations.")
  warnings: List[str] = Field(default_factory=list, description="Located warnings, e.g. re-specified flags.")
  success: bool = Field(default=True, description="True if every declaration was bound.")
  descriptors: List[TypeDescriptor] = Field(default_factory=list, description="Artifacts of bound declarations.")
  trace_events: List[Dict[str, Any]] = Field(default_factory=list, description="Execution trace log data.")

  @property
  def has_errors(self) -> bool:
    return len(self.errors) > 0


class BindingRewriter(cst.CSTTransformer):
  """
  Applies precomputed replacements to class definitions.

  Args:
      replacements: Builders keyed by the original class node. Each receives
          the updated node and returns what replaces it.
  """

  def __init__(self, replacements: Dict[cst.ClassDef, Replacement]):
    super().__init__()
    self.replacements = replacements

  def leave_ClassDef(
    self, original_node: cst.ClassDef, updated_node: cst.ClassDef
  ) -> Union[cst.BaseStatement, cst.FlattenSentinel]:
    build = self.replacements.get(original_node)
    if build is None:
      return updated_node
    return build(updated_node)


class BindingEngine:
  """
  The main generation unit.

  Args:
      config: Build configuration. Loaded from ``pyproject.toml`` if omitted.
      methods_type: Override for the registration strategy when `config` is omitted.
      strict_mode: Override for strict mode when `config` is omitted.
  """

  def __init__(
    self,
    config: Optional[RuntimeConfig] = None,
    methods_type: Optional[str] = None,
    strict_mode: Optional[bool] = None,
  ):
    self.config = config or RuntimeConfig.load(methods_type=methods_type, strict_mode=strict_mode)
    self.strategy = strategy_for(self.config.methods_type)
    self.emitter = BindingEmitter(self.config.runtime_alias)

  def parse(self, code: str) -> cst.Module:
    """
    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return cst.parse_module(code)

  def run(self, code: str) -> GenerationResult:
    """
    Executes the full generation pipeline.

    Args:
        code: Source containing binding declarations.

    Returns:
        GenerationResult: Generated code, diagnostics and descriptors.
    """
    reset_tracer()
    tracer = get_tracer()
    tracer.start_phase("Binding Pipeline", f"methods_type={self.config.methods_type.value}")

    tracer.start_phase("Parsing")
    try:
      tree = self.parse(code)
    except cst.ParserSyntaxError as e:
      tracer.end_phase()
      tracer.end_phase()
      return GenerationResult(
        code=code,
        errors=[f"Parse Error: {e.message} (line {e.raw_line}, column {e.raw_column})"],
        success=False,
        trace_events=tracer.export(),
      )
    wrapper = MetadataWrapper(tree)
    locator = Locator(wrapper.resolve(PositionProvider))
    tree = wrapper.module
    tracer.end_phase()

    tracer.start_phase("Scanning")
    scanner = DeclarationScanner(self.config.decorator, self.config.methods_decorator)
    tree.visit(scanner)
    top_level: Set[cst.CSTNode] = set(tree.body)
    tracer.end_phase()

    session = _Session(self, locator, top_level, scanner)
    tracer.start_phase("Generation")
    session.generate()
    tracer.end_phase()

    tracer.start_phase("Rewriting")
    tree = tree.visit(BindingRewriter(session.replacements))
    if session.emitted:
      tree = inject_runtime_import(tree, self.config.runtime_alias)
      tracer.log_import(f"import classforge.runtime as {self.config.runtime_alias}")
    tracer.end_phase()

    tracer.end_phase()
    return GenerationResult(
      code=tree.code,
      errors=session.errors,
      warnings=session.warnings,
      success=not session.errors,
      descriptors=session.descriptors,
      trace_events=tracer.export(),
    )


class _Session:
  """Per-run state of the generation phase."""

  def __init__(self, engine: BindingEngine, locator: Locator, top_level: Set[cst.CSTNode], scanner: DeclarationScanner):
    self.engine = engine
    self.config = engine.config
    self.strategy = engine.strategy
    self.emitter = engine.emitter
    self.locator = locator
    self.top_level = top_level
    self.scanner = scanner
    self.blocks_by_target = scanner.blocks_by_target()
    self.declared = {node.name.value for node in scanner.declarations}

    self.replacements: Dict[cst.ClassDef, Replacement] = {}
    self.errors: List[str] = []
    self.warnings: List[str] = []
    self.descriptors: List[TypeDescriptor] = []
    self.emitted = False

  def generate(self) -> None:
    seen: Set[str] = set()
    for node in self.scanner.declarations:
      ident = node.name.value
      try:
        self._check_top_level(node, "@pyclass")
        if ident in seen:
          raise self.locator.error(StructuralError, f"'{ident}' is declared more than once in this module", node.name)
        seen.add(ident)
        desc = self._build(node)
      except BindingError as e:
        self._fail(node, ident, e)
        continue
      self._bind(node, desc)

    for block in self.scanner.methods_blocks:
      try:
        self._attach(block)
      except BindingError as e:
        self._fail(block.node, block.node.name.value, e)

  def _check_top_level(self, node: cst.ClassDef, what: str) -> None:
    if node not in self.top_level:
      raise self.locator.error(StructuralError, f"{what} classes must be declared at module level", node.name)

  def _build(self, node: cst.ClassDef) -> TypeDescriptor:
    decorator = find_decorator(node, self.config.decorator)
    call_args: Sequence[cst.Arg] = ()
    if isinstance(decorator.decorator, cst.Call):
      call_args = decorator.decorator.args

    parser = ClassArgsParser(self.locator, strict=self.config.strict_mode)
    args: PyClassArgs = parser.parse(call_args)
    for warning in parser.warnings:
      self.warnings.append(warning)
      log_warning(warning)
      get_tracer().log_warning(warning)

    blocks = [b.node for b in self.blocks_by_target.get(node.name.value, [])]
    return build_py_class(node, args, blocks, self.config, self.locator, anchor=decorator)

  def _strip(self, node: cst.ClassDef) -> cst.ClassDef:
    stripped, _ = extract_members(node, self.config.marker)
    return strip_decorators(stripped, (self.config.decorator, self.config.text_signature_decorator))

  def _bind(self, node: cst.ClassDef, desc: TypeDescriptor) -> None:
    stmts = self.emitter.emit(desc)

    def replace(updated: cst.ClassDef) -> cst.FlattenSentinel:
      return cst.FlattenSentinel([self._strip(updated), *stmts])

    self.replacements[node] = replace
    self.descriptors.append(desc)
    self.emitted = True

    tracer = get_tracer()
    tracer.log_declaration(desc.ident, "bound", f"{len(desc.method_sites)} method site(s)")
    generated = cst.Module(body=list(stmts)).code
    tracer.log_emission(desc.ident, cst.Module(body=[]).code_for_node(node), generated)

  def _attach(self, block: MethodsBlock) -> None:
    self._check_top_level(block.node, f"@{self.config.methods_decorator}")
    if not block.target:
      raise self.locator.error(
        GrammarError,
        f"expected a single target type, e.g. @{self.config.methods_decorator}(MyClass)",
        block.target_node,
      )

    site = collect_site(block.node)
    if block.target not in self.declared:
      self.strategy.check_foreign_block(block, site, self.locator)

    submission = None
    if self.strategy.submits_at_sites:
      submission = self.emitter.emit_submission(self.strategy.inventory_name(block.target), site)

    methods_decorator = self.config.methods_decorator

    def replace(updated: cst.ClassDef) -> Union[cst.ClassDef, cst.FlattenSentinel]:
      stripped = strip_decorators(updated, (methods_decorator,))
      if submission is None:
        return stripped
      return cst.FlattenSentinel([stripped, submission])

    self.replacements[block.node] = replace
    if submission is not None:
      self.emitted = True
    get_tracer().log_declaration(block.node.name.value, "attached", f"target={block.target}")

  def _fail(self, node: cst.ClassDef, ident: str, error: BindingError) -> None:
    reason = str(error)
    self.errors.append(reason)
    self.replacements[node] = lambda _updated: EscapeHatch.mark_failure(node, reason)
    get_tracer().log_declaration(ident, "failed", reason)
