"""
Type Descriptor Artifact.

Immutable records produced by the generator. A `TypeDescriptor` is the full,
statically resolved description of one binding declaration; the emitter
renders it as Python source and tests compare descriptors for equality.
"""

from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from classforge.enums import AllocatorKind, FnType, MethodsType, SlotSource, ThreadCheckerKind


class PropertyDef(BaseModel):
  """A read or write accessor generated from a marked member."""

  model_config = ConfigDict(frozen=True)

  name: str
  fn_type: FnType
  doc: str = ""


class MethodDef(BaseModel):
  """
  One declared method.

  Attributes:
      name: Exposed method name.
      owner: Identifier of the class whose body defines the function.
      fn_type: Calling convention kind.
      doc: Method documentation.
  """

  model_config = ConfigDict(frozen=True)

  name: str
  owner: str
  fn_type: FnType
  doc: str = ""


class ProtocolMethod(BaseModel):
  """A dunder method belonging to one protocol category."""

  model_config = ConfigDict(frozen=True)

  category: str
  dunder: str
  slot: Optional[str] = Field(None, description="Type slot filled by the method; None for plain method defs.")
  owner: str
  doc: str = ""


class MethodSite(BaseModel):
  """Methods contributed by one declaration site (class body or `@pymethods` block)."""

  model_config = ConfigDict(frozen=True)

  owner: str
  methods: Tuple[MethodDef, ...] = ()
  protocol_methods: Tuple[ProtocolMethod, ...] = ()
  new: Optional[MethodDef] = Field(None, description="First constructor of the site.")
  constructors: Tuple[MethodDef, ...] = Field((), description="Every ``__new__`` and ``__init__`` of the site, in source order.")
  call: Optional[MethodDef] = None


class TypeDescriptor(BaseModel):
  """
  The generated descriptor of one binding declaration.
  """

  model_config = ConfigDict(frozen=True)

  # Identity
  ident: str = Field(description="Identifier of the declaration in source.")
  name: str = Field(description="Exposed name.")
  module: Optional[str] = None
  doc: str = ""

  # Inheritance
  base: str
  is_gc: bool = False
  is_basetype: bool = False
  is_subclass: bool = False

  # Layout, allocation, threading
  dict_slot: SlotSource = SlotSource.DUMMY
  weakref_slot: SlotSource = SlotSource.DUMMY
  allocator: AllocatorKind = AllocatorKind.DEFAULT
  freelist: Optional[str] = None
  thread_checker: ThreadCheckerKind = ThreadCheckerKind.STUB

  # Aggregation
  methods_type: MethodsType = MethodsType.SPECIALIZATION
  inventory_name: Optional[str] = None
  method_sites: Tuple[MethodSite, ...] = ()
  descriptors: Tuple[PropertyDef, ...] = ()
  protocol_methods: Tuple[ProtocolMethod, ...] = ()
  protocol_slots: Tuple[ProtocolMethod, ...] = ()
  new: Optional[MethodDef] = None
  call: Optional[MethodDef] = None
  has_buffer: bool = False

  into_object: bool = True
