"""
Method Registration Strategies.

A type's methods may come from its own class body and from any number of
``@pymethods(Target)`` blocks. Two disciplines gather them, selected once per
build by `RuntimeConfig.methods_type`:

1.  **Specialization**: the generator sees every site of the module and writes
    one aggregated list into the generated impl. Blocks from other modules are
    rejected.
2.  **Inventory**: the generator emits a collection point named
    ``PyMethodsInventoryFor<Ident>``; every site submits its list to
    `classforge.runtime.inventory` at import time, from any module.

Protocol dunders and the constructor/call hooks are resolved statically in
both disciplines, so they must live in the declaring module.
"""

from typing import Dict, Optional, Type

from classforge.core.descriptor import MethodSite
from classforge.core.diagnostics import Locator, StructuralError
from classforge.core.scanners import MethodsBlock
from classforge.enums import MethodsType


def inventory_name(ident: str) -> str:
  return f"PyMethodsInventoryFor{ident}"


class RegistrationStrategy:
  """
  Base strategy.

  Attributes:
      methods_type (MethodsType): The discipline implemented.
  """

  methods_type: MethodsType

  def inventory_name(self, ident: str) -> Optional[str]:
    return None

  @property
  def submits_at_sites(self) -> bool:
    """True if each site deposits its own methods at import time."""
    return False

  def check_foreign_block(self, block: MethodsBlock, site: MethodSite, locator: Locator) -> None:
    """
    Validates a block whose target is not declared in the current module.

    Raises:
        StructuralError: If the block cannot be registered.
    """
    raise NotImplementedError


class SpecializationStrategy(RegistrationStrategy):
  methods_type = MethodsType.SPECIALIZATION

  def check_foreign_block(self, block: MethodsBlock, site: MethodSite, locator: Locator) -> None:
    raise locator.error(
      StructuralError,
      f"@pymethods target '{block.target}' is not declared in this module; "
      'blocks in other modules require methods_type = "inventory"',
      block.target_node,
    )


class InventoryStrategy(RegistrationStrategy):
  methods_type = MethodsType.INVENTORY

  def inventory_name(self, ident: str) -> Optional[str]:
    return inventory_name(ident)

  @property
  def submits_at_sites(self) -> bool:
    return True

  def check_foreign_block(self, block: MethodsBlock, site: MethodSite, locator: Locator) -> None:
    static = [m.dunder for m in site.protocol_methods]
    static += [m.name for m in site.constructors]
    static += [site.call.name] if site.call is not None else []
    if static:
      raise locator.error(
        StructuralError,
        f"'{static[0]}' of '{block.target}' must be declared in the module that declares '{block.target}'",
        block.node.name,
      )


_STRATEGIES: Dict[MethodsType, Type[RegistrationStrategy]] = {
  MethodsType.SPECIALIZATION: SpecializationStrategy,
  MethodsType.INVENTORY: InventoryStrategy,
}


def strategy_for(methods_type: MethodsType) -> RegistrationStrategy:
  return _STRATEGIES[MethodsType(methods_type)]()
