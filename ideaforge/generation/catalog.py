"""Static registry of generated business-package modules."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ideaforge.generation.errors import NotFoundError


@dataclass(frozen=True)
class ModuleDescriptor:
  """Describes one generated module and the prior modules feeding its prompt."""

  module_id: str
  label: str
  description: str
  core: bool = True
  depends_on: tuple[str, ...] = ()


# Priority order; every module only depends on modules listed before it.
_DESCRIPTORS: tuple[ModuleDescriptor, ...] = (
  ModuleDescriptor("refined_concept", "Concept Thesis", "Sharpened product concept, target users and value proposition."),
  ModuleDescriptor("brand_profile", "Brand Identity", "Names, tagline, palette, typography and voice.", depends_on=("refined_concept",)),
  ModuleDescriptor("market_analysis", "Market Analysis", "Market sizing, competitors and positioning.", depends_on=("refined_concept",)),
  ModuleDescriptor("code_preview", "Tech Blueprint", "Architecture, stack recommendation and MVP scaffold.", depends_on=("refined_concept",)),
  ModuleDescriptor("business_model", "Business Model", "Revenue streams, pricing tiers and unit economics.", depends_on=("refined_concept",)),
  ModuleDescriptor("risk_analysis", "Risk Analysis", "Key risks, mitigations and assumptions to validate.", depends_on=("refined_concept", "market_analysis")),
  ModuleDescriptor("pitch_deck", "Pitch Deck", "Investor narrative as a slide outline.", depends_on=("refined_concept", "brand_profile", "market_analysis")),
  ModuleDescriptor("landing_content", "Landing Page", "Hero copy, feature blocks and calls to action.", depends_on=("refined_concept", "brand_profile")),
)


class ModuleCatalog:
  """Ordered lookup of module descriptors with a core/on-demand split."""

  def __init__(self, *, on_demand: Iterable[str] = ()) -> None:
    known = {descriptor.module_id for descriptor in _DESCRIPTORS}
    on_demand_ids = set(on_demand)
    unknown = on_demand_ids - known
    if unknown:
      raise ValueError(f"Unknown on-demand modules: {sorted(unknown)}")

    core = [ModuleDescriptor(d.module_id, d.label, d.description, True, d.depends_on) for d in _DESCRIPTORS if d.module_id not in on_demand_ids]
    lazy = [ModuleDescriptor(d.module_id, d.label, d.description, False, d.depends_on) for d in _DESCRIPTORS if d.module_id in on_demand_ids]
    self._modules: tuple[ModuleDescriptor, ...] = tuple(core + lazy)
    self._index = {descriptor.module_id: position for position, descriptor in enumerate(self._modules)}

  def list_modules(self) -> tuple[ModuleDescriptor, ...]:
    """Return descriptors in generation order, core modules first."""
    return self._modules

  def module_ids(self) -> tuple[str, ...]:
    return tuple(descriptor.module_id for descriptor in self._modules)

  def core_ids(self) -> tuple[str, ...]:
    return tuple(descriptor.module_id for descriptor in self._modules if descriptor.core)

  def contains(self, module_id: str) -> bool:
    return module_id in self._index

  def get(self, module_id: str) -> ModuleDescriptor:
    try:
      return self._modules[self._index[module_id]]
    except KeyError as exc:
      raise NotFoundError(f"Unknown module '{module_id}'.") from exc

  def is_core(self, module_id: str) -> bool:
    return self.get(module_id).core

  def order(self, module_ids: Iterable[str]) -> list[str]:
    """Sort module ids into catalog order, rejecting unknown ids."""
    ids = set(module_ids)
    for module_id in ids:
      self.get(module_id)
    return [module_id for module_id in self.module_ids() if module_id in ids]
