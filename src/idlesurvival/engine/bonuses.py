from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from .conditions import to_number, truthy
from .loader import ContentIndex
from .schema_models import ActionBonus, ItemDefinition, TieredActionSpec
from .state_paths import OWNERSHIP_SECTIONS

Number = Union[int, float]

def adjusted_probability(base: float, luck: float) -> float:
    """Luck inflates a chance multiplicatively (10 luck = +10%), capped at certainty."""
    return min(1.0, base * (1 + luck / 100))

@dataclass
class CombinedBonus:
    resourceBonus: Dict[str, Number] = field(default_factory=dict)
    resourceMultiplier: float = 1.0
    cooldownReduction: float = 0.0
    probabilityBonus: float = 0.0

    def merge(self, other: ActionBonus | "CombinedBonus") -> None:
        for res, amount in other.resourceBonus.items():
            self.resourceBonus[res] = self.resourceBonus.get(res, 0) + amount
        # multipliers compound; the rest add up
        self.resourceMultiplier *= other.resourceMultiplier
        self.cooldownReduction += other.cooldownReduction
        self.probabilityBonus += other.probabilityBonus

    def is_neutral(self) -> bool:
        return (not any(self.resourceBonus.values()) and self.resourceMultiplier == 1.0
                and self.cooldownReduction == 0 and self.probabilityBonus == 0)

@dataclass
class BonusSource:
    kind: str          # "item" or "building"
    source_id: str
    source_name: str
    detail: str

@dataclass
class BonusSet:
    actions: Dict[str, CombinedBonus] = field(default_factory=dict)
    categories: Dict[str, CombinedBonus] = field(default_factory=dict)
    luck: Number = 0
    strength: Number = 0
    knowledge: Number = 0
    madness: Number = 0
    craftingCostReduction: float = 0.0
    buildingCostReduction: float = 0.0
    sources: List[BonusSource] = field(default_factory=list)

    def for_action(self, action_id: str, category: Optional[str] = None) -> CombinedBonus:
        """Action-specific bonuses with the category's bonuses layered on top."""
        out = CombinedBonus()
        if action_id in self.actions:
            out.merge(self.actions[action_id])
        if category and category in self.categories:
            out.merge(self.categories[category])
        return out

    def scalars(self) -> Dict[str, Number]:
        return {
            "luck": self.luck, "strength": self.strength, "knowledge": self.knowledge,
            "madness": self.madness, "craftingCostReduction": self.craftingCostReduction,
            "buildingCostReduction": self.buildingCostReduction,
        }

class BonusEngine:
    """
    Folds owned equipment and standing buildings into a BonusSet.
    Nothing is cached between calls; ownership can change at any time.
    """

    def __init__(self, content: ContentIndex):
        self.content = content

    # -------- ownership scans --------
    def owned_items(self, state: Mapping[str, Any]) -> List[ItemDefinition]:
        out: List[ItemDefinition] = []
        for section in OWNERSHIP_SECTIONS:
            owned = state.get(section.value) or {}
            if not isinstance(owned, Mapping):
                continue
            for iid, has in owned.items():
                if not truthy(has):
                    continue
                item = self.content.get_item(iid)
                if item is not None and item.slot == section.value:
                    out.append(item)
        return out

    def superseded_items(self, owned: List[ItemDefinition]) -> set[str]:
        """Lower family tiers shadowed by a better owned tier."""
        owned_ids = {i.id for i in owned}
        shadowed: set[str] = set()
        for fam in self.content.families.values():
            have = [iid for iid in fam.tiers if iid in owned_ids]
            shadowed.update(have[:-1])
        return shadowed

    def standing_buildings(self, state: Mapping[str, Any]) -> List[Tuple[str, TieredActionSpec]]:
        """Buildings that currently contribute; within a chain only the highest owned one."""
        counts = state.get("buildings") or {}
        if not isinstance(counts, Mapping):
            return []

        def built(key: str) -> bool:
            return to_number(counts.get(key, 0)) > 0

        out: List[Tuple[str, TieredActionSpec]] = []
        for key, action in self.content.building_actions().items():
            if not built(key):
                continue
            chain = self.content.chain_of(key)
            if chain is not None:
                best = [k for k in chain.tiers if built(k)][-1]
                if best != key:
                    continue
            out.append((key, action))
        return out

    # -------- aggregation --------
    def total_bonuses(self, state: Mapping[str, Any]) -> BonusSet:
        bs = BonusSet()
        stats = state.get("stats") or {}
        if isinstance(stats, Mapping):
            for name in ("luck", "strength", "knowledge", "madness"):
                v = stats.get(name, 0)
                if isinstance(v, (int, float)) and not isinstance(v, bool):
                    setattr(bs, name, v)

        categories = self.content.categories
        owned = self.owned_items(state)
        shadowed = self.superseded_items(owned)
        madness_reduction: Number = 0

        for item in owned:
            if item.id not in shadowed:
                for key, bonus in item.actionBonuses.items():
                    bucket = bs.categories if (key in categories and key not in self.content.actions) else bs.actions
                    bucket.setdefault(key, CombinedBonus()).merge(bonus)
                    bs.sources.append(BonusSource("item", item.id, item.name, f"{key}: {_describe_bonus(bonus)}"))
            g = item.generalBonuses
            bs.luck += g.luck
            bs.strength += g.strength
            bs.knowledge += g.knowledge
            bs.madness += g.madness
            madness_reduction += g.madnessReduction
            bs.craftingCostReduction += g.craftingCostReduction
            bs.buildingCostReduction += g.buildingCostReduction
            general = {k: v for k, v in g.model_dump().items() if v}
            if general:
                bs.sources.append(BonusSource("item", item.id, item.name, _fmt_map(general)))

        for key, action in self.standing_buildings(state):
            for stat, amount in action.statsEffects.items():
                setattr(bs, stat, getattr(bs, stat) + amount)
            bs.craftingCostReduction += action.craftingCostReduction
            bs.buildingCostReduction += action.buildingCostReduction
            contrib = dict(action.statsEffects)
            if action.craftingCostReduction:
                contrib["craftingCostReduction"] = action.craftingCostReduction
            if action.buildingCostReduction:
                contrib["buildingCostReduction"] = action.buildingCostReduction
            if contrib:
                bs.sources.append(BonusSource("building", key, action.label, _fmt_map(contrib)))

        bs.madness = max(0, bs.madness - madness_reduction)
        bs.craftingCostReduction = min(1.0, bs.craftingCostReduction)
        bs.buildingCostReduction = min(1.0, bs.buildingCostReduction)
        return bs

    def explain(self, state: Mapping[str, Any]) -> List[str]:
        bs = self.total_bonuses(state)
        lines = [f"[Bonus] {s.kind} {s.source_name} ({s.source_id}): {s.detail}" for s in bs.sources]
        if not lines:
            lines.append("[Bonus] no owned equipment or buildings contribute bonuses")
        lines.append("[Bonus] totals: " + _fmt_map(bs.scalars()))
        return lines

def _describe_bonus(b: ActionBonus | CombinedBonus) -> str:
    parts: List[str] = []
    for res, amount in b.resourceBonus.items():
        parts.append(f"+{amount} {res}")
    if b.resourceMultiplier != 1.0:
        parts.append(f"x{b.resourceMultiplier:g}")
    if b.cooldownReduction:
        parts.append(f"-{b.cooldownReduction:g}s cooldown")
    if b.probabilityBonus:
        parts.append(f"+{b.probabilityBonus:g} chance")
    return ", ".join(parts) if parts else "no effect"

def _fmt_map(m: Mapping[str, Any]) -> str:
    return ", ".join(f"{k}={v:g}" if isinstance(v, float) else f"{k}={v}" for k, v in m.items())
