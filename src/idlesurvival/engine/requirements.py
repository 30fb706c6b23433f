from __future__ import annotations
from dataclasses import dataclass
import math
from typing import Any, List, Mapping, Optional, Union
from .bonuses import BonusEngine, BonusSet
from .conditions import failed_requirements, check_requirements, to_number
from .loader import Action, ContentIndex
from .schema_models import TieredActionSpec
from .state_paths import Section, StatePathError, get_path, parse_path

Number = Union[int, float]

@dataclass(frozen=True)
class TierView:
    """The slice of an action that applies right now. None marks a missing tier entry."""
    level: Optional[int]
    show_when: Optional[Mapping[str, Any]]
    cost: Optional[Mapping[str, Any]]
    effects: Optional[Mapping[str, Any]]
    cooldown: float

def current_level(action: TieredActionSpec, state: Mapping[str, Any]) -> int:
    raw = (state.get("buildings") or {}).get(action.building_key, 0)
    n = to_number(raw if raw is not None else 0)
    return 0 if math.isnan(n) else int(n)

def select_tier(action: Action, state: Mapping[str, Any]) -> TierView:
    if isinstance(action, TieredActionSpec):
        level = current_level(action, state) + 1
        return TierView(
            level=level,
            show_when=action.show_when.get(level),
            cost=action.cost.get(level),
            effects=action.effects.get(level),
            cooldown=action.cooldown_at(level),
        )
    return TierView(
        level=None, show_when=action.show_when, cost=action.cost,
        effects=action.effects, cooldown=action.cooldown,
    )

def cost_reduction_for(action: Action, bonuses: BonusSet) -> Optional[float]:
    """Reduction applied to the resources this action pays, None when none applies."""
    if action.is_crafting:
        return bonuses.craftingCostReduction
    if isinstance(action, TieredActionSpec):
        return bonuses.buildingCostReduction
    return None

def affordability_reduction(action: Action, bonuses: BonusSet) -> Optional[float]:
    """Reduction applied when checking affordability; only crafting and forging are discounted."""
    return bonuses.craftingCostReduction if action.is_crafting else None

def adjusted_cost(required: Number, reduction: Optional[float]) -> Number:
    if reduction is None:
        return required
    return math.floor(required * (1 - reduction))

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

class RequirementChecker:
    """
    Visibility and affordability predicates. Both are total: unknown ids, missing
    tiers and malformed paths all answer False instead of raising.
    """

    def __init__(self, content: ContentIndex, bonuses: BonusEngine):
        self.content = content
        self.bonuses = bonuses

    # -------- predicates --------
    def is_visible(self, action_id: str, state: Mapping[str, Any]) -> bool:
        action = self.content.get_action(action_id)
        if action is None:
            return False
        tier = select_tier(action, state)
        if tier.show_when is None:
            return False
        try:
            return check_requirements(tier.show_when, state)
        except StatePathError:
            return False

    def is_executable(self, action_id: str, state: Mapping[str, Any]) -> bool:
        action = self.content.get_action(action_id)
        if action is None:
            return False
        if self.cooldown_remaining(action_id, state) > 0:
            return False
        tier = select_tier(action, state)
        if tier.cost is None:
            return False
        if not tier.cost:
            return True
        return not self._cost_failures(action, tier.cost, state, stop_early=True)

    def cooldown_remaining(self, action_id: str, state: Mapping[str, Any]) -> float:
        raw = (state.get("cooldowns") or {}).get(action_id)
        n = to_number(raw) if raw is not None else 0.0
        return 0.0 if math.isnan(n) else n

    def _cost_failures(self, action: Action, cost: Mapping[str, Any], state: Mapping[str, Any],
                       *, stop_early: bool = False) -> List[str]:
        out: List[str] = []
        reduction: Optional[float] = None
        reduction_ready = False
        for path, required in cost.items():
            if not _is_number(required):
                continue
            try:
                sp = parse_path(path)
            except StatePathError:
                out.append(f"{path}: malformed path")
                if stop_early:
                    return out
                continue
            current = get_path(state, sp)
            if sp.section is Section.RESOURCES:
                if not reduction_ready:
                    reduction = affordability_reduction(action, self.bonuses.total_bonuses(state))
                    reduction_ready = True
                need = adjusted_cost(required, reduction)
                have = to_number(current if current is not None else 0)
                if not have >= need:
                    out.append(f"{path}: need {need}, have {current if current is not None else 0}")
            elif isinstance(current, bool) or current != required:
                out.append(f"{path} must be {required} (is {current!r})")
            if out and stop_early:
                return out
        return out

    # -------- presentation helpers --------
    def unmet_requirements(self, action_id: str, state: Mapping[str, Any]) -> List[str]:
        action = self.content.get_action(action_id)
        if action is None:
            return [f"unknown action '{action_id}'"]
        out: List[str] = []
        remaining = self.cooldown_remaining(action_id, state)
        if remaining > 0:
            out.append(f"cooling down ({remaining:g}s left)")
        tier = select_tier(action, state)
        if tier.show_when is None:
            out.append("not available at this level" if tier.level else "never shown")
        else:
            out.extend(failed_requirements(tier.show_when, state))
        if tier.cost is None:
            out.append(f"no cost defined for level {tier.level}")
        elif tier.cost:
            out.extend(self._cost_failures(action, tier.cost, state))
        return out

    def cost_text(self, action_id: str, state: Mapping[str, Any]) -> str:
        """Render the current resource cost, e.g. '-9 Wood, -10 Stone'."""
        action = self.content.get_action(action_id)
        if action is None:
            return ""
        tier = select_tier(action, state)
        if not tier.cost:
            return ""
        reduction = affordability_reduction(action, self.bonuses.total_bonuses(state))
        parts: List[str] = []
        for path, required in tier.cost.items():
            if not _is_number(required) or not path.startswith("resources."):
                continue
            name = path.split(".", 1)[1].replace("_", " ").title()
            parts.append(f"-{adjusted_cost(required, reduction)} {name}")
        return ", ".join(parts)

    def effective_cooldown(self, action_id: str, state: Mapping[str, Any],
                           bonuses: Optional[BonusSet] = None) -> float:
        action = self.content.get_action(action_id)
        if action is None:
            return 0.0
        tier = select_tier(action, state)
        bs = bonuses or self.bonuses.total_bonuses(state)
        reduction = bs.for_action(action.id, action.category).cooldownReduction
        return max(0.0, tier.cooldown - reduction)

    def visible_actions(self, state: Mapping[str, Any]) -> List[str]:
        return [aid for aid in self.content.actions if self.is_visible(aid, state)]
