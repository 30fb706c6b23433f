from __future__ import annotations
from dataclasses import dataclass, field
import math
import random
from typing import Any, Dict, List, Mapping, Optional
from .bonuses import BonusEngine, CombinedBonus, adjusted_probability
from .conditions import ConditionSyntaxError, evaluate
from .loader import ContentIndex
from .requirements import cost_reduction_for, select_tier
from .rng import RandomSource
from .schema_models import (
    ConstantEffect, EffectSpecError, ProbabilityEffect, RandomRange, parse_effect,
)
from .state_paths import StatePath, StatePathError, get_path, parse_path, set_into_delta
from .trace import TraceSession

# Net resource gains are scaled by this factor when amplify mode is on
AMPLIFY_FACTOR = 10

@dataclass
class ResolveResult:
    delta: Dict[str, Any] = field(default_factory=dict)
    log_messages: List[str] = field(default_factory=list)
    triggered_events: List[str] = field(default_factory=list)
    trace: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.delta and not self.log_messages and not self.triggered_events

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

class EffectResolver:
    """
    Turns one action invocation into a state delta.
      - effects are resolved in declaration order against the input snapshot
      - resource paths accumulate, every other path is overwritten
      - a malformed entry is skipped (and traced) without aborting the rest
    The input state is never mutated; draws come from the injected random source.
    """

    def __init__(self, content: ContentIndex, bonuses: BonusEngine, rng: Optional[RandomSource] = None):
        self.content = content
        self.bonuses = bonuses
        self.rng: RandomSource = rng or random.Random()

    def resolve(self, action_id: str, state: Mapping[str, Any], *, amplify: bool = False) -> ResolveResult:
        trace = TraceSession("Effects")
        result = ResolveResult()
        action = self.content.get_action(action_id)
        if action is None:
            trace.add(f"unknown action '{action_id}', nothing resolved")
            result.trace = trace.dump()
            return result
        tier = select_tier(action, state)
        if tier.effects is None:
            trace.add(f"{action_id}: no effects defined for level {tier.level}")
            result.trace = trace.dump()
            return result

        bs = self.bonuses.total_bonuses(state)
        combined = bs.for_action(action.id, action.category)
        reduction = cost_reduction_for(action, bs)
        delta: Dict[str, Any] = {}

        for path, raw in tier.effects.items():
            try:
                sp = parse_path(path)
                spec = parse_effect(raw)
            except (StatePathError, EffectSpecError) as e:
                trace.add(f"skip {path}: {e}")
                continue

            if not isinstance(spec, ProbabilityEffect):
                self._apply(delta, state, sp, spec, combined, reduction, trace)
                continue

            if spec.condition:
                try:
                    met = evaluate(spec.condition, state)
                except ConditionSyntaxError as e:
                    trace.add(f"skip {path}: {e}")
                    continue
                if not met:
                    trace.add(f"{path}: condition '{spec.condition}' not met")
                    continue
            chance = adjusted_probability(spec.probability + combined.probabilityBonus, bs.luck)
            roll = self.rng.random()
            if not roll < chance:
                trace.add(f"{path}: roll {roll:.4f} >= chance {chance:.4f}, no effect")
                continue
            try:
                outcome = spec.outcome()
            except EffectSpecError as e:
                trace.add(f"skip {path}: {e}")
                continue
            trace.add(f"{path}: roll {roll:.4f} < chance {chance:.4f}, fired")
            self._apply(delta, state, sp, outcome, combined, reduction, trace)
            if spec.logMessage:
                result.log_messages.append(spec.logMessage)
            if spec.triggerEvent:
                result.triggered_events.append(spec.triggerEvent)

        self._scale_gains(delta, state, combined.resourceMultiplier, amplify, trace)
        result.delta = delta
        result.trace = trace.dump()
        return result

    # -------- helpers --------
    def _current(self, delta: Mapping[str, Any], state: Mapping[str, Any], sp: StatePath) -> Any:
        # Earlier entries in the same action may already have written this path
        if sp.head in delta:
            return get_path(delta, sp)
        return get_path(state, sp)

    def _apply(self, delta: Dict[str, Any], state: Mapping[str, Any], sp: StatePath,
               spec: ConstantEffect | RandomRange, combined: CombinedBonus,
               reduction: Optional[float], trace: TraceSession) -> None:
        if isinstance(spec, RandomRange):
            amount = spec.draw(self.rng)
            bonus = combined.resourceBonus.get(sp.resource, 0) if sp.resource else 0
            trace.add(f"{sp.raw}: {spec} rolled {amount}" + (f" +{bonus} bonus" if bonus else ""))
            value: Any = amount + bonus
        else:
            value = spec.value
            if isinstance(value, bool) or not sp.accumulates:
                set_into_delta(delta, state, sp, value)
                return
            if value < 0 and reduction is not None:
                value = math.floor(value * (1 - reduction))

        if sp.accumulates:
            current = self._current(delta, state, sp)
            base = current if _is_number(current) else 0
            set_into_delta(delta, state, sp, base + value)
        else:
            set_into_delta(delta, state, sp, value)

    def _scale_gains(self, delta: Dict[str, Any], state: Mapping[str, Any], multiplier: float,
                     amplify: bool, trace: TraceSession) -> None:
        resources = delta.get("resources")
        if not isinstance(resources, dict):
            return
        before_all = state.get("resources") or {}
        for name, new in list(resources.items()):
            if not _is_number(new):
                continue
            before = before_all.get(name, 0)
            before = before if _is_number(before) else 0
            gain = new - before
            if gain <= 0:
                continue
            if multiplier != 1.0:
                extra = math.floor(gain * (multiplier - 1))
                if extra:
                    new += extra
                    trace.add(f"resources.{name}: x{multiplier:g} multiplier adds {extra}")
            if amplify:
                new = before + (new - before) * AMPLIFY_FACTOR
                trace.add(f"resources.{name}: amplified gain to {new - before}")
            resources[name] = new

    def resolve_many(self, action_id: str, state: Mapping[str, Any], times: int,
                     *, amplify: bool = False) -> List[ResolveResult]:
        """Independent resolutions against the same snapshot (used for simulation)."""
        return [self.resolve(action_id, state, amplify=amplify) for _ in range(times)]
