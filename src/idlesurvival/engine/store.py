from __future__ import annotations
from dataclasses import dataclass, field
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional
from .bonuses import BonusEngine
from .requirements import RequirementChecker
from .resolver import EffectResolver, ResolveResult
from .state_paths import merge_delta, set_into_delta

ActionListener = Callable[[str, float], None]

@dataclass
class DispatchResult:
    action_id: str
    applied: bool
    log_messages: List[str] = field(default_factory=list)
    triggered_events: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    cooldown: float = 0.0
    trace: List[str] = field(default_factory=list)

def seen_key(action_id: str) -> str:
    return "action" + action_id[:1].upper() + action_id[1:]

def _clamp_resources(state: Dict[str, Any]) -> Dict[str, Any]:
    # committed resources never drop below zero
    resources = state.get("resources")
    if not isinstance(resources, dict):
        return state
    if not any(_is_number(v) and v < 0 for v in resources.values()):
        return state
    fixed = {k: (0 if _is_number(v) and v < 0 else v) for k, v in resources.items()}
    return {**state, "resources": fixed}

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

class ActionStore:
    """
    Single writer around the authoritative state. check -> resolve -> merge -> cooldown
    runs under one lock, so an action can never be applied twice off a stale snapshot.
    """

    def __init__(self, checker: RequirementChecker, resolver: EffectResolver,
                 state: Mapping[str, Any], *, amplify: bool = False,
                 clock: Callable[[], float] = time.time):
        self.checker = checker
        self.resolver = resolver
        self.bonuses: BonusEngine = checker.bonuses
        self._state: Dict[str, Any] = dict(state)
        self._lock = threading.Lock()
        self._listeners: List[ActionListener] = []
        self.amplify = amplify
        self.clock = clock

    @property
    def state(self) -> Dict[str, Any]:
        return self._state

    def replace_state(self, state: Mapping[str, Any]) -> None:
        with self._lock:
            self._state = dict(state)

    def subscribe(self, listener: ActionListener) -> None:
        self._listeners.append(listener)

    def dispatch(self, action_id: str) -> DispatchResult:
        with self._lock:
            state = self._state
            if not self.checker.is_executable(action_id, state):
                return DispatchResult(action_id, False, reasons=self.checker.unmet_requirements(action_id, state))
            cooldown = self.checker.effective_cooldown(action_id, state)
            res: ResolveResult = self.resolver.resolve(action_id, state, amplify=self.amplify)
            delta = res.delta
            set_into_delta(delta, state, f"story.seen.{seen_key(action_id)}", True)
            if cooldown > 0:
                set_into_delta(delta, state, f"cooldowns.{action_id}", cooldown)
                set_into_delta(delta, state, f"cooldownDurations.{action_id}", cooldown)
            self._state = _clamp_resources(merge_delta(state, delta))
            stamp = self.clock()
        for listener in list(self._listeners):
            listener(action_id, stamp)
        return DispatchResult(
            action_id, True, log_messages=res.log_messages, triggered_events=res.triggered_events,
            cooldown=cooldown, trace=res.trace,
        )

    def tick(self, seconds: float) -> List[str]:
        """Advance cooldown timers; returns the ids that became ready."""
        if seconds <= 0:
            return []
        ready: List[str] = []
        with self._lock:
            cooldowns = dict(self._state.get("cooldowns") or {})
            for aid, left in list(cooldowns.items()):
                remaining = left - seconds
                if remaining <= 0:
                    del cooldowns[aid]
                    ready.append(aid)
                else:
                    cooldowns[aid] = remaining
            self._state = {**self._state, "cooldowns": cooldowns}
        return ready

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._state)

    def is_visible(self, action_id: str) -> bool:
        return self.checker.is_visible(action_id, self._state)

    def is_executable(self, action_id: str) -> bool:
        return self.checker.is_executable(action_id, self._state)

    def last_cooldown(self, action_id: str) -> Optional[float]:
        return (self._state.get("cooldownDurations") or {}).get(action_id)
