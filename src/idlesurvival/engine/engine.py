from __future__ import annotations
from pathlib import Path
from typing import Any, Mapping, Optional
from ..util.paths import content_dir
from .bonuses import BonusEngine
from .conditions import condition_cache_info
from .loader import ContentIndex, load_content
from .requirements import RequirementChecker
from .resolver import EffectResolver
from .rng import RandomSource, make_rng
from .settings import Settings, load_settings
from .state import new_game_state
from .state_paths import path_cache_info
from .store import ActionStore

ENGINE_VERSION = "0.1.0"

HELP = ("Commands: status, actions, do <action_id>, tick [seconds], bonuses, "
        "why <action_id>, cache stats, quit")

class GameEngine:
    def __init__(self, content: Optional[ContentIndex] = None, settings: Optional[Settings] = None,
                 rng: Optional[RandomSource] = None, state: Optional[Mapping[str, Any]] = None):
        self.settings: Settings = settings or load_settings()
        self.content_dir = Path(self.settings.content_dir) if self.settings.content_dir else content_dir()
        self.content: ContentIndex = content or load_content(self.content_dir)
        self.rng = rng or make_rng(self.settings.rng_seed_mode, self.settings.fixed_seed)
        self.bonuses = BonusEngine(self.content)
        self.requirements = RequirementChecker(self.content, self.bonuses)
        self.resolver = EffectResolver(self.content, self.bonuses, self.rng)
        self.store = ActionStore(self.requirements, self.resolver,
                                 state if state is not None else new_game_state(self.content),
                                 amplify=self.settings.amplify_gains)
        self.should_quit: bool = False

    @property
    def state(self) -> Mapping[str, Any]:
        return self.store.state

    # -------- views --------
    def status_lines(self) -> list[str]:
        st = self.store.state
        res = {k: v for k, v in (st.get("resources") or {}).items() if v}
        blds = {k: v for k, v in (st.get("buildings") or {}).items() if v}
        out = ["Resources: " + (", ".join(f"{k} {v}" for k, v in res.items()) if res else "(none)")]
        if blds:
            out.append("Buildings: " + ", ".join(f"{k} {v}" for k, v in blds.items()))
        owned = [iid for iid in self.content.items if any((st.get(sec) or {}).get(iid) for sec in
                 ("tools", "weapons", "clothing", "relics", "blessings"))]
        if owned:
            out.append("Owned: " + ", ".join(self.content.items[i].name for i in owned))
        return out

    def action_lines(self) -> list[str]:
        st = self.store.state
        out: list[str] = []
        for aid in self.requirements.visible_actions(st):
            action = self.content.actions[aid]
            left = self.requirements.cooldown_remaining(aid, st)
            if left > 0:
                tag = f"cooldown {left:g}s"
            elif self.requirements.is_executable(aid, st):
                tag = "ready"
            else:
                tag = "locked"
            cost = self.requirements.cost_text(aid, st)
            out.append(f"- {aid}: {action.label} [{tag}]" + (f" ({cost})" if cost else ""))
        return out or ["No actions available."]

    # -------- command loop --------
    def execute(self, cmd: str) -> list[str]:
        c = cmd.strip()
        low = c.lower()
        out: list[str] = []
        if low in ("help", "?"):
            out.append(HELP)
        elif low == "cache stats":
            out.append(condition_cache_info())
            out.append(path_cache_info())
        elif low == "status":
            out += self.status_lines()
        elif low == "actions":
            out += self.action_lines()
        elif low == "bonuses":
            out += self.bonuses.explain(self.store.state)
        elif low.startswith("do "):
            aid = c[3:].strip()
            res = self.store.dispatch(aid)
            if not res.applied:
                out.append(f"[Action] {aid} not possible: " + ("; ".join(res.reasons) or "unavailable"))
            else:
                label = self.content.actions[aid].label
                out.append(f"[Action] {label}" + (f" (cooldown {res.cooldown:g}s)" if res.cooldown else ""))
                out += res.log_messages
                out += [f"[Event] {ev}" for ev in res.triggered_events]
                if self.settings.show_trace:
                    out += res.trace
        elif low.startswith("why "):
            aid = c[4:].strip()
            reasons = self.requirements.unmet_requirements(aid, self.store.state)
            out += [f"- {r}" for r in reasons] if reasons else [f"{aid}: all requirements met"]
        elif low == "tick" or low.startswith("tick "):
            arg = c[4:].strip()
            try:
                seconds = float(arg) if arg else 1.0
            except ValueError:
                out.append("Usage: tick [seconds]")
                return out
            ready = self.store.tick(seconds)
            out.append(f"[Time] {seconds:g}s passed" + (f"; ready: {', '.join(ready)}" if ready else ""))
        elif low in ("quit", "exit"):
            self.should_quit = True
            out.append("Goodbye.")
        else:
            out.append("Unknown command. Type 'help'.")
        return out
