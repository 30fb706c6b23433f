from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
import re
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

class StatePathError(ValueError):
    pass

class Section(str, Enum):
    RESOURCES = "resources"
    BUILDINGS = "buildings"
    TOOLS = "tools"
    WEAPONS = "weapons"
    CLOTHING = "clothing"
    RELICS = "relics"
    BLESSINGS = "blessings"
    STATS = "stats"
    FLAGS = "flags"
    STORY = "story"
    COOLDOWNS = "cooldowns"
    COOLDOWN_DURATIONS = "cooldownDurations"
    OTHER = "other"

_SECTION_BY_NAME: Dict[str, Section] = {s.value: s for s in Section if s is not Section.OTHER}

# Sections holding boolean ownership of catalog items
OWNERSHIP_SECTIONS: Tuple[Section, ...] = (
    Section.TOOLS, Section.WEAPONS, Section.CLOTHING, Section.RELICS, Section.BLESSINGS,
)

_KEY_RE = re.compile(r"^[A-Za-z0-9_\-$]+$")

@dataclass(frozen=True)
class StatePath:
    raw: str
    keys: Tuple[str, ...]
    section: Section

    @property
    def head(self) -> str:
        return self.keys[0]

    @property
    def leaf(self) -> str:
        return self.keys[-1]

    @property
    def accumulates(self) -> bool:
        # Only resource counters add onto the current value; everything else is overwritten
        return self.section is Section.RESOURCES

    @property
    def resource(self) -> Optional[str]:
        if self.section is Section.RESOURCES and len(self.keys) == 2:
            return self.keys[1]
        return None

@lru_cache(maxsize=4096)
def _parse(raw: str) -> StatePath:
    keys = tuple(raw.split("."))
    for k in keys:
        if not _KEY_RE.match(k):
            raise StatePathError(f"invalid state path '{raw}' (bad segment '{k}')")
    return StatePath(raw=raw, keys=keys, section=_SECTION_BY_NAME.get(keys[0], Section.OTHER))

def parse_path(path: str | StatePath) -> StatePath:
    """Split a dot path once and tag it with its top-level section. Results are cached."""
    if isinstance(path, StatePath):
        return path
    if not isinstance(path, str) or not path:
        raise StatePathError(f"state path must be a non-empty string, got {path!r}")
    return _parse(path)

def get_path(state: Mapping[str, Any], path: str | StatePath) -> Any:
    """Walk the state tree; None when any intermediate is missing."""
    node: Any = state
    for key in parse_path(path).keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node

def set_into_delta(delta: MutableMapping[str, Any], state: Mapping[str, Any],
                   path: str | StatePath, value: Any) -> None:
    """
    Write value at path into delta, copy-on-write against state.
    The first write into a section copies that section from state; nested mappings still
    shared with state (e.g. story.seen) are cloned on the way down. state is never touched.
    """
    sp = parse_path(path)
    head = sp.head
    if len(sp.keys) == 1:
        delta[head] = value
        return

    source: Any = state.get(head)
    target = delta.get(head)
    if not isinstance(target, dict) or target is source:
        target = dict(source) if isinstance(source, Mapping) else {}
        delta[head] = target

    for key in sp.keys[1:-1]:
        source = source.get(key) if isinstance(source, Mapping) else None
        child = target.get(key)
        if not isinstance(child, dict) or child is source:
            child = dict(child) if isinstance(child, Mapping) else {}
            target[key] = child
        target = child
    target[sp.leaf] = value

def merge_delta(state: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    """Shallow-per-section merge of a delta into a new state dict."""
    merged: Dict[str, Any] = dict(state)
    for section, value in delta.items():
        current = merged.get(section)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[section] = {**current, **value}
        else:
            merged[section] = value
    return merged

def path_cache_info() -> str:
    info = _parse.cache_info()
    return f"path-cache: hits={info.hits}, misses={info.misses}, size={info.currsize}/{info.maxsize}"
