from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union
import json
import yaml
from pydantic import TypeAdapter
from .schema_models import (
    ActionDefinition, BuildingChain, EquipmentFamily, FamilyUnion, FlatActionSpec,
    ItemDefinition, TieredActionSpec,
)

ActionAdapter = TypeAdapter(ActionDefinition)
ItemAdapter = TypeAdapter(ItemDefinition)
FamilyAdapter = TypeAdapter(FamilyUnion)

Action = Union[FlatActionSpec, TieredActionSpec]

def _load_file(path: Path) -> object:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in [".yaml", ".yml"]:
        return yaml.safe_load(text) or {}
    return json.loads(text)

def _iter_files(root: Path, exts: Tuple[str, ...] = (".json", ".yaml", ".yml")) -> Iterable[Path]:
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in exts)

def _records(data: object) -> List[dict]:
    # A file holds one definition or a list of them
    if isinstance(data, list):
        return [d for d in data if d]
    return [data] if data else []

def tag_action(raw: dict) -> dict:
    """Map the authoring flag `building: true` onto the tagged union."""
    if "kind" in raw:
        return raw
    out = {k: v for k, v in raw.items() if k != "building"}
    out["kind"] = "tiered" if raw.get("building") else "flat"
    return out

@dataclass
class ContentIndex:
    actions: Dict[str, Action] = field(default_factory=dict)
    items: Dict[str, ItemDefinition] = field(default_factory=dict)
    families: Dict[str, EquipmentFamily] = field(default_factory=dict)
    building_chains: Dict[str, BuildingChain] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._chain_of: Dict[str, BuildingChain] = {}
        for chain in self.building_chains.values():
            for key in chain.tiers:
                self._chain_of[key] = chain

    @classmethod
    def from_definitions(cls, actions: Iterable[Action | dict] = (), items: Iterable[ItemDefinition | dict] = (),
                         families: Iterable[EquipmentFamily | BuildingChain | dict] = ()) -> "ContentIndex":
        idx_actions: Dict[str, Action] = {}
        for a in actions:
            act = ActionAdapter.validate_python(tag_action(a)) if isinstance(a, dict) else a
            if act.id in idx_actions:
                raise RuntimeError(f"Duplicate action id {act.id}")
            idx_actions[act.id] = act
        idx_items: Dict[str, ItemDefinition] = {}
        for i in items:
            item = ItemAdapter.validate_python(i) if isinstance(i, dict) else i
            if item.id in idx_items:
                raise RuntimeError(f"Duplicate item id {item.id}")
            idx_items[item.id] = item
        fams: Dict[str, EquipmentFamily] = {}
        chains: Dict[str, BuildingChain] = {}
        for f in families:
            fam = FamilyAdapter.validate_python(f) if isinstance(f, dict) else f
            bucket = fams if isinstance(fam, EquipmentFamily) else chains
            if fam.id in bucket:
                raise RuntimeError(f"Duplicate family id {fam.id}")
            bucket[fam.id] = fam
        return cls(actions=idx_actions, items=idx_items, families=fams, building_chains=chains)

    def get_action(self, aid: str) -> Optional[Action]:
        return self.actions.get(aid)

    def get_item(self, iid: str) -> Optional[ItemDefinition]:
        return self.items.get(iid)

    def chain_of(self, building_key: str) -> Optional[BuildingChain]:
        return self._chain_of.get(building_key)

    @property
    def categories(self) -> Set[str]:
        return {a.category for a in self.actions.values() if a.category}

    def building_actions(self) -> Dict[str, TieredActionSpec]:
        """building key -> the tiered action that raises it"""
        return {a.building_key: a for a in self.actions.values() if isinstance(a, TieredActionSpec)}

    def _blocks(self, *fields: str) -> Iterable[dict]:
        for a in self.actions.values():
            for name in fields:
                block = getattr(a, name) or {}
                if isinstance(a, TieredActionSpec):
                    yield from (b for b in block.values() if b)
                else:
                    yield block

    def resource_names(self) -> Set[str]:
        names: Set[str] = set()
        for block in self._blocks("cost", "effects"):
            for path in block:
                head, _, rest = path.partition(".")
                if head == "resources" and rest and "." not in rest:
                    names.add(rest)
        return names

    def flag_names(self) -> Set[str]:
        """Flags some requirement compares against a boolean."""
        names: Set[str] = set()
        for block in self._blocks("show_when", "cost"):
            for path, expected in block.items():
                head, _, rest = path.partition(".")
                if head == "flags" and rest and isinstance(expected, bool):
                    names.add(rest)
        return names

def load_content(base_dir: Path) -> ContentIndex:
    actions: Dict[str, Action] = {}
    for fp in _iter_files(base_dir / "actions"):
        for raw in _records(_load_file(fp)):
            act = ActionAdapter.validate_python(tag_action(raw))
            if act.id in actions:
                raise RuntimeError(f"Duplicate action id {act.id} in {fp}")
            actions[act.id] = act

    items: Dict[str, ItemDefinition] = {}
    for fp in _iter_files(base_dir / "items"):
        for raw in _records(_load_file(fp)):
            item = ItemAdapter.validate_python(raw)
            if item.id in items:
                raise RuntimeError(f"Duplicate item id {item.id} in {fp}")
            items[item.id] = item

    families: Dict[str, EquipmentFamily] = {}
    chains: Dict[str, BuildingChain] = {}
    for fp in _iter_files(base_dir / "families"):
        for raw in _records(_load_file(fp)):
            fam = FamilyAdapter.validate_python(raw)
            bucket = families if isinstance(fam, EquipmentFamily) else chains
            if fam.id in bucket:
                raise RuntimeError(f"Duplicate family id {fam.id} in {fp}")
            bucket[fam.id] = fam

    return ContentIndex(actions=actions, items=items, families=families, building_chains=chains)
