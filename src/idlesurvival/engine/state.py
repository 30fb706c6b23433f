from __future__ import annotations
from typing import Any, Dict, Mapping, Union
from pydantic import BaseModel, ConfigDict, Field
from .loader import ContentIndex

Number = Union[int, float]

def _base_stats() -> Dict[str, Number]:
    return {"luck": 0, "strength": 0, "knowledge": 0, "madness": 0}

class StorySection(BaseModel):
    model_config = ConfigDict(extra="allow")
    seen: Dict[str, Union[bool, int, float]] = Field(default_factory=dict)

class GameState(BaseModel):
    """
    Validated shape of the state tree. The rules engine itself reads plain mappings;
    use to_tree()/from_tree() at the boundary with persistence.
    """
    resources: Dict[str, Number] = Field(default_factory=dict)
    buildings: Dict[str, int] = Field(default_factory=dict)
    tools: Dict[str, bool] = Field(default_factory=dict)
    weapons: Dict[str, bool] = Field(default_factory=dict)
    clothing: Dict[str, bool] = Field(default_factory=dict)
    relics: Dict[str, bool] = Field(default_factory=dict)
    blessings: Dict[str, bool] = Field(default_factory=dict)
    stats: Dict[str, Number] = Field(default_factory=_base_stats)
    flags: Dict[str, bool] = Field(default_factory=dict)
    story: StorySection = Field(default_factory=StorySection)
    cooldowns: Dict[str, float] = Field(default_factory=dict)
    cooldownDurations: Dict[str, float] = Field(default_factory=dict)

    def to_tree(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any]) -> "GameState":
        return cls.model_validate(dict(tree))

def new_game_state(content: ContentIndex) -> Dict[str, Any]:
    """Starting tree: every catalog item unowned, every known resource at zero, flags down."""
    gs = GameState()
    for iid, item in content.items.items():
        getattr(gs, item.slot)[iid] = False
    for flag in sorted(content.flag_names()):
        gs.flags[flag] = False
    for name in sorted(content.resource_names()):
        gs.resources[name] = 0
    for key in content.building_actions():
        gs.buildings[key] = 0
    return gs.to_tree()
