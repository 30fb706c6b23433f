from __future__ import annotations
from dataclasses import dataclass
import re
from typing import Any, Dict, List, Literal, Mapping, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, Field, ValidationError, model_validator

# Common aliases
Number = Union[int, float]
ItemSlot = Literal["tools", "weapons", "clothing", "relics", "blessings"]
StatName = Literal["luck", "strength", "knowledge", "madness"]

_RANDOM_RE = re.compile(r"^\s*random\(\s*(-?\d+)\s*,\s*(-?\d+)\s*\)\s*$")
_BUILD_PREFIX = "build"

class EffectSpecError(ValueError):
    pass

# ---------------- Bonuses (carried by items) ----------------

class ActionBonus(BaseModel):
    resourceBonus: Dict[str, Number] = Field(default_factory=dict)
    resourceMultiplier: float = 1.0
    cooldownReduction: float = 0.0
    probabilityBonus: float = 0.0

    @model_validator(mode="after")
    def _validate(self):
        if self.resourceMultiplier <= 0:
            raise ValueError("resourceMultiplier must be > 0")
        return self

class GeneralBonuses(BaseModel):
    luck: Number = 0
    strength: Number = 0
    knowledge: Number = 0
    madness: Number = 0
    madnessReduction: Number = 0
    craftingCostReduction: float = 0.0
    buildingCostReduction: float = 0.0

    @model_validator(mode="after")
    def _validate(self):
        errs: list[str] = []
        for name in ("craftingCostReduction", "buildingCostReduction"):
            v = getattr(self, name)
            if not 0.0 <= v <= 1.0:
                errs.append(f"{name} must be within [0, 1], got {v}")
        if errs:
            raise ValueError("; ".join(errs))
        return self

class ItemDefinition(BaseModel):
    id: str
    name: str
    description: str = ""
    slot: ItemSlot
    # keyed by action id or by action category (e.g. "mining")
    actionBonuses: Dict[str, ActionBonus] = Field(default_factory=dict)
    generalBonuses: GeneralBonuses = Field(default_factory=GeneralBonuses)

class EquipmentFamily(BaseModel):
    """Ordered tiers, weakest first. Only the best owned tier grants action bonuses."""
    type: Literal["equipment"] = "equipment"
    id: str
    slot: ItemSlot
    tiers: List[str]

    @model_validator(mode="after")
    def _validate(self):
        if not self.tiers:
            raise ValueError(f"family '{self.id}' needs at least one tier")
        if len(set(self.tiers)) != len(self.tiers):
            raise ValueError(f"family '{self.id}' lists a tier twice")
        return self

class BuildingChain(BaseModel):
    """Buildings that supersede each other; only the highest owned contributes stats."""
    type: Literal["building"] = "building"
    id: str
    tiers: List[str]

    @model_validator(mode="after")
    def _validate(self):
        if not self.tiers:
            raise ValueError(f"building chain '{self.id}' needs at least one tier")
        if len(set(self.tiers)) != len(self.tiers):
            raise ValueError(f"building chain '{self.id}' lists a building twice")
        return self

FamilyUnion = Annotated[Union[EquipmentFamily, BuildingChain], Field(discriminator="type")]

# ---------------- Effect specs (parsed per entry at resolution time) ----------------

@dataclass(frozen=True)
class ConstantEffect:
    value: Union[bool, int, float]

@dataclass(frozen=True)
class RandomRange:
    min: int
    max: int

    def draw(self, rng) -> int:
        span = self.max - self.min + 1
        return self.min + min(int(rng.random() * span), span - 1)

    def __str__(self) -> str:
        return f"random({self.min},{self.max})"

class ProbabilityEffect(BaseModel):
    probability: float = Field(ge=0.0, le=1.0)
    value: Union[bool, int, float, str]
    condition: Optional[str] = None
    logMessage: Optional[str] = None
    triggerEvent: Optional[str] = None

    @model_validator(mode="after")
    def _validate(self):
        if isinstance(self.value, str) and not _RANDOM_RE.match(self.value):
            raise ValueError(f"value must be a number, boolean or random(min,max), got '{self.value}'")
        return self

    def outcome(self) -> ConstantEffect | RandomRange:
        return parse_value(self.value)

EffectSpec = Union[ConstantEffect, RandomRange, ProbabilityEffect]

def parse_value(raw: Any) -> ConstantEffect | RandomRange:
    if isinstance(raw, (bool, int, float)):
        return ConstantEffect(raw)
    if isinstance(raw, str):
        m = _RANDOM_RE.match(raw)
        if not m:
            raise EffectSpecError(f"unparsable effect token '{raw}'")
        lo, hi = int(m.group(1)), int(m.group(2))
        if lo > hi:
            raise EffectSpecError(f"random range '{raw}' has min > max")
        return RandomRange(lo, hi)
    raise EffectSpecError(f"unsupported effect value {raw!r}")

def parse_effect(raw: Any) -> EffectSpec:
    """Raw content value -> typed effect spec. Raises EffectSpecError on malformed data."""
    if isinstance(raw, Mapping):
        try:
            return ProbabilityEffect.model_validate(raw)
        except ValidationError as e:
            raise EffectSpecError(f"invalid probability effect: {e}") from e
    return parse_value(raw)

# ---------------- Actions ----------------

class _ActionBase(BaseModel):
    id: str
    label: str
    description: str = ""
    category: Optional[str] = None
    # Passive contributions while the building stands (building actions only in practice)
    statsEffects: Dict[StatName, Number] = Field(default_factory=dict)
    craftingCostReduction: float = 0.0
    buildingCostReduction: float = 0.0

    @property
    def is_crafting(self) -> bool:
        return self.id.startswith("craft") or self.id.startswith("forge")

class FlatActionSpec(_ActionBase):
    kind: Literal["flat"] = "flat"
    show_when: Optional[Dict[str, Any]] = None
    cost: Dict[str, Any] = Field(default_factory=dict)
    effects: Dict[str, Any] = Field(default_factory=dict)
    cooldown: float = 0.0

class TieredActionSpec(_ActionBase):
    kind: Literal["tiered"] = "tiered"
    building_key: Optional[str] = None
    show_when: Dict[int, Dict[str, Any]] = Field(default_factory=dict)
    cost: Dict[int, Dict[str, Any]] = Field(default_factory=dict)
    effects: Dict[int, Dict[str, Any]] = Field(default_factory=dict)
    cooldown: Union[float, Dict[int, float]] = 0.0

    @model_validator(mode="after")
    def _validate(self):
        if self.building_key is None:
            key = self.id[len(_BUILD_PREFIX):] if self.id.startswith(_BUILD_PREFIX) else self.id
            if not key:
                raise ValueError(f"cannot derive building key from id '{self.id}'")
            object.__setattr__(self, "building_key", key[0].lower() + key[1:])
        levels = set(self.show_when) | set(self.cost) | set(self.effects)
        bad = sorted(lv for lv in levels if lv < 1)
        if bad:
            raise ValueError(f"tier levels start at 1, got {bad}")
        return self

    def cooldown_at(self, level: int) -> float:
        if isinstance(self.cooldown, dict):
            return float(self.cooldown.get(level, 0.0))
        return float(self.cooldown)

ActionDefinition = Annotated[Union[FlatActionSpec, TieredActionSpec], Field(discriminator="kind")]
