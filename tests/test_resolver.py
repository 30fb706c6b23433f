import copy
import random
import pytest
from idlesurvival.engine.bonuses import BonusEngine
from idlesurvival.engine.loader import ContentIndex
from idlesurvival.engine.requirements import RequirementChecker
from idlesurvival.engine.resolver import EffectResolver
from idlesurvival.engine.rng import SequenceRandom

@pytest.fixture
def content():
    return ContentIndex.from_definitions(
        actions=[
            {"id": "chopWood", "label": "Chop Wood", "show_when": {}, "effects": {"resources.wood": 5}},
            {"id": "lightFire", "label": "Light Fire", "show_when": {},
             "effects": {"flags.fireLit": True, "resources.wood": -2}},
            {"id": "gatherWood", "label": "Gather Wood", "category": "gathering", "show_when": {},
             "effects": {
                 "resources.wood": "random(2,5)",
                 "resources.herbs": {"probability": 0.5, "value": "random(1,2)",
                                     "logMessage": "You find some herbs.", "triggerEvent": "herbsFound"},
                 "relics.old_trinket": {"probability": 0.01, "value": True, "condition": "flags.villageUnlocked"},
             }},
            {"id": "mineStone", "label": "Mine Stone", "category": "mining", "show_when": {},
             "effects": {"resources.stone": "random(4,8)"}},
            {"id": "craftTorch", "label": "Torch", "show_when": {}, "cost": {"resources.wood": 10},
             "effects": {"resources.wood": -10, "resources.torch": 1}},
            {"id": "craftBoneTotem", "label": "Bone Totem", "show_when": {"buildings.shrine": 1},
             "cost": {"resources.bones": 50}, "effects": {"resources.bones": -50, "resources.bone_totem": 1}},
            {"id": "sloppy", "label": "Sloppy", "show_when": {},
             "effects": {"resources..bad": 1, "resources.wood": "lots", "resources.stone": 2}},
            {"id": "buildHut", "label": "Wooden Hut", "building": True,
             "show_when": {1: {}, 2: {}, 3: {}},
             "cost": {1: {"resources.wood": 100}, 2: {"resources.wood": 200}},
             "effects": {1: {"resources.wood": -100, "buildings.hut": 1},
                         2: {"resources.wood": -200, "buildings.hut": 2}}},
        ],
        items=[
            {"id": "stone_pickaxe", "name": "Stone Pickaxe", "slot": "tools",
             "actionBonuses": {"mineStone": {"resourceMultiplier": 1.5, "resourceBonus": {"stone": 1}}}},
            {"id": "blacksmith_hammer", "name": "Blacksmith Hammer", "slot": "tools",
             "generalBonuses": {"craftingCostReduction": 0.1}},
        ],
    )

def make_resolver(content, rng):
    return EffectResolver(content, BonusEngine(content), rng)

def test_resources_accumulate(content):
    res = make_resolver(content, SequenceRandom([0.0])).resolve("chopWood", {"resources": {"wood": 10}})
    assert res.delta == {"resources": {"wood": 15}}

def test_input_state_not_mutated(content):
    state = {"resources": {"wood": 10, "stone": 1}, "flags": {"fireLit": False}}
    before = copy.deepcopy(state)
    resolver = make_resolver(content, SequenceRandom([0.3]))
    for aid in content.actions:
        resolver.resolve(aid, state)
    assert state == before

def test_non_resource_paths_overwrite(content):
    res = make_resolver(content, SequenceRandom([0.0])).resolve("lightFire", {"resources": {"wood": 5}, "flags": {"fireLit": False, "x": 1}})
    assert res.delta["flags"] == {"fireLit": True, "x": 1}
    assert res.delta["resources"] == {"wood": 3}

def test_bone_totem_end_to_end(content):
    state = {"resources": {"bones": 60}, "buildings": {"shrine": 1}}
    bonuses = BonusEngine(content)
    assert RequirementChecker(content, bonuses).is_executable("craftBoneTotem", state)
    res = EffectResolver(content, bonuses, SequenceRandom([0.0])).resolve("craftBoneTotem", state)
    assert res.delta == {"resources": {"bones": 10, "bone_totem": 1}}

def test_crafting_discount_applies_to_negative_effects(content):
    state = {"resources": {"wood": 20}, "tools": {"blacksmith_hammer": True}}
    res = make_resolver(content, SequenceRandom([0.0])).resolve("craftTorch", state)
    assert res.delta["resources"] == {"wood": 11, "torch": 1}

def test_random_bonus_then_multiplier(content):
    state = {"resources": {"stone": 0, "food": 5}, "tools": {"stone_pickaxe": True}}
    res = make_resolver(content, SequenceRandom([0.0])).resolve("mineStone", state)
    # 4 rolled + 1 flat bonus, then floor(5 * 0.5) extra
    assert res.delta["resources"] == {"stone": 7, "food": 5}
    assert any("multiplier" in line for line in res.trace)

def test_probability_effect_fires(content):
    rng = SequenceRandom([0.4, 0.0, 0.05])
    res = make_resolver(content, rng).resolve("gatherWood", {"resources": {"wood": 0}})
    assert res.delta["resources"] == {"wood": 3, "herbs": 1}
    assert res.log_messages == ["You find some herbs."]
    assert res.triggered_events == ["herbsFound"]
    # the trinket's condition is false, so it never draws
    assert rng.calls == 3
    assert "relics" not in res.delta

def test_probability_effect_misses(content):
    rng = SequenceRandom([0.6, 0.5])
    res = make_resolver(content, rng).resolve("gatherWood", {"resources": {"wood": 0}})
    assert res.delta["resources"] == {"wood": 4}
    assert res.log_messages == []
    assert res.triggered_events == []
    assert rng.calls == 2

def test_luck_raises_chance(content):
    rng = SequenceRandom([0.6])
    res = make_resolver(content, rng).resolve("gatherWood", {"resources": {"wood": 0}, "stats": {"luck": 100}})
    assert "herbs" in res.delta["resources"]
    assert res.triggered_events == ["herbsFound"]

def test_condition_met_allows_roll(content):
    rng = SequenceRandom([0.0])
    state = {"resources": {"wood": 0}, "flags": {"villageUnlocked": True}, "relics": {"old_trinket": False}}
    res = make_resolver(content, rng).resolve("gatherWood", state)
    assert res.delta["relics"] == {"old_trinket": True}

def test_malformed_entries_skipped(content):
    res = make_resolver(content, SequenceRandom([0.0])).resolve("sloppy", {})
    assert res.delta == {"resources": {"stone": 2}}
    assert sum(1 for line in res.trace if "skip" in line) == 2

def test_unknown_action_is_empty(content):
    res = make_resolver(content, SequenceRandom([0.0])).resolve("nope", {})
    assert res.is_empty

def test_tiered_effects_use_next_level(content):
    state = {"resources": {"wood": 250}, "buildings": {"hut": 1}}
    res = make_resolver(content, SequenceRandom([0.0])).resolve("buildHut", state)
    assert res.delta == {"resources": {"wood": 50}, "buildings": {"hut": 2}}

def test_missing_tier_effects_is_empty(content):
    res = make_resolver(content, SequenceRandom([0.0])).resolve("buildHut", {"buildings": {"hut": 2}})
    assert res.is_empty
    assert any("no effects" in line for line in res.trace)

def test_amplify_scales_gains_only(content):
    resolver = make_resolver(content, SequenceRandom([0.0]))
    assert resolver.resolve("chopWood", {"resources": {"wood": 10}}, amplify=True).delta == {"resources": {"wood": 60}}
    res = resolver.resolve("craftTorch", {"resources": {"wood": 20}}, amplify=True)
    assert res.delta["resources"] == {"wood": 10, "torch": 10}

def test_same_seed_same_outcome(content):
    state = {"resources": {"wood": 0}, "tools": {"stone_pickaxe": True}}
    first = make_resolver(content, random.Random(42))
    second = make_resolver(content, random.Random(42))
    for aid in ("gatherWood", "mineStone", "gatherWood"):
        assert first.resolve(aid, state).delta == second.resolve(aid, state).delta
