import pytest
from idlesurvival.engine.bonuses import BonusEngine
from idlesurvival.engine.loader import ContentIndex
from idlesurvival.engine.requirements import RequirementChecker, adjusted_cost, select_tier

@pytest.fixture
def content():
    return ContentIndex.from_definitions(
        actions=[
            {"id": "gatherWood", "label": "Gather Wood", "show_when": {"flags.fireLit": True}, "cooldown": 3},
            {"id": "alwaysThere", "label": "Look Around", "show_when": {}},
            {"id": "secretPassage", "label": "Secret Passage", "effects": {"flags.secret": True}},
            {"id": "craftTorch", "label": "Torch", "show_when": {"flags.fireLit": True},
             "cost": {"resources.wood": 10}, "effects": {"resources.wood": -10, "resources.torch": 1}, "cooldown": 2},
            {"id": "craftBoneTotem", "label": "Bone Totem", "show_when": {"buildings.shrine": 1},
             "cost": {"resources.bones": 50}, "effects": {"resources.bones": -50, "resources.bone_totem": 1}},
            {"id": "performRite", "label": "Rite", "show_when": {},
             "cost": {"buildings.shrine": 1, "resources.bones": 5, "flags.note": "ignored"}},
            {"id": "brokenGate", "label": "Broken", "show_when": {"flags..oops": True}, "cost": {"resources..x": 1}},
            {"id": "buildHut", "label": "Wooden Hut", "building": True,
             "show_when": {1: {"flags.villageUnlocked": True}, 2: {"buildings.cabin": 1}, 3: {"buildings.blacksmith": 1}},
             "cost": {1: {"resources.wood": 100}, 2: {"resources.wood": 200}, 3: {"resources.wood": 400}},
             "effects": {1: {"resources.wood": -100, "buildings.hut": 1}},
             "cooldown": {1: 10, 2: 20, 3: 30}},
            {"id": "buildWorkshop", "label": "Workshop", "building": True,
             "show_when": {1: {}}, "cost": {1: {"resources.wood": 150}},
             "effects": {1: {"buildings.workshop": 1}}, "buildingCostReduction": 0.25},
        ],
        items=[
            {"id": "blacksmith_hammer", "name": "Blacksmith Hammer", "slot": "tools",
             "generalBonuses": {"craftingCostReduction": 0.1}},
            {"id": "stone_axe", "name": "Stone Axe", "slot": "tools",
             "actionBonuses": {"gatherWood": {"cooldownReduction": 0.5}}},
        ],
    )

@pytest.fixture
def checker(content):
    return RequirementChecker(content, BonusEngine(content))

def test_unknown_action_is_neither_visible_nor_executable(checker):
    assert checker.is_visible("nope", {}) is False
    assert checker.is_executable("nope", {}) is False

def test_visibility_flat(checker):
    assert checker.is_visible("gatherWood", {"flags": {"fireLit": True}})
    assert not checker.is_visible("gatherWood", {"flags": {"fireLit": False}})
    assert not checker.is_visible("gatherWood", {})
    assert checker.is_visible("alwaysThere", {})
    assert not checker.is_visible("secretPassage", {})

def test_visibility_uses_exact_building_count(checker):
    assert checker.is_visible("craftBoneTotem", {"buildings": {"shrine": 1}})
    assert not checker.is_visible("craftBoneTotem", {"buildings": {"shrine": 2}})

def test_tiered_visibility_uses_next_level(checker):
    assert checker.is_visible("buildHut", {"flags": {"villageUnlocked": True}})
    # one hut built -> level 2 requires exactly one cabin
    assert checker.is_visible("buildHut", {"buildings": {"hut": 1, "cabin": 1}})
    assert not checker.is_visible("buildHut", {"buildings": {"hut": 1, "cabin": 2}})
    # no level 4 defined
    assert not checker.is_visible("buildHut", {"buildings": {"hut": 3, "blacksmith": 1}})

def test_tiered_cost_selects_next_level(checker):
    # at level 2 the key 3 cost (400 wood) applies, not key 1 or the whole map
    assert not checker.is_executable("buildHut", {"buildings": {"hut": 2}, "resources": {"wood": 300}})
    assert checker.is_executable("buildHut", {"buildings": {"hut": 2}, "resources": {"wood": 400}})
    assert checker.is_executable("buildHut", {"buildings": {"hut": 0}, "resources": {"wood": 150}})
    assert not checker.is_executable("buildHut", {"buildings": {"hut": 3}, "resources": {"wood": 10_000}})

def test_select_tier(content):
    hut = content.actions["buildHut"]
    tier = select_tier(hut, {"buildings": {"hut": 1}})
    assert tier.level == 2
    assert tier.cost == {"resources.wood": 200}
    assert tier.effects is None
    assert tier.cooldown == 20
    flat = select_tier(content.actions["craftTorch"], {})
    assert flat.level is None
    assert flat.cost == {"resources.wood": 10}

def test_cooldown_blocks_execution(checker):
    state = {"resources": {"wood": 50}, "cooldowns": {"craftTorch": 1.5}}
    assert not checker.is_executable("craftTorch", state)
    state["cooldowns"]["craftTorch"] = 0
    assert checker.is_executable("craftTorch", state)

def test_no_cost_is_affordable(checker):
    assert checker.is_executable("gatherWood", {})

def test_crafting_discount(checker):
    assert adjusted_cost(10, 0.1) == 9
    assert adjusted_cost(10, None) == 10
    hammer = {"tools": {"blacksmith_hammer": True}}
    assert checker.is_executable("craftTorch", dict(hammer, resources={"wood": 9}))
    assert not checker.is_executable("craftTorch", dict(hammer, resources={"wood": 8}))
    assert not checker.is_executable("craftTorch", {"resources": {"wood": 9}})

def test_building_reduction_does_not_lower_the_gate(checker):
    state = {"buildings": {"workshop": 1}, "flags": {"villageUnlocked": True}, "resources": {"wood": 75}}
    assert not checker.is_executable("buildHut", state)
    assert not checker.is_executable("buildHut", dict(state, resources={"wood": 99}))
    assert checker.is_executable("buildHut", dict(state, resources={"wood": 100}))
    assert checker.cost_text("buildHut", state) == "-100 Wood"
    higher = {"buildings": {"hut": 2, "workshop": 1, "blacksmith": 1}, "resources": {"wood": 360}}
    assert not checker.is_executable("buildHut", higher)

def test_non_resource_cost_is_exact(checker):
    assert checker.is_executable("performRite", {"buildings": {"shrine": 1}, "resources": {"bones": 5}})
    assert not checker.is_executable("performRite", {"buildings": {"shrine": 2}, "resources": {"bones": 5}})
    assert not checker.is_executable("performRite", {"buildings": {"shrine": 1}, "resources": {"bones": 4}})

def test_malformed_paths_fail_closed(checker):
    assert checker.is_visible("brokenGate", {}) is False
    assert checker.is_executable("brokenGate", {}) is False

def test_negative_inputs_compare_correctly(checker):
    assert not checker.is_executable("craftBoneTotem", {"resources": {"bones": -60}})

@pytest.mark.parametrize("state", [
    {"resources": {"wood": 10}},
    {"resources": {"wood": 9}, "tools": {"blacksmith_hammer": True}},
    {"resources": {"wood": 100}, "flags": {"villageUnlocked": True}},
    {"resources": {"bones": 50}, "buildings": {"shrine": 1}},
])
def test_affordability_is_monotonic(checker, content, state):
    for aid in content.actions:
        if not checker.is_executable(aid, state):
            continue
        richer = dict(state, resources={k: v + 1000 for k, v in state["resources"].items()})
        assert checker.is_executable(aid, richer), aid

def test_end_to_end_bone_totem_gate(checker):
    state = {"resources": {"bones": 60}, "buildings": {"shrine": 1}}
    assert checker.is_visible("craftBoneTotem", state)
    assert checker.is_executable("craftBoneTotem", state)

def test_unmet_requirements_explain(checker):
    reasons = checker.unmet_requirements("craftTorch", {"resources": {"wood": 3}, "cooldowns": {"craftTorch": 2}})
    text = " | ".join(reasons)
    assert "cooling down" in text
    assert "flags.fireLit" in text
    assert "need 10, have 3" in text
    assert checker.unmet_requirements("buildHut", {"buildings": {"hut": 3}})[0] == "not available at this level"
    assert checker.unmet_requirements("craftTorch", {"flags": {"fireLit": True}, "resources": {"wood": 10}}) == []

def test_cost_text(checker):
    assert checker.cost_text("craftTorch", {"tools": {"blacksmith_hammer": True}}) == "-9 Wood"
    assert checker.cost_text("craftBoneTotem", {}) == "-50 Bones"
    assert checker.cost_text("gatherWood", {}) == ""

def test_effective_cooldown(checker):
    assert checker.effective_cooldown("gatherWood", {}) == 3
    assert checker.effective_cooldown("gatherWood", {"tools": {"stone_axe": True}}) == pytest.approx(2.5)
    assert checker.effective_cooldown("buildHut", {"buildings": {"hut": 2}}) == 30

def test_visible_actions(checker):
    assert checker.visible_actions({"flags": {"fireLit": True}}) == ["gatherWood", "alwaysThere", "craftTorch", "performRite", "buildWorkshop"]
