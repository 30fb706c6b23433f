from pathlib import Path
from typer.testing import CliRunner
from idlesurvival.engine.engine import GameEngine
from idlesurvival.engine.loader import load_content
from idlesurvival.engine.rng import SequenceRandom
from idlesurvival.engine.settings import Settings
from idlesurvival.engine.state import GameState, new_game_state
from idlesurvival.tools.validate import app as tools_app, check_action_entries

CONTENT_DIR = Path(__file__).resolve().parents[1] / "src" / "idlesurvival" / "content"

def test_smoke_new_game_state():
    content = load_content(CONTENT_DIR)
    state = new_game_state(content)
    assert state["flags"]["fireLit"] is False
    assert state["tools"]["stone_axe"] is False
    assert state["buildings"]["hut"] == 0
    assert state["stats"]["madness"] == 0
    GameState.from_tree(state)

def test_smoke_first_actions():
    content = load_content(CONTENT_DIR)
    engine = GameEngine(content, settings=Settings(), rng=SequenceRandom([0.0]))
    assert engine.requirements.visible_actions(engine.state) == ["lightFire"]
    out = engine.execute("do lightFire")
    assert out[0].startswith("[Action] Light Fire")
    assert engine.state["flags"]["fireLit"] is True
    assert engine.store.is_visible("gatherWood")
    assert not engine.store.is_visible("lightFire")

    out = engine.execute("do gatherWood")
    assert out[0] == "[Action] Gather Wood (cooldown 3s)"
    assert engine.state["resources"]["wood"] == 2
    assert "not possible" in engine.execute("do gatherWood")[0]

    assert any("gatherWood" in line for line in engine.execute("actions"))
    assert engine.execute("tick 5")[0].startswith("[Time] 5s passed")
    assert engine.execute("quit") == ["Goodbye."]
    assert engine.should_quit

def test_bundled_actions_are_well_formed():
    content = load_content(CONTENT_DIR)
    for action in content.actions.values():
        assert check_action_entries(action, "bundled") == []

def test_validate_content_cli():
    result = CliRunner().invoke(tools_app, ["validate-content", str(CONTENT_DIR)])
    assert result.exit_code == 0, result.output
    assert "Content validated successfully" in result.output

def test_bundled_workshop_does_not_lower_building_gate():
    engine = GameEngine(load_content(CONTENT_DIR), settings=Settings(), rng=SequenceRandom([0.0]))
    state = {"buildings": {"hut": 2, "workshop": 1, "blacksmith": 1}, "resources": {"wood": 360}}
    assert not engine.requirements.is_executable("buildHut", state)
    assert engine.requirements.is_executable("buildHut", dict(state, resources={"wood": 400}))
