from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple
import typer
from pydantic import ValidationError
from idlesurvival.engine.conditions import ConditionSyntaxError, compile_condition
from idlesurvival.engine.loader import (
    ActionAdapter, FamilyAdapter, ItemAdapter, _iter_files, _load_file, _records, tag_action,
)
from idlesurvival.engine.schema_models import (
    BuildingChain, EffectSpecError, EquipmentFamily, ProbabilityEffect, TieredActionSpec, parse_effect,
)
from idlesurvival.engine.state_paths import StatePathError, parse_path
from idlesurvival.util.paths import content_dir as default_content_dir

app = typer.Typer(add_completion=False)

def _tiers(raw: Mapping[str, Any], key: str, tiered: bool) -> List[Tuple[str, Mapping[str, Any]]]:
    block = raw.get(key) or {}
    if not tiered:
        return [(key, block)]
    return [(f"{key}[{lv}]", sub or {}) for lv, sub in block.items()]

def check_action_entries(action, file_path: str) -> List[str]:
    """Paths, effect tokens and guard expressions of one validated action."""
    errs: List[str] = []
    tiered = isinstance(action, TieredActionSpec)
    raw = action.model_dump()
    for key in ("show_when", "cost", "effects"):
        for label, mapping in _tiers(raw, key, tiered):
            for path, value in mapping.items():
                where = f"{file_path}:{action.id}.{label}.{path}"
                try:
                    parse_path(path)
                except StatePathError as e:
                    errs.append(f"{where}: {e}")
                if key != "effects":
                    continue
                try:
                    spec = parse_effect(value)
                except EffectSpecError as e:
                    errs.append(f"{where}: {e}")
                    continue
                if isinstance(spec, ProbabilityEffect):
                    try:
                        spec.outcome()
                        if spec.condition:
                            compile_condition(spec.condition)
                    except (EffectSpecError, ConditionSyntaxError) as e:
                        errs.append(f"{where}: {e}")
    if tiered:
        missing_cost = sorted(set(action.show_when) - set(action.cost))
        if missing_cost:
            errs.append(f"{file_path}:{action.id}: levels {missing_cost} are visible but have no cost")
    return errs

@app.command("export-schemas")
def export_schemas_cmd(out: Path = typer.Option(Path("docs/schemas"), "--out")):
    from idlesurvival.tools.export_schemas import export_schemas
    export_schemas(out)
    typer.echo(f"Exported schemas to {out}")

@app.command("validate-content")
def validate_content(
    content_dir: Optional[Path] = typer.Argument(None, help="Content pack root (defaults to the bundled pack)"),
    warn_unused: bool = typer.Option(False, "--warn-unused", help="Warn on items no action can grant"),
):
    root = content_dir or default_content_dir()
    ok = True
    actions: Dict[str, Any] = {}
    items: Dict[str, Any] = {}
    families: Dict[str, EquipmentFamily] = {}
    chains: Dict[str, BuildingChain] = {}

    groups = [("actions", ActionAdapter), ("items", ItemAdapter), ("families", FamilyAdapter)]
    for sub, adapter in groups:
        for fp in _iter_files(root / sub):
            for raw in _records(_load_file(fp)):
                if not isinstance(raw, dict):
                    ok = False
                    typer.echo(f"[ERROR] {fp}: expected a mapping, got {type(raw).__name__}", err=True)
                    continue
                try:
                    obj = adapter.validate_python(tag_action(raw) if sub == "actions" else raw)
                except ValidationError as e:
                    ok = False
                    typer.echo(f"[ERROR] {fp}: {e}", err=True)
                    continue
                if sub == "actions":
                    bucket: Dict[str, Any] = actions
                elif sub == "items":
                    bucket = items
                else:
                    bucket = families if isinstance(obj, EquipmentFamily) else chains
                if obj.id in bucket:
                    ok = False
                    typer.echo(f"[ERROR] {fp}: duplicate {sub} id '{obj.id}'", err=True)
                    continue
                bucket[obj.id] = obj
                if sub == "actions":
                    for msg in check_action_entries(obj, str(fp)):
                        ok = False
                        typer.echo(f"[ERROR] {msg}", err=True)

    # Cross references
    for fam in families.values():
        for iid in fam.tiers:
            item = items.get(iid)
            if item is None:
                ok = False
                typer.echo(f"[ERROR] family '{fam.id}' references missing item '{iid}'", err=True)
            elif item.slot != fam.slot:
                ok = False
                typer.echo(f"[ERROR] family '{fam.id}' is {fam.slot} but '{iid}' is {item.slot}", err=True)
    building_keys: Set[str] = {a.building_key for a in actions.values() if isinstance(a, TieredActionSpec)}
    for chain in chains.values():
        for key in chain.tiers:
            if key not in building_keys:
                ok = False
                typer.echo(f"[ERROR] building chain '{chain.id}' references unknown building '{key}'", err=True)
    categories = {a.category for a in actions.values() if a.category}
    for item in items.values():
        for key in item.actionBonuses:
            if key not in actions and key not in categories:
                typer.echo(f"[WARN] item '{item.id}' has bonuses for unknown action/category '{key}'")

    if warn_unused:
        granted: Set[str] = set()
        for a in actions.values():
            blocks = a.effects.values() if isinstance(a, TieredActionSpec) else [a.effects]
            for block in blocks:
                for path in block:
                    granted.add(path.rsplit(".", 1)[-1])
        for iid in sorted(set(items) - granted):
            typer.echo(f"[WARN] no action grants item '{iid}'")

    if not ok:
        raise typer.Exit(code=1)
    typer.echo(f"Content validated successfully ({len(actions)} actions, {len(items)} items).")

if __name__ == "__main__":
    app()
