from __future__ import annotations
from pathlib import Path
import json
from idlesurvival.engine.loader import ActionAdapter, FamilyAdapter
from idlesurvival.engine.schema_models import ItemDefinition, ProbabilityEffect

def export_schemas(out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    schemas = {
        "ActionDefinition.schema.json": ActionAdapter.json_schema(),
        "ItemDefinition.schema.json": ItemDefinition.model_json_schema(),
        "Family.schema.json": FamilyAdapter.json_schema(),
        "ProbabilityEffect.schema.json": ProbabilityEffect.model_json_schema(),
    }
    for name, schema in schemas.items():
        (out_dir / name).write_text(json.dumps(schema, indent=2), encoding="utf-8")

if __name__ == "__main__":
    root = Path(__file__).resolve().parents[3] / "docs" / "schemas"
    export_schemas(root)
    print(f"Exported schemas to {root}")
