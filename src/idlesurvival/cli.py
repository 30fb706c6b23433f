from __future__ import annotations
from collections import Counter
import random
from typing import List, Optional
import typer
from rich.console import Console
from rich.table import Table
from idlesurvival.engine.engine import GameEngine, ENGINE_VERSION
from idlesurvival.engine.settings import load_settings
from idlesurvival.engine.state_paths import set_into_delta, merge_delta

app = typer.Typer(add_completion=False)
console = Console()

@app.command()
def play():
    eng = GameEngine()
    typer.echo(f"idlesurvival {ENGINE_VERSION}. Type 'help' for commands.")
    while not eng.should_quit:
        cmd = typer.prompt(">", default="actions", show_default=False)
        for line in eng.execute(cmd):
            typer.echo(line)

@app.command()
def catalog():
    eng = GameEngine()
    table = Table(title="Actions", pad_edge=False)
    table.add_column("id")
    table.add_column("label")
    table.add_column("kind")
    table.add_column("category")
    table.add_column("cooldown")
    for aid, action in sorted(eng.content.actions.items()):
        cd = action.cooldown if not isinstance(action.cooldown, dict) else "/".join(f"{v:g}" for v in action.cooldown.values())
        table.add_row(aid, action.label, action.kind, action.category or "", f"{cd:g}" if isinstance(cd, float) else str(cd))
    console.print(table)

@app.command()
def simulate(
    action_id: str,
    times: int = typer.Option(1000, "--times", help="Number of independent resolutions"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible draws"),
    give: List[str] = typer.Option([], "--give", help="Set a state path before simulating, e.g. tools.iron_pickaxe=true"),
    amplify: bool = typer.Option(False, "--amplify", help="Apply the amplified-gains mode"),
):
    """Resolve one action many times against a fixed state and tabulate the outcome."""
    settings = load_settings()
    rng = random.Random(seed) if seed is not None else None
    eng = GameEngine(settings=settings, rng=rng)
    if action_id not in eng.content.actions:
        typer.echo(f"[ERROR] unknown action '{action_id}'", err=True)
        raise typer.Exit(code=1)

    state = eng.state
    for spec in give:
        path, _, raw = spec.partition("=")
        delta: dict = {}
        set_into_delta(delta, state, path.strip(), _parse_literal(raw.strip()))
        state = merge_delta(state, delta)

    before = state.get("resources") or {}
    totals: Counter = Counter()
    logs: Counter = Counter()
    events: Counter = Counter()
    for res in eng.resolver.resolve_many(action_id, state, times, amplify=amplify):
        for name, value in (res.delta.get("resources") or {}).items():
            totals[name] += value - before.get(name, 0)
        logs.update(res.log_messages)
        events.update(res.triggered_events)

    table = Table(title=f"{action_id} x{times}", pad_edge=False)
    table.add_column("resource")
    table.add_column("avg change", justify="right")
    for name, total in sorted(totals.items()):
        if total:
            table.add_row(name, f"{total / times:+.3f}")
    for msg, n in logs.most_common():
        table.add_row(f"log: {msg}", f"{n / times:.4f}")
    for ev, n in events.most_common():
        table.add_row(f"event: {ev}", f"{n / times:.4f}")
    console.print(table)

def _parse_literal(raw: str):
    low = raw.lower()
    if low in ("true", "false"):
        return low == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw

if __name__ == "__main__":
    app()
