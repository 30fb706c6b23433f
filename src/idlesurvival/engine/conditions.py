from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
import math
import re
from typing import Any, List, Mapping, Tuple, Union

from .state_paths import StatePath, StatePathError, get_path, parse_path

class ConditionSyntaxError(ValueError):
    pass

_COMPARISON_RE = re.compile(r"^(.+?)\s*(>=|<=|>|<|==|!=)\s*(.+)$")
_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_AT_LEAST_RE = re.compile(r"^\s*>=\s*(-?\d+(\.\d+)?)\s*$")

# ---------- compiled expression nodes ----------

@dataclass(frozen=True)
class Truthy:
    path: StatePath

    def holds(self, state: Mapping[str, Any]) -> bool:
        return truthy(get_path(state, self.path))

@dataclass(frozen=True)
class Not:
    path: StatePath

    def holds(self, state: Mapping[str, Any]) -> bool:
        return not truthy(get_path(state, self.path))

@dataclass(frozen=True)
class Compare:
    path: StatePath
    op: str
    right: Union[float, str]

    def holds(self, state: Mapping[str, Any]) -> bool:
        left = get_path(state, self.path)
        if self.op == "==":
            return loose_equals(left, self.right)
        if self.op == "!=":
            return not loose_equals(left, self.right)
        a, b = to_number(left), to_number(self.right)
        if self.op == ">=":
            return a >= b
        if self.op == "<=":
            return a <= b
        if self.op == ">":
            return a > b
        return a < b

@dataclass(frozen=True)
class AllOf:
    parts: Tuple["Node", ...]

    def holds(self, state: Mapping[str, Any]) -> bool:
        return all(p.holds(state) for p in self.parts)

@dataclass(frozen=True)
class AnyOf:
    parts: Tuple["Node", ...]

    def holds(self, state: Mapping[str, Any]) -> bool:
        return any(p.holds(state) for p in self.parts)

Node = Union[Truthy, Not, Compare, AllOf, AnyOf]

# ---------- value coercion (mirrors the save format's loose typing) ----------

def truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (Mapping, list, tuple)):
        return True
    return bool(value)

def to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        if value.strip() == "":
            return 0.0
        if _NUMBER_RE.match(value):
            return float(value)
    return math.nan

def loose_equals(left: Any, right: Union[float, str]) -> bool:
    if left is None:
        return False
    if isinstance(right, str) and isinstance(left, str):
        return left == right
    return to_number(left) == to_number(right)

# ---------- compiler ----------

def _compile_term(term: str) -> Node:
    if not term:
        raise ConditionSyntaxError("empty condition term")
    try:
        if term.startswith("!"):
            return Not(parse_path(term[1:].strip()))
        m = _COMPARISON_RE.match(term)
        if m:
            left, op, right = m.group(1).strip(), m.group(2), m.group(3).strip()
            value: Union[float, str] = float(right) if _NUMBER_RE.match(right) else right
            return Compare(parse_path(left), op, value)
        return Truthy(parse_path(term))
    except StatePathError as e:
        raise ConditionSyntaxError(f"cannot parse condition term '{term}': {e}") from e

def _compile(expression: str) -> Node:
    # Flat grammar: ' && ' binds loosest, then ' || '; no parentheses
    if " && " in expression:
        return AllOf(tuple(_compile(p.strip()) for p in expression.split(" && ")))
    if " || " in expression:
        return AnyOf(tuple(_compile(p.strip()) for p in expression.split(" || ")))
    return _compile_term(expression.strip())

@lru_cache(maxsize=8192)
def _compile_cached(expression: str) -> Node:
    return _compile(expression)

def compile_condition(expression: str) -> Node:
    if not isinstance(expression, str) or not expression.strip():
        raise ConditionSyntaxError(f"condition must be a non-empty string, got {expression!r}")
    return _compile_cached(expression)

def evaluate(expression: str, state: Mapping[str, Any]) -> bool:
    """
    Evaluate a guard expression against the state tree.
    Raises ConditionSyntaxError when the expression cannot be parsed.
    """
    return compile_condition(expression).holds(state)

def condition_cache_info() -> str:
    info = _compile_cached.cache_info()
    return f"condition-cache: hits={info.hits}, misses={info.misses}, size={info.currsize}/{info.maxsize}"

# ---------- requirement objects (show_when and friends) ----------

def requirement_holds(path: str, expected: Any, state: Mapping[str, Any]) -> bool:
    """
    One entry of a requirement mapping.
      bool   -> current value is exactly that bool
      number -> (current or 0) equals it exactly
      ">=N"  -> (current or 0) is at least N
      other  -> equality
    """
    current = get_path(state, path)
    if isinstance(expected, bool):
        return isinstance(current, bool) and current is expected
    if isinstance(expected, (int, float)):
        if isinstance(current, bool):
            return False
        return (current if current is not None else 0) == expected
    if isinstance(expected, str):
        m = _AT_LEAST_RE.match(expected)
        if m:
            return to_number(current if current is not None else 0) >= float(m.group(1))
    return current == expected

def check_requirements(requirements: Mapping[str, Any] | None, state: Mapping[str, Any]) -> bool:
    if not requirements:
        return True
    return all(requirement_holds(p, v, state) for p, v in requirements.items())

def failed_requirements(requirements: Mapping[str, Any] | None, state: Mapping[str, Any]) -> List[str]:
    out: List[str] = []
    for p, v in (requirements or {}).items():
        try:
            ok = requirement_holds(p, v, state)
        except StatePathError:
            ok = False
        if not ok:
            out.append(f"{p} must be {v!r} (is {_describe(get_path_safe(state, p))})")
    return out

def get_path_safe(state: Mapping[str, Any], path: str) -> Any:
    try:
        return get_path(state, path)
    except StatePathError:
        return None

def _describe(value: Any) -> str:
    return "unset" if value is None else repr(value)

def condition_paths(expression: str) -> List[str]:
    """State paths referenced by an expression (for content validation)."""
    out: List[str] = []
    def walk(node: Node) -> None:
        if isinstance(node, (AllOf, AnyOf)):
            for p in node.parts:
                walk(p)
        else:
            out.append(node.path.raw)
    walk(compile_condition(expression))
    return out
