from __future__ import annotations
from typing import List

class TraceSession:
    def __init__(self, tag: str = "") -> None:
        self.tag = tag
        self.lines: List[str] = []

    def add(self, line: str) -> None:
        self.lines.append(f"[{self.tag}] {line}" if self.tag else line)

    def extend(self, many: list[str]) -> None:
        for line in many:
            self.add(line)

    def dump(self) -> list[str]:
        return list(self.lines)
