from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .symbols import Symbol


@dataclass
class EntryLogger:
    """Collects one line per decoded entity, e.g. ``machine assembler ("Assembler")``."""

    destination: Optional[Path] = None
    echo: bool = False
    lines: List[str] = field(default_factory=list)

    def record(self, kind: str, id_text: str, name: Symbol | str) -> None:
        line = f'{kind} {id_text} ("{name}")'
        self.lines.append(line)
        if self.echo:
            print(line)

    def note(self, message: str) -> None:
        self.lines.append(message)
        if self.echo:
            print(message)

    def flush(self) -> None:
        if self.destination is None or not self.lines:
            return
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        self.destination.write_text("\n".join(self.lines) + "\n", encoding="utf-8")


def log_counts(logger: Optional[EntryLogger], label: str, counts: Sequence[tuple[str, int]]) -> None:
    if logger is None:
        return
    summary = ", ".join(f"{count} {name}" for name, count in counts)
    logger.note(f"{label}: {summary}")
