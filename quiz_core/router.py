from __future__ import annotations

from typing import Callable, Dict, List, Tuple
import logging

log = logging.getLogger(__name__)

TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "A": ("B",),
    "B": ("C",),
    "C": ("D",),
    "D": ("E", "Archetype"),
    "E": ("Archetype",),
    "Archetype": ("Summary",),
    "Summary": (),
}


class PhaseTransitionError(RuntimeError):
    pass


class PhaseRouter:
    """Forward-only phase guard; every phase is entered at most once."""

    def __init__(self, start: str = "A"):
        self.current = start
        self._visited: List[str] = [start]
        self._listeners: List[Callable[[str, str], None]] = []

    def can_transition(self, to: str) -> bool:
        return to in TRANSITIONS.get(self.current, ()) and to not in self._visited

    def transition(self, to: str) -> str:
        if not self.can_transition(to):
            raise PhaseTransitionError(f"Invalid transition {self.current} -> {to}")
        prev, self.current = self.current, to
        self._visited.append(to)
        log.debug("router %s -> %s", prev, to)
        for cb in list(self._listeners):
            cb(prev, to)
        return to

    def on_change(self, callback: Callable[[str, str], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def history(self) -> List[str]:
        return list(self._visited)

    def restore(self, visited: List[str]) -> None:
        if not visited:
            return
        self._visited = list(visited)
        self.current = visited[-1]

    def reset(self) -> None:
        self.current = "A"
        self._visited = ["A"]
