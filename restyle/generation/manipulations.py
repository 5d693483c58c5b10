"""Two-pass queue of deferred source mutations."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List

from ..logging import get_logger
from ..models import Manipulation, ManipulationPass

_PASS_ORDER = (ManipulationPass.BEFORE_GENERATION, ManipulationPass.AFTER_GENERATION)


class ManipulationQueue:
    """Holds mutations until analysis is finished and runs each pass exactly once.

    Actions may enqueue further work for a later pass while a pass is running;
    enqueueing into a pass that has already run is an error.
    """

    def __init__(self) -> None:
        self._pending: Dict[ManipulationPass, List[Manipulation]] = {pass_: [] for pass_ in _PASS_ORDER}
        self._completed: List[ManipulationPass] = []
        self.logger = get_logger("manipulations")

    def add(self, action: Callable[[], None], pass_: ManipulationPass, label: str = "") -> None:
        self.append(Manipulation(action=action, pass_=pass_, label=label))

    def append(self, manipulation: Manipulation) -> None:
        if manipulation.pass_ in self._completed:
            raise RuntimeError(f"{manipulation.pass_.value} manipulations have already run")
        self._pending[manipulation.pass_].append(manipulation)

    def extend(self, manipulations: Iterable[Manipulation]) -> None:
        for manipulation in manipulations:
            self.append(manipulation)

    def pending(self, pass_: ManipulationPass) -> int:
        return len(self._pending[pass_])

    def has_run(self, pass_: ManipulationPass) -> bool:
        return pass_ in self._completed

    def run(self, pass_: ManipulationPass) -> int:
        """Execute every action queued for ``pass_`` in insertion order."""
        expected = _PASS_ORDER[len(self._completed)] if len(self._completed) < len(_PASS_ORDER) else None
        if pass_ is not expected:
            raise RuntimeError(f"Cannot run {pass_.value} manipulations out of order")
        queue = self._pending[pass_]
        executed = 0
        # Actions may append to this pass while it runs.
        while queue:
            manipulation = queue.pop(0)
            manipulation.action()
            executed += 1
        self._completed.append(pass_)
        self.logger.debug("Ran %d %s manipulation(s)", executed, pass_.value)
        return executed


__all__ = ["ManipulationQueue"]
