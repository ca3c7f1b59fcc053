"""Ordered registry of runners executed by every worker."""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Tuple

# runner(logger, is_stopped) -> None
Runner = Callable[[Any, Callable[[], bool]], None]


class RunnerRegistry:
    """Runners keyed by name, iterated in registration order.

    Re-registering a name replaces the runner but keeps its position.
    Values that are not callable are ignored.
    """

    def __init__(self):
        self._runners: Dict[str, Runner] = {}

    def register(self, name: str, runner: Any) -> None:
        if callable(runner):
            self._runners[name] = runner

    def register_many(self, runners: Mapping[str, Any]) -> None:
        for name, runner in runners.items():
            self.register(name, runner)

    def get(self, name: str) -> Runner:
        return self._runners[name]

    def names(self) -> List[str]:
        return list(self._runners)

    def items(self) -> List[Tuple[str, Runner]]:
        return list(self._runners.items())

    def __iter__(self) -> Iterator[str]:
        return iter(self._runners)

    def __len__(self) -> int:
        return len(self._runners)

    def __contains__(self, name: object) -> bool:
        return name in self._runners
