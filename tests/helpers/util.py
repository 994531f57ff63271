import asyncio


async def settle(rounds: int = 3) -> None:
    """Let pending future callbacks run (they are scheduled with call_soon)."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class Recorder:
    """Callable that records its calls; stands in for host callbacks."""

    def __init__(self, name: str = "cb", side_effect=None) -> None:
        self.name = name
        self.calls: list[tuple] = []
        self._side_effect = side_effect

    def __call__(self, *args):
        self.calls.append(args)
        if self._side_effect is not None:
            self._side_effect(*args)

    @property
    def count(self) -> int:
        return len(self.calls)
