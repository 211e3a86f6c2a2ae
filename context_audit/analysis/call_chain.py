"""The path of function names from the audit root to the current frame."""


class CallChain:
    """Stack of display names maintained by the traversal.

    Every ``push`` made while visiting a function is matched by exactly one
    ``pop`` when that visit ends, on every exit path.
    """

    def __init__(self) -> None:
        self._names: list[str] = []

    def push(self, name: str) -> None:
        self._names.append(name)

    def pop(self) -> str:
        if not self._names:
            raise IndexError("pop from an empty call chain")
        return self._names.pop()

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"CallChain({' -> '.join(self._names)})"
