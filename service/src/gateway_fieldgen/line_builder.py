class LineBuilder:
    """Append-only list of emitted lines."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def append(self, *parts: str) -> None:
        self._lines.append("".join(parts))

    def appendf(self, fmt: str, *args) -> None:
        self._lines.append(fmt % args)

    def get_lines(self) -> list[str]:
        return list(self._lines)
