class DebPartialError(RuntimeError):
    """Base class for conditions that abort a run."""


class ConfigError(DebPartialError):
    """Invalid option or option combination."""


class IndexReadError(DebPartialError):
    """An index document could not be fetched, read or decompressed."""


class OversizedSingletonError(DebPartialError):
    """A single package or source is larger than the partition it must go into."""

    def __init__(self, kind: str, name: str, size: int, capacity: int):
        self.kind = kind
        self.name = name
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"Size '{capacity}' is too small to locate {kind} '{name}' in a partition: size '{size}'"
        )
