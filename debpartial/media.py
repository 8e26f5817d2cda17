import logging

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Usable share of a medium: the filesystem block size makes files take up
# more space than their byte count
SAFE_SPACE = 0.93

RAW_MEDIA_SIZES = {
    "FD": 1440000,
    "CF8": 8 * 1024 * 1024,
    "CF16": 16 * 1024 * 1024,
    "CF32": 32 * 1024 * 1024,
    "CF64": 64 * 1024 * 1024,
    "MO128": 128 * 1024 * 1024,
    "MO230": 230 * 1024 * 1024,
    "MO640": 640 * 1024 * 1024,
    "MO1.3G": 1300 * 1024 * 1024,
    # CD: 2048-byte blocks (Mode 2, XA Form 1), 75 blocks per second of audio
    "CD74": 74 * 60 * 75 * 2048,
    "CD80": ((79 * 60 * 75) + (57 * 75) + 74) * 2048, # 79m57s74
    "DVD-RAM": 2600000000,
    "DVD": 4700000000,
}


class MediaTable:
    """Maps media aliases to usable byte capacities."""

    def __init__(self, raw_sizes: dict[str, int] = None, safe_space: float = SAFE_SPACE):
        raw_sizes = RAW_MEDIA_SIZES if raw_sizes is None else raw_sizes
        self._sizes = {name: round(size * safe_space) for name, size in raw_sizes.items()}

    def __contains__(self, name):
        return name in self._sizes

    def names(self) -> list[str]:
        return list(self._sizes)

    def resolve(self, name: str) -> int:
        """Capacity for an alias; unknown aliases warn and resolve to 0."""
        try:
            return self._sizes[name]
        except KeyError:
            logger.warning(f"Unknown media name: {name}")
            return 0


MEDIA = MediaTable()


def parse_capacity_list(values: list[str], table: MediaTable = MEDIA) -> list:
    """
    Validates capacity strings from the command line.
    Plain digits become ints, known aliases are kept as names.
    Anything else raises ConfigError.
    """
    parsed = []
    for value in values:
        value = str(value).strip()
        if value.isdigit():
            parsed.append(int(value))
        elif value in table:
            parsed.append(value)
        else:
            raise ConfigError(f"Unknown media type {value}")
    return parsed


class CapacitySequence:
    """
    Per-partition capacities. Entries may be byte counts or media aliases.
    Partitions past the end of the list reuse the last entry.
    """

    def __init__(self, entries: list, table: MediaTable = MEDIA):
        if not entries:
            raise ConfigError("Capacity sequence must not be empty")
        self._entries = list(entries)
        self._table = table
        self._resolved: dict[int, int] = {}

    def __len__(self):
        return len(self._entries)

    def capacity_for(self, index: int) -> int:
        slot = min(index, len(self._entries) - 1)
        if slot not in self._resolved:
            entry = self._entries[slot]
            self._resolved[slot] = int(entry) if isinstance(entry, int) else self._table.resolve(entry)
        return self._resolved[slot]
