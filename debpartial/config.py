from dataclasses import dataclass, field

from .errors import ConfigError

# Archive layout handled by default. Override with --dist/--section/--arch.
DEFAULT_DISTS = ["unstable"]
DEFAULT_SECTIONS = ["main", "contrib", "non-free"]
DEFAULT_ARCHITECTURES = ["i386"]

DEFAULT_SIZES = ["CD74"] # Literal byte counts and/or media aliases, see media.py
DEFAULT_DIR_PREFIX = "Debian"
DEFAULT_DIR_SRC_PREFIX = "Debian-Src"
DEFAULT_LIMIT = 0 # 0 means no limit on the number of partitions

# Used when the source archive is an http(s) mirror
MAX_RETRIES = 3
RETRY_DELAY = 5  # seconds
CHUNK_SIZE = 8192 * 1024 # 8 MB chunks for download
CONNECT_TIMEOUT = 15 # seconds
READ_TIMEOUT = 60 # seconds


@dataclass
class PartitionConfig:
    """Options consumed by the partitioner."""
    sizes: list = field(default_factory=lambda: list(DEFAULT_SIZES))
    src_sizes: list | None = None # Falls back to 'sizes'
    limit: int = DEFAULT_LIMIT
    with_sources: bool = True
    merge_sources: bool = False
    ignore_large_packages: bool = False

    @property
    def separate_sources(self) -> bool:
        return self.with_sources and not self.merge_sources

    @property
    def effective_src_sizes(self) -> list:
        return self.src_sizes if self.src_sizes else self.sizes

    def validate(self):
        if self.merge_sources and not self.with_sources:
            raise ConfigError("--merge-source and --nosource cannot be combined")
        if self.limit < 0:
            raise ConfigError(f"Partition limit must not be negative: {self.limit}")
        if self.separate_sources and self.limit == 1:
            raise ConfigError("Partition limit must be larger than 1 when sources get their own partitions")
        if not self.sizes:
            raise ConfigError("At least one partition size is required")
