from dataclasses import dataclass, field
from pathlib import Path

@dataclass(frozen=True)
class PackageRecord:
    """One binary package entry from a Packages index."""
    name: str
    size: int
    filename: str # Pool path, also the dedup key across architecture builds
    version_str: str = ""
    sha256: str = ""

@dataclass
class SourceRecord:
    """One source package entry from a Sources index."""
    name: str
    directory: str
    version_str: str = ""
    size: int = 0 # Sum over every file listed in the stanza
    binaries: list[str] = field(default_factory=list)
    # (filename, size, sha256) per listed file; sha256 may be ""
    files: list[tuple[str, int, str]] = field(default_factory=list)

    def file_paths(self) -> list[str]:
        """Archive-relative paths of every listed file."""
        return [f"{self.directory}/{fname}" if self.directory else fname for fname, _, _ in self.files]

@dataclass
class Partition:
    """An ordered group of names filled up to the capacity for its index."""
    index: int
    capacity: int
    names: list[str] = field(default_factory=list)
    size: int = 0
    # Merge mode only: sources charged to this partition and their bytes
    sources: list[str] = field(default_factory=list)
    source_size: int = 0

    def add(self, name: str, size: int):
        self.names.append(name)
        self.size += size

    def charge_source(self, name: str, size: int):
        self.sources.append(name)
        self.source_size += size
        self.size += size

    @property
    def package_size(self) -> int:
        return self.size - self.source_size

    def __len__(self):
        return len(self.names)

    def __bool__(self):
        return bool(self.names)

    def summary(self, label: str) -> str:
        """Short one-line description such as 'Debian0: 2 packages. Size: 80 [ a, ... ]'."""
        text = f"{label}: {len(self.names)} {self._noun()}. Size: {self.package_size}"
        if self.sources:
            text += f" + {self.source_size} = {self.size}"
        if self.names:
            text += f" [ {self.names[0]}"
            if len(self.names) > 1:
                text += ", ..."
            text += " ]"
        return text

    def _noun(self) -> str:
        return "packages"

@dataclass
class SourcePartition(Partition):
    """A partition that holds sources only (separate-source mode)."""

    def _noun(self) -> str:
        return "sources"

@dataclass
class PartitionPlan:
    """Result of one partitioning pass, handed to the writer."""
    partitions: list[Partition] = field(default_factory=list)
    source_partitions: list[SourcePartition] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list) # Oversized and ignored
    unassigned: list[str] = field(default_factory=list) # Cut off by the partition limit

    def assigned(self) -> list[str]:
        return [name for part in self.partitions for name in part.names]

@dataclass
class RepoFile:
    """A file to materialize from the source archive into the destination tree."""
    url: str
    local_path: Path
    expected_size: int = 0 # 0 when unknown
    expected_sha256: str = "" # Optional, for verification

    # Hashable on URL so the same pool file referenced by several indices is handled once
    def __hash__(self):
        return hash(self.url)

    def __eq__(self, other):
        if not isinstance(other, RepoFile):
            return NotImplemented
        return self.url == other.url

# Outcomes of materializing one RepoFile
COPIED = "copied"
IGNORED = "ignored" # Already present in the destination
NOT_FOUND = "notfound"
FAILED = "failed"
