import logging
from typing import Callable, Iterable

from .models import PackageRecord, SourceRecord
from .repo_parser import parse_packages_file, parse_sources_file

logger = logging.getLogger(__name__)


# Catalogs are filled from every index of a run (all arches, dists and sections)
# and only read afterwards. A pool file listed by several indices, e.g. an
# 'Architecture: all' package in each binary-<arch>/Packages.gz, counts once.
class PackageCatalog:
    """Binary package name -> size in bytes."""

    def __init__(self):
        self._sizes: dict[str, int] = {}
        self._registered: set[str] = set() # Pool filenames already counted

    def add(self, record: PackageRecord) -> bool:
        """Counts a record unless its file was already counted. Returns True if counted."""
        if record.filename in self._registered:
            return False
        self._registered.add(record.filename)
        self._sizes[record.name] = self._sizes.get(record.name, 0) + record.size
        return True

    def add_records(self, records: Iterable[PackageRecord]) -> int:
        return sum(1 for record in records if self.add(record))

    def parse(self, content: bytes) -> list[PackageRecord]:
        """Adds every stanza of decompressed Packages content and returns the parsed records."""
        records = parse_packages_file(content)
        counted = self.add_records(records)
        logger.debug(f"Packages index: {len(records)} entries, {counted} new files")
        return records

    def size_of(self, name: str) -> int:
        return self._sizes.get(name, 0)

    def total_size(self, names: Iterable[str]) -> int:
        return sum(self.size_of(name) for name in names)

    def names(self) -> list[str]:
        """Package names in the order they were first seen."""
        return list(self._sizes)

    def __contains__(self, name):
        return name in self._sizes

    def __len__(self):
        return len(self._sizes)


def _warn_missing_source(binary: str):
    logger.warning(f"Source of {binary} not found")


class SourceCatalog:
    """
    Source package name -> size in bytes, plus the binary -> source mapping
    taken from the Binary field of each Sources stanza.

    'on_missing' is called once per binary name whose source is unknown,
    no matter how often that binary is looked up.
    """

    def __init__(self, on_missing: Callable[[str], None] | None = _warn_missing_source):
        self._sizes: dict[str, int] = {}
        self._binary_to_source: dict[str, str] = {}
        self._registered: set[str] = set() # 'directory/filename' already counted
        self._missing: dict[str, None] = {} # Insertion ordered set
        self._on_missing = on_missing

    def add(self, record: SourceRecord) -> int:
        """Registers a record. Returns the number of bytes newly counted."""
        for binary in record.binaries:
            self._binary_to_source[binary] = record.name
        self._sizes.setdefault(record.name, 0)
        counted = 0
        for path, (_, size, _) in zip(record.file_paths(), record.files):
            if path in self._registered:
                continue
            self._registered.add(path)
            counted += size
        self._sizes[record.name] += counted
        return counted

    def add_records(self, records: Iterable[SourceRecord]) -> int:
        return sum(self.add(record) for record in records)

    def parse(self, content: bytes) -> list[SourceRecord]:
        """Adds every stanza of decompressed Sources content and returns the parsed records."""
        records = parse_sources_file(content)
        counted = self.add_records(records)
        logger.debug(f"Sources index: {len(records)} entries, {counted} new bytes")
        return records

    def size_of(self, name: str) -> int:
        return self._sizes.get(name, 0)

    def total_size(self, names: Iterable[str], exclude: Iterable[str] = ()) -> int:
        """Sum of source sizes, not counting names in 'exclude'."""
        exclude = set(exclude)
        return sum(self.size_of(name) for name in names if name not in exclude)

    def source_of(self, binary: str) -> str | None:
        source = self._binary_to_source.get(binary)
        if source is None and binary not in self._missing:
            self._missing[binary] = None
            if self._on_missing is not None:
                self._on_missing(binary)
        return source

    def sources_of(self, binaries: Iterable[str]) -> list[str]:
        """Distinct sources of 'binaries', in order of first appearance."""
        found: dict[str, None] = {}
        for binary in binaries:
            source = self.source_of(binary)
            if source is not None:
                found[source] = None
        return list(found)

    def total_size_from_binaries(self, binaries: Iterable[str], exclude: Iterable[str] = ()) -> int:
        return self.total_size(self.sources_of(binaries), exclude)

    @property
    def missing(self) -> list[str]:
        """Binaries looked up without a known source, in report order."""
        return list(self._missing)

    def names(self) -> list[str]:
        return list(self._sizes)

    def __contains__(self, name):
        return name in self._sizes

    def __len__(self):
        return len(self._sizes)
