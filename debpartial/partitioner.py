import logging
from typing import Callable, Iterable

from .catalog import PackageCatalog, SourceCatalog
from .config import PartitionConfig
from .errors import OversizedSingletonError
from .media import MEDIA, CapacitySequence, MediaTable
from .models import Partition, PartitionPlan, SourcePartition

logger = logging.getLogger(__name__)


class SourcePartitionSequence:
    """
    Next-fit packing of sources into their own partitions.

    A source is stored once: adding a source that is already in any
    partition is a no-op. 'can_grow' is asked before a new partition is
    opened and lets the caller enforce a partition limit.
    """

    def __init__(self, capacities: CapacitySequence, catalog: SourceCatalog,
                 can_grow: Callable[[], bool] | None = None):
        self._capacities = capacities
        self._catalog = catalog
        self._can_grow = can_grow or (lambda: True)
        self._written: set[str] = set()
        self.parts: list[SourcePartition] = [SourcePartition(index=0, capacity=capacities.capacity_for(0))]

    def __contains__(self, source):
        return source in self._written

    def add(self, source: str) -> bool:
        """
        Places 'source' in the current partition, or in a new one if it does
        not fit. Returns False if a new partition was needed but not allowed.
        Raises OversizedSingletonError if the source alone exceeds the capacity
        of the partition it would have to go into.
        """
        if source in self._written:
            return True
        size = self._catalog.size_of(source)
        current = self.parts[-1]
        if current.size + size <= current.capacity:
            current.add(source, size)
            self._written.add(source)
            return True

        if not current:
            raise OversizedSingletonError("source", source, size, current.capacity)
        next_capacity = self._capacities.capacity_for(len(self.parts))
        if size > next_capacity:
            raise OversizedSingletonError("source", source, size, next_capacity)
        if not self._can_grow():
            return False

        part = SourcePartition(index=len(self.parts), capacity=next_capacity)
        part.add(source, size)
        self.parts.append(part)
        self._written.add(source)
        return True


# Next-fit: packages are taken strictly in order and appended to the current
# partition until one does not fit, which closes that partition for good.
# Sources either share the partition of their first binary (merge mode) or
# go to their own partition sequence with its own capacities.
class Partitioner:
    """Assigns an ordered package list to partitions under PartitionConfig."""

    def __init__(self, packages: PackageCatalog, sources: SourceCatalog | None,
                 config: PartitionConfig, table: MediaTable = MEDIA):
        config.validate()
        self._packages = packages
        self._sources = sources if config.with_sources else None
        self._config = config
        self._capacities = CapacitySequence(config.sizes, table)
        self._src_capacities = CapacitySequence(config.effective_src_sizes, table)

    def _within_limit(self, total_partitions: int) -> bool:
        return self._config.limit == 0 or total_partitions <= self._config.limit

    def partition(self, names: Iterable[str]) -> PartitionPlan:
        names = list(names)
        plan = PartitionPlan()
        source_parts = None
        if self._sources is not None and not self._config.merge_sources:
            # The package partition being filled counts toward the limit too
            source_parts = SourcePartitionSequence(
                self._src_capacities, self._sources,
                can_grow=lambda: self._within_limit(len(plan.partitions) + 1 + len(source_parts.parts) + 1),
            )
        charged: set[str] = set() # Merge mode: sources already paid for by an earlier package

        current = None
        position = 0
        while position < len(names):
            if current is None:
                index = len(plan.partitions)
                current = Partition(index=index, capacity=self._capacities.capacity_for(index))
            name = names[position]
            try:
                placed = self._place(name, current, source_parts, charged)
            except OversizedSingletonError as e:
                if not self._config.ignore_large_packages:
                    raise
                logger.warning(f"Ignoring package '{name}': {e}")
                plan.skipped.append(name)
                position += 1
                continue

            if placed:
                position += 1
                continue
            if not current:
                # Only a full source sequence refuses a package on an empty partition
                break
            plan.partitions.append(current)
            current = None
            source_count = len(source_parts.parts) if source_parts is not None else 0
            if not self._within_limit(len(plan.partitions) + 1 + source_count):
                break

        if current:
            plan.partitions.append(current)
        plan.unassigned = names[position:]
        if plan.unassigned:
            logger.warning(f"Partition limit {self._config.limit} reached: "
                           f"{len(plan.unassigned)} packages left out, starting with '{plan.unassigned[0]}'")
        if source_parts is not None:
            plan.source_partitions = [part for part in source_parts.parts if part]
        return plan

    def _place(self, name: str, current: Partition, source_parts: SourcePartitionSequence | None,
               charged: set[str]) -> bool:
        """Appends 'name' to 'current' if it fits. Returns False when the partition is full."""
        pkgsize = self._packages.size_of(name)
        if current.size + pkgsize > current.capacity:
            if not current:
                raise OversizedSingletonError("package", name, pkgsize, current.capacity)
            return False

        source = self._sources.source_of(name) if self._sources is not None else None
        if source is None:
            current.add(name, pkgsize)
            return True

        if source_parts is not None:
            if not source_parts.add(source):
                return False
            current.add(name, pkgsize)
            return True

        srcsize = 0 if source in charged else self._sources.size_of(source)
        if current.size + pkgsize + srcsize > current.capacity:
            if not current:
                raise OversizedSingletonError("package", name, pkgsize + srcsize, current.capacity)
            return False
        current.add(name, pkgsize)
        if source not in charged:
            current.charge_source(source, srcsize)
            charged.add(source)
        return True
