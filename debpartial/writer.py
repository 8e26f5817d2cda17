import gzip
import logging
from dataclasses import dataclass, field
from pathlib import Path

from tqdm import tqdm

from . import config
from .index import IndexFile
from .models import PartitionPlan

logger = logging.getLogger(__name__)

@dataclass
class PartitionLayout:
    """Where partition indices go under the destination directory."""
    dists: list[str]
    sections: list[str]
    arches: list[str]
    dirprefix: str = config.DEFAULT_DIR_PREFIX
    dirsrcprefix: str = config.DEFAULT_DIR_SRC_PREFIX
    dirmap: list[str] = field(default_factory=list) # Names for partitions 0, 1, ...

    def topdir(self, index: int) -> str:
        if index < len(self.dirmap) and self.dirmap[index]:
            return self.dirmap[index]
        return str(index)

    def partition_name(self, index: int) -> str:
        return f"{self.dirprefix}{self.topdir(index)}"

    def source_partition_name(self, index: int) -> str:
        return f"{self.dirsrcprefix}{self.topdir(index)}"

    def source_index_offset(self, package_partitions: int) -> int:
        """
        Number of the first source partition. Numbering restarts at 0 unless
        sources share the package directory prefix.
        """
        return package_partitions if self.dirsrcprefix == self.dirprefix else 0

    def packages_path(self, name: str, dist: str, section: str, arch: str) -> Path:
        return Path(name) / "dists" / dist / section / f"binary-{arch}" / "Packages.gz"

    def sources_path(self, name: str, dist: str, section: str) -> Path:
        return Path(name) / "dists" / dist / section / "source" / "Sources.gz"


def write_gzip_atomic(path: Path, content: bytes):
    """Writes gzip-compressed content to a .partial sibling, then renames it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".partial")
    try:
        with gzip.open(tmp_path, 'wb') as f:
            f.write(content)
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
            logger.warning(f"Removed unfinished index file: {tmp_path}")


class PartitionWriter:
    """
    Writes the Packages.gz/Sources.gz files of every partition of a plan.
    'packages' is keyed by (dist, section, arch), 'sources' by (dist, section).
    """

    def __init__(self, dest_dir: Path, layout: PartitionLayout,
                 packages: dict[tuple[str, str, str], IndexFile],
                 sources: dict[tuple[str, str], IndexFile] | None = None,
                 show_progress: bool = True):
        self.dest_dir = Path(dest_dir)
        self.layout = layout
        self.packages = packages
        self.sources = sources or {}
        self.show_progress = show_progress

    def _count_files(self, plan: PartitionPlan, merge: bool) -> int:
        per_dist = len(plan.partitions) * len(self.layout.arches)
        if self.sources:
            per_dist += len(plan.partitions) if merge else len(plan.source_partitions)
        return per_dist * len(self.layout.dists) * len(self.layout.sections)

    def write(self, plan: PartitionPlan, merge: bool = False) -> int:
        """Writes every index file of the plan. Returns the number of files written."""
        written_files = 0
        with tqdm(total=self._count_files(plan, merge), desc="Writing Indices", unit="file",
                  disable=not self.show_progress) as pbar:
            for dist in self.layout.dists:
                for section in self.layout.sections:
                    written_src: set[str] = set()
                    for i, part in enumerate(plan.partitions):
                        name = self.layout.partition_name(i)
                        for arch in self.layout.arches:
                            index = self.packages.get((dist, section, arch))
                            if index is not None:
                                path = self.layout.packages_path(name, dist, section, arch)
                                self._write(path, index, part.names)
                                written_files += 1
                            pbar.update(1)
                        if merge and self.sources:
                            written_files += self._write_sources(
                                self.layout.sources_path(name, dist, section), dist, section, part.sources, written_src)
                            pbar.update(1)

                    if merge or not self.sources:
                        continue
                    offset = self.layout.source_index_offset(len(plan.partitions))
                    for j, part in enumerate(plan.source_partitions):
                        name = self.layout.source_partition_name(offset + j)
                        written_files += self._write_sources(
                            self.layout.sources_path(name, dist, section), dist, section, part.names, written_src)
                        pbar.update(1)
        return written_files

    def _write_sources(self, path: Path, dist: str, section: str, names: list[str], written_src: set[str]) -> int:
        index = self.sources.get((dist, section))
        if index is None:
            return 0
        self._write(path, index, names, skip=written_src)
        written_src.update(names)
        return 1

    def _write(self, relative_path: Path, index: IndexFile, names: list[str], skip=()):
        content, count = index.render(names, skip)
        write_gzip_atomic(self.dest_dir / relative_path, content)
        logger.debug(f"Wrote {count} entries to {relative_path}")
