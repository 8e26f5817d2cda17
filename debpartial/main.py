import argparse
import logging
import sys
import traceback
from pathlib import Path
from urllib.parse import urljoin

import requests
from tqdm import tqdm

# Project internal imports
from . import config
from .catalog import PackageCatalog, SourceCatalog
from .copier import is_remote
from .downloader import fetch_index
from .errors import ConfigError, DebPartialError
from .index import IndexFile, BINARY, SOURCE, read_index_file
from .media import MEDIA, parse_capacity_list
from .partitioner import Partitioner
from .writer import PartitionLayout, PartitionWriter

# --- Logging Setup ---
# Place basicConfig here so logger instances in other modules inherit it
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def split_list(values) -> list[str]:
    """Flattens repeated and comma-separated option values."""
    items = []
    for value in values or []:
        items.extend(item.strip() for item in value.split(',') if item.strip())
    return items


class IndexSource:
    """Reads index documents from a local archive directory or an http(s) mirror."""

    def __init__(self, location: str):
        self.location = location
        self.session = None
        if is_remote(location):
            self.session = requests.Session()
            self.session.headers.update({'User-Agent': 'debpartial/1.0'})

    def read(self, relative_path: str) -> bytes:
        if self.session is not None:
            base_url = self.location if self.location.endswith("/") else self.location + "/"
            return fetch_index(urljoin(base_url, relative_path), self.session)
        return read_index_file(Path(self.location) / relative_path)


def load_indices(source: IndexSource, layout: PartitionLayout, with_sources: bool, show_progress: bool = True):
    """
    Reads every Packages.gz (and Sources.gz) of the layout into shared catalogs.
    Returns (package_catalog, source_catalog, packages_by_key, sources_by_key).
    """
    packages = PackageCatalog()
    sources = SourceCatalog() if with_sources else None
    package_indices: dict[tuple[str, str, str], IndexFile] = {}
    source_indices: dict[tuple[str, str], IndexFile] = {}

    targets = []
    for arch in layout.arches:
        for dist in layout.dists:
            for section in layout.sections:
                targets.append((BINARY, (dist, section, arch), f"dists/{dist}/{section}/binary-{arch}/Packages.gz"))
    if with_sources:
        for dist in layout.dists:
            for section in layout.sections:
                targets.append((SOURCE, (dist, section), f"dists/{dist}/{section}/source/Sources.gz"))

    for kind, key, relative_path in tqdm(targets, desc="Reading Indices", unit="file", disable=not show_progress):
        logger.debug(f"Reading {relative_path}")
        index = IndexFile.from_bytes(source.read(relative_path), kind, relative_path)
        if kind == BINARY:
            package_indices[key] = index
            packages.add_records(index.records)
        else:
            source_indices[key] = index
            sources.add_records(index.records)
        logger.info(f"Read {index.label}: {len(index)} entries")

    return packages, sources, package_indices, source_indices


def select_packages(catalog: PackageCatalog, include: list[str], include_from: str | None) -> list[str]:
    """
    Ordered package list to partition: --include names, then the lines of
    the --include-from file. Falls back to every cataloged package.
    """
    selected: dict[str, None] = {}
    for name in include:
        if name in catalog:
            selected.setdefault(name, None)
        else:
            logger.warning(f"No such package: {name}")

    if include_from:
        try:
            with open(include_from, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise ConfigError(f"Cannot read package list {include_from}: {e}") from e
        for line in lines:
            name = line.strip()
            if not name or name.startswith('#'):
                continue
            if name in catalog:
                selected.setdefault(name, None)

    if not selected:
        return catalog.names()
    return list(selected)


def run_partition_process(args):
    """Orchestrates reading, partitioning and writing."""
    sizes = parse_capacity_list(split_list(args.size) or config.DEFAULT_SIZES, MEDIA)
    src_sizes = parse_capacity_list(split_list(args.srcsize), MEDIA) or None
    part_config = config.PartitionConfig(
        sizes=sizes,
        src_sizes=src_sizes,
        limit=args.limit,
        with_sources=not args.nosource,
        merge_sources=args.merge_source,
        ignore_large_packages=args.ignore_large_packages,
    )
    part_config.validate()

    layout = PartitionLayout(
        dists=split_list(args.dist) or config.DEFAULT_DISTS,
        sections=split_list(args.section) or config.DEFAULT_SECTIONS,
        arches=split_list(args.arch) or config.DEFAULT_ARCHITECTURES,
        dirprefix=args.dirprefix,
        # Merged sources live in the package partitions
        dirsrcprefix=args.dirprefix if args.merge_source else args.dirsrcprefix,
        dirmap=split_list(args.dirmap),
    )

    logger.info("Starting partition process.")
    logger.info(f"Source archive: {args.source}")
    logger.info(f"Distributions: {', '.join(layout.dists)}")
    logger.info(f"Sections: {', '.join(layout.sections)}")
    logger.info(f"Architectures: {', '.join(layout.arches)}")
    logger.info(f"Partition sizes: {', '.join(str(s) for s in sizes)}")
    if part_config.separate_sources:
        logger.info(f"Source partition sizes: {', '.join(str(s) for s in part_config.effective_src_sizes)}")
    logger.info(f"Partition limit: {args.limit or 'none'}")
    logger.info(f"Sources: {'merged' if args.merge_source else 'none' if args.nosource else 'separate'}")

    show_progress = not args.debug
    packages, sources, package_indices, source_indices = load_indices(
        IndexSource(args.source), layout, part_config.with_sources, show_progress)
    logger.info(f"Cataloged {len(packages)} packages" +
                (f" and {len(sources)} sources" if sources is not None else ""))

    pkgs = select_packages(packages, split_list(args.include), args.include_from)
    logger.info(f"Partitioning {len(pkgs)} packages.")

    plan = Partitioner(packages, sources, part_config, MEDIA).partition(pkgs)

    for i, part in enumerate(plan.partitions):
        logger.info(part.summary(layout.partition_name(i)))
    offset = layout.source_index_offset(len(plan.partitions))
    for j, part in enumerate(plan.source_partitions):
        logger.info(part.summary(layout.source_partition_name(offset + j)))
    if plan.skipped:
        logger.warning(f"{len(plan.skipped)} packages ignored as too large: {', '.join(plan.skipped)}")

    if args.dry_run:
        logger.info("--dry-run specified. No index files written.")
        return 0

    writer = PartitionWriter(Path(args.dest), layout, package_indices, source_indices, show_progress)
    count = writer.write(plan, merge=part_config.merge_sources)
    logger.info(f"Wrote {count} index files under {Path(args.dest).resolve()}")
    logger.info("Run debcopy on each partition directory to fill in the pool files.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="debpartial",
        description="Split Debian Packages.gz/Sources.gz files into size-limited partitions.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("source", help="Top directory (or http(s) URL) of the Debian archive.")
    parser.add_argument("dest", help="Directory the partitioned indices are written under.")
    parser.add_argument("-d", "--dist", action="append", help=f"Distributions, comma separated or repeated (default: {','.join(config.DEFAULT_DISTS)}).")
    parser.add_argument("-s", "--section", action="append", help=f"Sections (default: {','.join(config.DEFAULT_SECTIONS)}).")
    parser.add_argument("-a", "--arch", action="append", help=f"Architectures (default: {','.join(config.DEFAULT_ARCHITECTURES)}).")
    parser.add_argument("-S", "--size", action="append",
                        help=f"Partition sizes in bytes or media names ({', '.join(MEDIA.names())}). The last one repeats (default: {','.join(config.DEFAULT_SIZES)}).")
    parser.add_argument("-R", "--srcsize", action="append", help="Source partition sizes. Defaults to --size.")
    parser.add_argument("-i", "--include", action="append", help="Packages to handle first, in order.")
    parser.add_argument("--include-from", default=None, help="File listing package names to handle, one per line.")
    parser.add_argument("-D", "--dirmap", action="append", help="Names of partitions 0, 1, ...")
    parser.add_argument("--dirprefix", default=config.DEFAULT_DIR_PREFIX, help="Prefix of partition directories.")
    parser.add_argument("--dirsrcprefix", default=config.DEFAULT_DIR_SRC_PREFIX, help="Prefix of source partition directories.")
    parser.add_argument("-l", "--limit", type=int, default=config.DEFAULT_LIMIT, help="Maximum number of partitions, 0 for no limit.")
    parser.add_argument("--nosource", action="store_true", help="Don't handle sources.")
    parser.add_argument("-m", "--merge-source", action="store_true", help="Put sources in the same partition as their packages.")
    parser.add_argument("-I", "--ignore-large-packages", action="store_true", help="Skip packages larger than a partition instead of failing.")
    parser.add_argument("--dry-run", action="store_true", help="Only report the partitions, write nothing.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser


def configure_logging(debug: bool):
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled.")
    else:
        logging.getLogger().setLevel(logging.INFO)
        # Silence verbose logs from underlying libraries in info mode
        logging.getLogger("requests").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv=None):
    """Parses arguments and starts the partition process."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        return run_partition_process(args)
    except DebPartialError as e:
        logger.error(f"Error!: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Process interrupted by user.")
        return 1
    except Exception as e:
        logger.error(f"An unexpected critical error occurred: {e}")
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
     sys.exit(main())
