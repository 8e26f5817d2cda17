import logging
import os
import shutil
from collections import Counter
from pathlib import Path
from urllib.parse import urljoin

import requests
from tqdm import tqdm

from .downloader import download_file
from .errors import ConfigError
from .index import read_index_file
from .models import RepoFile, COPIED, IGNORED, NOT_FOUND
from .repo_parser import parse_packages_file, parse_sources_file

logger = logging.getLogger(__name__)


def is_remote(location: str) -> bool:
    return str(location).startswith(("http://", "https://"))


def find_indices(dest_dir: Path, name: str) -> list[Path]:
    dists = Path(dest_dir) / "dists"
    if not dists.is_dir():
        return []
    return sorted(dists.rglob(name))


def collect_files(dest_dir: Path) -> dict[str, tuple[int, str]]:
    """
    Archive-relative path -> (size, sha256) for every file listed by the
    indices under dest_dir. Binary files come first, then source files.
    """
    files: dict[str, tuple[int, str]] = {}
    for index_path in find_indices(dest_dir, "Packages.gz"):
        logger.info(f"Processing {index_path}")
        for record in parse_packages_file(read_index_file(index_path)):
            files.setdefault(record.filename, (record.size, record.sha256))
    for index_path in find_indices(dest_dir, "Sources.gz"):
        logger.info(f"Processing {index_path}")
        for record in parse_sources_file(read_index_file(index_path)):
            for path, (_, size, sha256) in zip(record.file_paths(), record.files):
                files.setdefault(path, (size, sha256))
    return files


def copy_local(path: str, source_dir: Path, dest_dir: Path, symlink: bool = False) -> str:
    """Copies or symlinks one archive-relative path. Returns COPIED, IGNORED or NOT_FOUND."""
    src = Path(source_dir) / path
    dst = Path(dest_dir) / path
    if dst.exists() or dst.is_symlink():
        return IGNORED
    if not src.exists():
        logger.warning(f"{src} not found.")
        return NOT_FOUND
    dst.parent.mkdir(parents=True, exist_ok=True)
    if symlink:
        target = os.path.relpath(src.resolve(), dst.parent.resolve())
        os.symlink(target, dst)
    else:
        shutil.copy2(src, dst)
    return COPIED


class ArchiveCopier:
    """
    Materializes the files of a partial archive from a source archive.
    Every file listed by the Packages.gz and Sources.gz under <dest>/dists is
    copied (or symlinked, or downloaded when the source is an http(s) mirror)
    unless it is already present.
    """

    def __init__(self, source: str, dest_dir: Path, symlink: bool = False, show_progress: bool = True):
        if symlink and is_remote(source):
            raise ConfigError("Symbolic links cannot point to a remote mirror")
        self.source = source
        self.dest_dir = Path(dest_dir)
        self.symlink = symlink
        self.show_progress = show_progress
        self.stats = Counter({COPIED: 0, IGNORED: 0, NOT_FOUND: 0})

    def run(self) -> Counter:
        files = collect_files(self.dest_dir)
        logger.info(f"{len(files)} files referenced by the indices under {self.dest_dir}")
        if is_remote(self.source):
            self._download_all(files)
        else:
            for path in tqdm(files, desc="Copying", unit="file", disable=not self.show_progress):
                self.stats[copy_local(path, Path(self.source), self.dest_dir, self.symlink)] += 1
        return self.stats

    def _download_all(self, files: dict[str, tuple[int, str]]):
        base_url = self.source if self.source.endswith("/") else self.source + "/"
        session = requests.Session()
        session.headers.update({'User-Agent': 'debpartial-debcopy/1.0'})
        total = sum(size for size, _ in files.values())
        with tqdm(total=total, unit='B', unit_scale=True, desc="Downloading", disable=not self.show_progress) as pbar:
            for path, (size, sha256) in files.items():
                repo_file = RepoFile(
                    url=urljoin(base_url, path), local_path=self.dest_dir / path,
                    expected_size=size, expected_sha256=sha256,
                )
                status, _ = download_file(repo_file, session, pbar)
                self.stats[status] += 1
