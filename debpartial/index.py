import gzip
import logging
import zlib
from pathlib import Path

from debian.debian_support import Version

from .errors import IndexReadError
from .models import PackageRecord, SourceRecord
from .repo_parser import split_stanzas, parse_binary_stanza, parse_source_stanza

logger = logging.getLogger(__name__)

BINARY = "binary"
SOURCE = "source"


def compare_debian_versions(version_str1, version_str2):
    """
    Compares two Debian versions.
    Returns: -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    Unparsable versions compare as equal.
    """
    try:
        v1 = Version(version_str1)
        v2 = Version(version_str2)
    except ValueError:
        logger.debug(f"Invalid Debian version string in '{version_str1}' / '{version_str2}'")
        return 0

    if v1 > v2: return 1
    elif v1 < v2: return -1
    else: return 0


def decompress_index(content: bytes, origin: str = "") -> bytes:
    """Returns decompressed index content; plain text passes through unchanged."""
    if not content.startswith(b'\x1f\x8b'):
        return content
    try:
        return gzip.decompress(content)
    except (gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise IndexReadError(f"Failed to decompress {origin or 'index'}: {e}") from e


def read_index_file(path: Path) -> bytes:
    """Reads and decompresses a local Packages.gz/Sources.gz file."""
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise IndexReadError(f"Cannot read {path}: {e}") from e
    return decompress_index(content, str(path))


class IndexFile:
    """
    The stanzas of one Packages or Sources document keyed by package name.
    If a name occurs more than once, the stanza with the highest version wins.
    """

    def __init__(self, kind: str = BINARY, label: str = ""):
        if kind not in (BINARY, SOURCE):
            raise ValueError(f"Unknown index kind: {kind}")
        self.kind = kind
        self.label = label
        self.records: list[PackageRecord | SourceRecord] = []
        self._stanzas: dict[str, bytes] = {}
        self._versions: dict[str, str] = {}

    @classmethod
    def from_bytes(cls, content: bytes, kind: str = BINARY, label: str = ""):
        index = cls(kind, label)
        index.load(content)
        return index

    def load(self, content: bytes):
        parse = parse_binary_stanza if self.kind == BINARY else parse_source_stanza
        for stanza in split_stanzas(content):
            record = parse(stanza)
            if record is None:
                continue
            self.records.append(record)
            known = self._versions.get(record.name)
            if known is not None and compare_debian_versions(record.version_str, known) < 0:
                continue
            self._stanzas[record.name] = stanza
            self._versions[record.name] = record.version_str

    def __contains__(self, name):
        return name in self._stanzas

    def __len__(self):
        return len(self._stanzas)

    def stanza(self, name: str) -> bytes | None:
        return self._stanzas.get(name)

    def render(self, names, skip=()) -> tuple[bytes, int]:
        """
        Concatenates the stanzas of 'names' in order, leaving out names this
        index does not know and names in 'skip'.
        Returns (document, number_of_stanzas).
        """
        skip = set(skip)
        chunks = []
        for name in names:
            if name in skip:
                continue
            stanza = self._stanzas.get(name)
            if stanza is None:
                continue
            chunks.append(stanza + b'\n\n')
        return b''.join(chunks), len(chunks)
