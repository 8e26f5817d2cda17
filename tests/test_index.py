import gzip

import pytest
from debpartial.errors import IndexReadError
from debpartial.index import (
    IndexFile,
    BINARY,
    SOURCE,
    compare_debian_versions,
    decompress_index,
    read_index_file,
)

@pytest.mark.parametrize("v1, v2, expected", [
    ("1.0", "1.0", 0),
    ("1.0", "1.1", -1),
    ("1.1", "1.0", 1),
    ("1.0-1ubuntu1", "1.0-1", 1),
    ("1:1.0", "1.0", 1),         # Explicit epoch
    ("2.0~beta1", "2.0", -1),    # Tilde versions
    ("1.12.1-1~deb10u1", "1.12.1-1", -1),
    ("1.0 beta!", "1.0", 0),         # Unparsable compares as equal
])
def test_compare_debian_versions(v1, v2, expected):
    assert compare_debian_versions(v1, v2) == expected

@pytest.fixture
def packages_with_duplicates():
    return b"""Package: pkg-a
Version: 1.0-1
Filename: pool/main/p/pkg-a/pkg-a_1.0-1_i386.deb
Size: 1024

Package: pkg-a
Version: 0.9-1
Filename: pool/main/p/pkg-a/pkg-a_0.9-1_i386.deb
Size: 900

Package: pkg-b
Version: 2.0
Filename: pool/main/p/pkg-b/pkg-b_2.0_all.deb
Size: 2048

Package: broken
Version: 1
"""

def test_index_keeps_newest_stanza(packages_with_duplicates):
    index = IndexFile.from_bytes(packages_with_duplicates, BINARY, "main/binary-i386")
    assert len(index) == 2
    assert b"Version: 1.0-1" in index.stanza("pkg-a")
    assert "broken" not in index
    # Every parsed entry is still reported for size accounting
    assert [r.version_str for r in index.records] == ["1.0-1", "0.9-1", "2.0"]

def test_index_newer_later_stanza_wins():
    index = IndexFile.from_bytes(b"Package: x\nVersion: 1\nSize: 1\n\nPackage: x\nVersion: 2\nSize: 2\n")
    assert b"Version: 2" in index.stanza("x")

def test_index_render_subset(packages_with_duplicates):
    index = IndexFile.from_bytes(packages_with_duplicates, BINARY)
    content, count = index.render(["pkg-b", "unknown", "pkg-a"])
    assert count == 2
    assert content.startswith(b"Package: pkg-b\n")
    assert content.endswith(b"\n\n")
    assert content.index(b"pkg-b") < content.index(b"Package: pkg-a")

def test_index_render_skip(packages_with_duplicates):
    index = IndexFile.from_bytes(packages_with_duplicates, BINARY)
    content, count = index.render(["pkg-a", "pkg-b"], skip={"pkg-a"})
    assert count == 1
    assert b"pkg-a" not in content

def test_index_sources_kind():
    content = b"Package: src\nBinary: bin\nVersion: 1\nDirectory: pool/s\nFiles:\n a 10 src.dsc\n"
    index = IndexFile.from_bytes(content, SOURCE)
    assert "src" in index
    assert index.records[0].size == 10

def test_index_rejects_unknown_kind():
    with pytest.raises(ValueError):
        IndexFile("udeb")

def test_decompress_index_gzip_and_plain():
    raw = b"Package: a\nSize: 1\n"
    assert decompress_index(gzip.compress(raw)) == raw
    assert decompress_index(raw) == raw

def test_decompress_index_corrupt():
    with pytest.raises(IndexReadError):
        decompress_index(b"\x1f\x8b" + b"not really gzip", "Packages.gz")

def test_read_index_file(tmp_path):
    path = tmp_path / "Packages.gz"
    path.write_bytes(gzip.compress(b"Package: a\nSize: 1\n"))
    assert read_index_file(path) == b"Package: a\nSize: 1\n"

def test_read_index_file_missing(tmp_path):
    with pytest.raises(IndexReadError):
        read_index_file(tmp_path / "nope" / "Packages.gz")
