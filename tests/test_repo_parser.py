import pytest
from debpartial.repo_parser import (
    split_stanzas,
    parse_binary_stanza,
    parse_source_stanza,
    parse_packages_file,
    parse_sources_file,
)
from debpartial.models import PackageRecord

# --- Fixtures for sample content ---

@pytest.fixture
def sample_packages_content():
    return b"""
Package: package-a
Version: 1.0-1
Architecture: i386
Maintainer: Tester <test@example.com>
Description: Test package A
Filename: pool/main/p/package-a/package-a_1.0-1_i386.deb
Size: 1024
SHA256: abcdef123456

Package: package-b
Version: 2.1~alpha
Architecture: all
Description: Test package B (all arch)
Filename: pool/main/p/package-b/package-b_2.1~alpha_all.deb
Size: 2048
SHA256: 7890ghijk

Package: incomplete-pkg
Version: 0.1

Package: wrong-size-pkg
Version: 1.0
Architecture: i386
Filename: pool/main/w/wrong-size-pkg/wrong-size-pkg_1.0_i386.deb
Size: not-a-number

Package: no-filename
Version: 3.0
Size: 3000
"""

@pytest.fixture
def sample_sources_content():
    return b"""
Package: source-pkg
Binary: libsource-pkg, source-pkg-dev,
 source-pkg-doc
Version: 1.5-1
Architecture: any all
Files:
 abcdef123456 1234 source-pkg_1.5-1.dsc
 123456abcdef 56789 source-pkg_1.5.orig.tar.gz
 fedcba654321 987 source-pkg_1.5-1.debian.tar.xz
Checksums-Sha256:
 sha256sum1 1234 source-pkg_1.5-1.dsc
 sha256sum2 56789 source-pkg_1.5.orig.tar.gz
 sha256sum3 987 source-pkg_1.5-1.debian.tar.xz
Directory: pool/main/s/source-pkg

Source: another-source
Version: 0.1
Binary: another
Checksums-Sha256:
 hash1 100 another-source_0.1.dsc
 hash2 2000 another-source_0.1.tar.gz
Directory: pool/universe/a/another-source

Version: 9.9
Binary: orphan
"""

# --- Tests for split_stanzas ---

def test_split_stanzas_counts_paragraphs(sample_packages_content):
    stanzas = split_stanzas(sample_packages_content)
    assert len(stanzas) == 5
    assert stanzas[0].startswith(b"Package: package-a")
    assert not stanzas[0].endswith(b"\n")

def test_split_stanzas_empty_content():
    assert split_stanzas(b"") == []
    assert split_stanzas(b"\n\n \n\n") == []

def test_split_stanzas_multiple_blank_lines():
    stanzas = split_stanzas(b"Package: a\nSize: 1\n\n\n\nPackage: b\nSize: 2")
    assert stanzas == [b"Package: a\nSize: 1", b"Package: b\nSize: 2"]

# --- Tests for binary stanzas ---

def test_parse_packages_file(sample_packages_content):
    records = parse_packages_file(sample_packages_content)
    assert [r.name for r in records] == ["package-a", "package-b", "no-filename"]

    pkg_a = records[0]
    assert pkg_a == PackageRecord(
        name="package-a",
        size=1024,
        filename="pool/main/p/package-a/package-a_1.0-1_i386.deb",
        version_str="1.0-1",
        sha256="abcdef123456",
    )

def test_parse_binary_stanza_without_filename_uses_name_as_key():
    record = parse_binary_stanza(b"Package: no-filename\nSize: 3000")
    assert record.filename == "no-filename"
    assert record.size == 3000
    assert record.sha256 == ""

@pytest.mark.parametrize("stanza", [
    b"Package: incomplete\nVersion: 0.1",
    b"Package: bad\nSize: huge",
    b"Size: 10\nFilename: pool/x.deb",
])
def test_parse_binary_stanza_tolerates_missing_fields(stanza):
    assert parse_binary_stanza(stanza) is None

# --- Tests for source stanzas ---

def test_parse_sources_file(sample_sources_content):
    records = parse_sources_file(sample_sources_content)
    assert [r.name for r in records] == ["source-pkg", "another-source"]

    src = records[0]
    assert src.directory == "pool/main/s/source-pkg"
    assert src.version_str == "1.5-1"
    assert src.binaries == ["libsource-pkg", "source-pkg-dev", "source-pkg-doc"]
    assert src.size == 1234 + 56789 + 987
    assert src.files[0] == ("source-pkg_1.5-1.dsc", 1234, "sha256sum1")
    assert src.file_paths()[1] == "pool/main/s/source-pkg/source-pkg_1.5.orig.tar.gz"

def test_parse_source_stanza_falls_back_to_checksums(sample_sources_content):
    records = parse_sources_file(sample_sources_content)
    another = records[1]
    assert another.size == 2100
    assert another.files == [
        ("another-source_0.1.dsc", 100, "hash1"),
        ("another-source_0.1.tar.gz", 2000, "hash2"),
    ]

def test_parse_source_stanza_without_files():
    record = parse_source_stanza(b"Package: bare\nBinary: bare-bin")
    assert record.name == "bare"
    assert record.size == 0
    assert record.binaries == ["bare-bin"]
    assert record.file_paths() == []

def test_parse_source_stanza_skips_malformed_file_lines():
    record = parse_source_stanza(
        b"Package: odd\nDirectory: pool/o/odd\nFiles:\n aaa 10 odd.dsc\n broken line\n bbb xx odd.tar.gz"
    )
    assert record.files == [("odd.dsc", 10, "")]
    assert record.size == 10
