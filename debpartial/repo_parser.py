import re
import logging
from email.parser import BytesHeaderParser

from .models import PackageRecord, SourceRecord

logger = logging.getLogger(__name__)

def split_stanzas(content: bytes) -> list[bytes]:
    """
    Splits decompressed Packages/Sources content into stanzas.
    Stanzas are separated by one or more blank lines; empty ones are dropped.
    """
    if not content.endswith(b'\n'): content += b'\n\n'
    else: content += b'\n'
    stanzas = []
    for paragraph_bytes in re.split(b'\n\n+', content.strip()):
        trimmed_paragraph = paragraph_bytes.strip()
        if trimmed_paragraph:
            stanzas.append(trimmed_paragraph)
    return stanzas


def parse_stanza(stanza: bytes):
    """Parses one stanza into an email.message.Message of its fields."""
    # BytesHeaderParser needs a header on the first line
    if not stanza.lower().startswith((b'package:', b'source:')):
        stanza = b'X-Dummy-Header: dummy\n' + stanza
    if not stanza.endswith(b'\n'):
        stanza += b'\n'
    return BytesHeaderParser().parsebytes(stanza)


def _field(headers, name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        return None
    # Non-ASCII values come back as email.header.Header objects
    value = str(value).strip()
    return value or None


def _file_lines(value: str | None) -> list[tuple[str, int, str]]:
    """Parses ' <hash> <size> <name>' continuation lines."""
    entries = []
    if not value:
        return entries
    for line in value.strip().split('\n'):
        parts = line.strip().split()
        if len(parts) != 3:
            continue
        checksum, size_str, fname = parts
        try:
            entries.append((fname, int(size_str), checksum))
        except ValueError:
            logger.debug(f"Ignoring file line with invalid size: '{line.strip()}'")
    return entries


def parse_binary_stanza(stanza: bytes) -> PackageRecord | None:
    """
    Builds a PackageRecord from a Packages stanza.
    Returns None when the stanza has no usable Package or Size field.
    """
    headers = parse_stanza(stanza)
    package_name = _field(headers, 'Package')
    size_str = _field(headers, 'Size')
    if not package_name or size_str is None:
        return None
    try:
        size = int(size_str)
    except ValueError:
        logger.warning(f"Invalid size '{size_str}' for package {package_name}. Skipping.")
        return None
    filename = _field(headers, 'Filename') or package_name
    return PackageRecord(
        name=package_name,
        size=size,
        filename=filename,
        version_str=_field(headers, 'Version') or "",
        sha256=_field(headers, 'SHA256') or "",
    )


def parse_source_stanza(stanza: bytes) -> SourceRecord | None:
    """
    Builds a SourceRecord from a Sources stanza.
    The size is the sum of every entry of the Files field (or of
    Checksums-Sha256 when Files is absent).
    """
    headers = parse_stanza(stanza)
    source_name = _field(headers, 'Package') or _field(headers, 'Source')
    if not source_name:
        return None

    binary_field = _field(headers, 'Binary') or ""
    binaries = [b.strip() for b in binary_field.replace('\n', ' ').split(',') if b.strip()]

    sha256_by_name = {fname: checksum for fname, _, checksum in _file_lines(_field(headers, 'Checksums-Sha256'))}
    listed = _file_lines(_field(headers, 'Files'))
    if listed:
        files = [(fname, size, sha256_by_name.get(fname, "")) for fname, size, _ in listed]
    else:
        files = [(fname, size, checksum) for fname, size, checksum in _file_lines(_field(headers, 'Checksums-Sha256'))]

    return SourceRecord(
        name=source_name,
        directory=_field(headers, 'Directory') or "",
        version_str=_field(headers, 'Version') or "",
        size=sum(size for _, size, _ in files),
        binaries=binaries,
        files=files,
    )


def parse_packages_file(content: bytes) -> list[PackageRecord]:
    """Parses decompressed Packages content. Malformed stanzas are skipped."""
    records = []
    for stanza in split_stanzas(content):
        record = parse_binary_stanza(stanza)
        if record is not None:
            records.append(record)
    return records


def parse_sources_file(content: bytes) -> list[SourceRecord]:
    """Parses decompressed Sources content. Malformed stanzas are skipped."""
    records = []
    for stanza in split_stanzas(content):
        record = parse_source_stanza(stanza)
        if record is not None:
            records.append(record)
    return records
