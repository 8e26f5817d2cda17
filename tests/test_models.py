import pytest
from pathlib import Path
from debpartial.models import PackageRecord, SourceRecord, Partition, SourcePartition, PartitionPlan, RepoFile

def test_package_record_is_immutable():
    record = PackageRecord(name="a", size=10, filename="pool/a.deb")
    with pytest.raises(Exception):
        record.size = 20

def test_source_record_file_paths():
    src = SourceRecord(name="s", directory="pool/main/s/s",
                       files=[("s.dsc", 10, ""), ("s.tar.gz", 90, "abc")])
    assert src.file_paths() == ["pool/main/s/s/s.dsc", "pool/main/s/s/s.tar.gz"]

    no_dir = SourceRecord(name="s", directory="", files=[("s.dsc", 10, "")])
    assert no_dir.file_paths() == ["s.dsc"]

def test_partition_accumulates():
    part = Partition(index=0, capacity=100)
    assert not part
    part.add("a", 40)
    part.add("b", 30)
    part.charge_source("src-a", 20)
    assert part
    assert len(part) == 2
    assert part.names == ["a", "b"]
    assert part.size == 90
    assert part.package_size == 70
    assert part.source_size == 20
    assert part.sources == ["src-a"]

def test_partition_summary():
    part = Partition(index=0, capacity=100)
    part.add("a", 40)
    assert part.summary("Debian0") == "Debian0: 1 packages. Size: 40 [ a ]"
    part.add("b", 40)
    part.charge_source("s", 15)
    assert part.summary("Debian0") == "Debian0: 2 packages. Size: 80 + 15 = 95 [ a, ... ]"

def test_source_partition_summary():
    part = SourcePartition(index=0, capacity=100)
    part.add("s", 25)
    assert part.summary("Debian-Src0") == "Debian-Src0: 1 sources. Size: 25 [ s ]"
    assert SourcePartition(index=1, capacity=5).summary("X1") == "X1: 0 sources. Size: 0"

def test_partition_plan_assigned():
    p0 = Partition(index=0, capacity=10, names=["a", "b"])
    p1 = Partition(index=1, capacity=10, names=["c"])
    plan = PartitionPlan(partitions=[p0, p1])
    assert plan.assigned() == ["a", "b", "c"]

def test_repo_file_hash_eq():
    """RepoFile equality and hashing only look at the URL."""
    path1 = Path("/tmp/f1")
    path2 = Path("/tmp/f2")
    rf1 = RepoFile("http://a.com/f", path1, 100, "abc")
    rf2 = RepoFile("http://a.com/f", path2, 200, "def")
    rf3 = RepoFile("http://b.com/f", path1, 100, "abc")

    assert rf1 == rf2
    assert rf1 != rf3
    assert rf1 != "http://a.com/f"
    assert len({rf1, rf2, rf3}) == 2
