import hashlib
import struct

import pytest

from lsmkv.errors import DBError, ErrorCode
from lsmkv.revision import FileMeta, Level, Revision


def _meta(tag: bytes, seq: int, size: int = 0) -> FileMeta:
    return FileMeta(
        sha256=hashlib.sha256(tag).digest(),
        num_keys=seq + 1,
        max_seq=seq,
        min_key=b"min-" + tag,
        max_key=b"max-" + tag,
        file_size=size,
    )


def _level(number: int, *metas: FileMeta) -> Level:
    level = Level(number)
    for meta in metas:
        level.insert(meta)
    return level


def test_file_meta_oid_is_hex_of_digest():
    digest = hashlib.sha256(b"x").digest()
    assert FileMeta(sha256=digest).oid() == digest.hex()


def test_new_level_has_no_checksum():
    level = Level(1)
    assert not level.has_checksum()
    assert level.oid() == "0" * 64
    assert len(level) == 0 and not level


def test_insert_erase_and_totals():
    a, b = _meta(b"a", 3, 100), _meta(b"b", 9, 50)
    level = _level(0, a, b)
    assert len(level) == 2
    assert level.total_file_size() == 150
    assert level.max_seq() == 9
    level.erase(a)
    assert list(level) == [b]
    level.erase(a)
    assert len(level) == 1


def test_duplicate_insert_is_ignored():
    a = _meta(b"a", 3)
    level = _level(0, a, _meta(b"a", 3))
    assert len(level) == 1


def test_iteration_is_ordered_by_min_key():
    metas = [_meta(tag, 1) for tag in (b"c", b"a", b"b")]
    level = _level(0, *metas)
    assert [m.min_key for m in level] == [b"min-a", b"min-b", b"min-c"]


def test_build_file_is_content_addressed(tmp_path):
    level = _level(2, _meta(b"a", 5))
    path = level.build_file(tmp_path)
    data = (tmp_path / level.oid()).read_bytes()
    assert str(tmp_path / level.oid()) == path
    assert hashlib.sha256(data).hexdigest() == level.oid()
    assert data[:8] == struct.pack("<ii", 2, 1)
    assert level.has_checksum()


def test_level_round_trip(tmp_path):
    metas = [_meta(b"a", 5), _meta(b"b", 7)]
    level = _level(3, *metas)
    level.build_file(tmp_path)
    loaded = Level(3)
    loaded.load_from_file(tmp_path, level.oid())
    assert loaded.oid() == level.oid()
    got = list(loaded)
    assert [(m.sha256, m.num_keys, m.max_seq, m.min_key, m.max_key) for m in got] == [
        (m.sha256, m.num_keys, m.max_seq, m.min_key, m.max_key) for m in level
    ]
    assert all(m.belong_to_level == 3 for m in got)


def test_load_reads_sstable_sizes(tmp_path):
    meta = _meta(b"a", 1)
    level = _level(0, meta)
    level.build_file(tmp_path)
    sst_dir = tmp_path / "sst"
    sst_dir.mkdir()
    (sst_dir / f"{meta.oid()}.sst").write_bytes(b"z" * 37)
    loaded = Level(0)
    loaded.load_from_file(tmp_path, level.oid(), sst_dir)
    assert loaded.total_file_size() == 37


def test_load_missing_sstable_fails(tmp_path):
    level = _level(0, _meta(b"a", 1))
    level.build_file(tmp_path)
    with pytest.raises(DBError) as info:
        Level(0).load_from_file(tmp_path, level.oid(), tmp_path / "nowhere")
    assert info.value.code is ErrorCode.STAT_FILE_ERROR


def test_load_missing_level_file(tmp_path):
    with pytest.raises(DBError) as info:
        Level(0).load_from_file(tmp_path, "ab" * 32)
    assert info.value.code is ErrorCode.OPEN_FILE_ERROR


def test_empty_level_file_is_rejected(tmp_path):
    level = Level(1)
    level.build_file(tmp_path)
    with pytest.raises(DBError) as info:
        Level(1).load_from_file(tmp_path, level.oid())
    assert info.value.code is ErrorCode.BAD_LEVEL


@pytest.mark.parametrize(
    "content",
    [
        struct.pack("<ii", 7, 1) + b"\0" * 16,
        struct.pack("<ii", -1, 1) + b"\0" * 16,
        struct.pack("<ii", 1, 0) + b"\0" * 16,
        struct.pack("<ii", 1, 1) + struct.pack("<iqi", 1, 2, 50) + b"short",
        struct.pack("<ii", 1, 1) + struct.pack("<iqi", 1, 2, 0) + struct.pack("<i", 0) + b"ab",
    ],
)
def test_bad_level_files(tmp_path, content):
    oid = "ab" * 32
    (tmp_path / oid).write_bytes(content)
    with pytest.raises(DBError) as info:
        Level(1).load_from_file(tmp_path, oid)
    assert info.value.code is ErrorCode.BAD_LEVEL


def test_clear_resets_files_and_checksum(tmp_path):
    level = _level(0, _meta(b"a", 1))
    level.build_file(tmp_path)
    level.clear()
    assert len(level) == 0
    assert not level.has_checksum()


def test_default_revision_has_five_levels():
    rev = Revision()
    assert [rev.level(i).level for i in range(5)] == [0, 1, 2, 3, 4]
    assert rev.max_seq() == 0
    assert rev.oid() == "0" * 64


def test_revision_file_format(tmp_path):
    rev = Revision()
    rev.level(1).insert(_meta(b"a", 4))
    rev.level(1).build_file(tmp_path)
    path = rev.build_file(tmp_path)
    text = (tmp_path / rev.oid()).read_text()
    assert str(tmp_path / rev.oid()) == path
    assert text == f"1 {rev.level(1).oid()}\n"
    assert hashlib.sha256(text.encode()).hexdigest() == rev.oid()


def test_revision_round_trip(tmp_path):
    rev_dir, lvl_dir = tmp_path / "rev", tmp_path / "lvl"
    rev_dir.mkdir()
    lvl_dir.mkdir()
    rev = Revision()
    rev.level(0).insert(_meta(b"a", 4))
    rev.level(0).insert(_meta(b"b", 11))
    rev.level(2).insert(_meta(b"c", 8))
    rev.build_file(rev_dir, lvl_dir)

    loaded = Revision()
    loaded.load_from_file(rev_dir, rev.oid(), lvl_dir)
    assert loaded.oid() == rev.oid()
    assert [len(loaded.level(i)) for i in range(5)] == [len(rev.level(i)) for i in range(5)]
    assert [loaded.level(i).oid() for i in range(5)] == [rev.level(i).oid() for i in range(5)]
    assert loaded.max_seq() == rev.max_seq() == 11


def test_missing_revision_file(tmp_path):
    with pytest.raises(DBError) as info:
        Revision().load_from_file(tmp_path, "cd" * 32, tmp_path)
    assert info.value.code is ErrorCode.NOT_FOUND


def test_bad_revision_line(tmp_path):
    oid = "cd" * 32
    (tmp_path / oid).write_text("9 " + "ab" * 32 + "\n")
    with pytest.raises(DBError) as info:
        Revision().load_from_file(tmp_path, oid, tmp_path)
    assert info.value.code is ErrorCode.BAD_REVISION


def test_revision_propagates_level_errors(tmp_path):
    oid = "cd" * 32
    (tmp_path / oid).write_text("1 " + "ab" * 32 + "\n")
    with pytest.raises(DBError) as info:
        Revision().load_from_file(tmp_path, oid, tmp_path)
    assert info.value.code is ErrorCode.OPEN_FILE_ERROR


def test_pick_best_compaction_level():
    rev = Revision(level_files_limit=2)
    assert rev.pick_best_compaction_level() == -1
    for tag in (b"a", b"b", b"c"):
        rev.level(4).insert(_meta(tag, 1))
    assert rev.pick_best_compaction_level() == -1
    for tag in (b"a", b"b", b"c"):
        rev.level(1).insert(_meta(tag, 1))
    assert rev.pick_best_compaction_level() == 1
    for tag in (b"a", b"b"):
        rev.level(0).insert(_meta(tag, 1))
    assert rev.pick_best_compaction_level() == 1


def test_log_numbers_are_fifo():
    rev = Revision(log_numbers=[1])
    rev.push_log_number(2)
    rev.push_log_number(3)
    assert list(rev.log_numbers) == [1, 2, 3]
    assert rev.pop_log_number() == 1
    assert list(rev.log_numbers) == [2, 3]