"""Tests for duplicate file detection."""

import hashlib
from pathlib import Path
from unittest.mock import patch

import pytest
from dustpan.filesystem.duplicates import DuplicateDetector, hash_file
from dustpan.filesystem.errors import CancellationRequestedError, HashComputationError
from dustpan.filesystem.models import Entry, EntryKind, WarningKind
from dustpan.filesystem.progress import CancellationToken


def _entry(path: Path) -> Entry:
    return Entry(path=str(path), kind=EntryKind.FILE, size_bytes=path.stat().st_size)


class TestHashFile:
    """Tests for hash_file function."""

    def test_sha256(self, tmp_path: Path) -> None:
        """The digest is the SHA-256 of the content."""
        f = tmp_path / "f.bin"
        f.write_bytes(b"hello world")
        assert hash_file(str(f)) == hashlib.sha256(b"hello world").hexdigest()

    def test_chunked_equals_whole(self, tmp_path: Path) -> None:
        """Chunk size does not change the digest."""
        f = tmp_path / "f.bin"
        f.write_bytes(b"abcdefghij" * 100)
        assert hash_file(str(f), chunk_size=7) == hash_file(str(f))

    def test_missing_file(self, tmp_path: Path) -> None:
        """Unreadable files raise HashComputationError."""
        with pytest.raises(HashComputationError):
            hash_file(str(tmp_path / "missing"))


class TestDuplicateDetector:
    """Tests for DuplicateDetector."""

    def test_three_identical_one_different(self, tmp_path: Path) -> None:
        """Three copies form one set of three; the odd file is left out."""
        files = []
        for name in ("c.txt", "a.txt", "b.txt"):
            f = tmp_path / name
            f.write_bytes(b"duplicate!")
            files.append(f)
        other = tmp_path / "d.txt"
        other.write_bytes(b"different!")

        sets = DuplicateDetector().find_duplicates([_entry(f) for f in [*files, other]])

        assert len(sets) == 1
        dup = sets[0]
        assert dup.paths == [str(tmp_path / n) for n in ("a.txt", "b.txt", "c.txt")]
        assert dup.size_bytes == 10
        assert dup.reclaimable_bytes == 20
        assert dup.content_hash == hashlib.sha256(b"duplicate!").hexdigest()
        assert all(e.content_hash == dup.content_hash for e in dup.entries)

    def test_unique_sizes_never_hashed(self, tmp_path: Path) -> None:
        """Files with a unique size are not read at all."""
        a = tmp_path / "a"
        a.write_bytes(b"1")
        b = tmp_path / "b"
        b.write_bytes(b"22")

        with patch("dustpan.filesystem.duplicates.hash_file") as mock_hash:
            sets = DuplicateDetector().find_duplicates([_entry(a), _entry(b)])

        assert sets == []
        mock_hash.assert_not_called()

    def test_same_size_different_content(self, tmp_path: Path) -> None:
        """Equal sizes with different content are not duplicates."""
        a = tmp_path / "a"
        a.write_bytes(b"aaaa")
        b = tmp_path / "b"
        b.write_bytes(b"bbbb")
        assert DuplicateDetector().find_duplicates([_entry(a), _entry(b)]) == []

    def test_empty_files_ignored(self, tmp_path: Path) -> None:
        """Zero-byte files are never reported as duplicates."""
        a = tmp_path / "a"
        a.touch()
        b = tmp_path / "b"
        b.touch()
        assert DuplicateDetector().find_duplicates([_entry(a), _entry(b)]) == []

    def test_directories_ignored(self, tmp_path: Path) -> None:
        """Only file entries are considered."""
        entries = [
            Entry(path=str(tmp_path / "d1"), kind=EntryKind.DIRECTORY, size_bytes=0),
            Entry(path=str(tmp_path / "d2"), kind=EntryKind.DIRECTORY, size_bytes=0),
        ]
        assert DuplicateDetector().find_duplicates(entries) == []

    def test_files_over_limit_skipped(self, tmp_path: Path) -> None:
        """Files above the hash limit are not hashed."""
        a = tmp_path / "a"
        a.write_bytes(b"x" * 100)
        b = tmp_path / "b"
        b.write_bytes(b"x" * 100)

        detector = DuplicateDetector(max_hash_size=50)
        with patch("dustpan.filesystem.duplicates.hash_file") as mock_hash:
            assert detector.find_duplicates([_entry(a), _entry(b)]) == []
        mock_hash.assert_not_called()

    def test_sets_ordered_by_reclaimable(self, tmp_path: Path) -> None:
        """Larger reclaimable sets come first."""
        entries = []
        for i in range(2):
            small = tmp_path / f"small{i}"
            small.write_bytes(b"s" * 10)
            big = tmp_path / f"big{i}"
            big.write_bytes(b"b" * 100)
            entries += [_entry(small), _entry(big)]

        sets = DuplicateDetector(workers=2).find_duplicates(entries)

        assert [s.size_bytes for s in sets] == [100, 10]

    def test_unreadable_file_becomes_warning(self, tmp_path: Path) -> None:
        """A file that vanished before hashing produces a warning."""
        files = []
        for name in ("a", "b", "c"):
            f = tmp_path / name
            f.write_bytes(b"same")
            files.append(f)
        entries = [_entry(f) for f in files]
        files[2].unlink()

        detector = DuplicateDetector()
        sets = detector.find_duplicates(entries)

        assert len(sets) == 1
        assert sets[0].paths == [str(files[0]), str(files[1])]
        assert [w.kind for w in detector.warnings] == [WarningKind.HASH_FAILED]
        assert detector.warnings[0].path == str(files[2])

    def test_cancelled(self, tmp_path: Path) -> None:
        """A cancelled token stops hashing and raises."""
        a = tmp_path / "a"
        a.write_bytes(b"same")
        b = tmp_path / "b"
        b.write_bytes(b"same")
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationRequestedError):
            DuplicateDetector(cancellation=token).find_duplicates([_entry(a), _entry(b)])

    def test_duplicates_iff_identical_content(self, tmp_path: Path) -> None:
        """Two files share a set exactly when their bytes are equal."""
        contents = {"p": b"alpha", "q": b"alpha", "r": b"bravo", "s": b"bravo", "t": b"charl"}
        entries = []
        for name, data in contents.items():
            f = tmp_path / name
            f.write_bytes(data)
            entries.append(_entry(f))

        sets = DuplicateDetector().find_duplicates(entries)
        grouped = sorted(sorted(Path(p).name for p in s.paths) for s in sets)

        assert grouped == [["p", "q"], ["r", "s"]]
