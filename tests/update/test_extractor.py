import zipfile
from pathlib import Path

import pytest

from update.extractor import (
    ArchiveExtractor,
    ReleaseBundle,
    UnsafeArchiveError,
    staging_dir_for,
)
from update.session import UpdateSession


def make_archive(path: Path, entries: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w") as zipf:
        for name, data in entries.items():
            zipf.writestr(name, data)
    return path


class TestStagingDir:
    """Test cases for the staging directory name."""

    def test_extension_removed(self, tmp_path):
        """Test that the staging dir is the archive name without extension."""
        assert staging_dir_for(tmp_path / "mte-release.zip") == tmp_path / "mte-release"

    def test_string_path(self):
        """Test that plain strings are accepted."""
        assert staging_dir_for("mte-release.zip") == Path("mte-release")


class TestArchiveExtractor:
    """Test cases for the ArchiveExtractor class."""

    @pytest.fixture
    def session(self, tmp_path):
        return UpdateSession(install_dir=tmp_path)

    @pytest.fixture
    def extractor(self, session):
        return ArchiveExtractor(session)

    def test_extract_flat_archive(self, extractor, session, tmp_path):
        """Test that every entry is unpacked and the destination registered."""
        archive = make_archive(
            tmp_path / "mte-release.zip", {"a.txt": b"alpha", "b.txt": b"beta"}
        )
        destination = tmp_path / "mte-release"

        bundle = extractor.extract(archive, destination)

        assert bundle == ReleaseBundle(archive=archive, root=destination)
        assert (destination / "a.txt").read_bytes() == b"alpha"
        assert (destination / "b.txt").read_bytes() == b"beta"
        assert session.temp_paths == (destination,)

    def test_extract_preserves_nested_paths(self, extractor, tmp_path):
        """Test that parent directories are created for nested entries."""
        archive = make_archive(
            tmp_path / "release.zip", {"docs/guide/readme.md": b"# guide"}
        )
        destination = tmp_path / "release"

        assert extractor.extract(archive, destination) is not None
        assert (destination / "docs" / "guide" / "readme.md").read_bytes() == b"# guide"

    def test_missing_archive(self, extractor, session, tmp_path):
        """Test that a missing archive fails without creating anything."""
        destination = tmp_path / "mte-release"

        assert extractor.extract(tmp_path / "mte-release.zip", destination) is None
        assert not destination.exists()
        assert session.temp_paths == ()

    def test_malformed_archive(self, extractor, tmp_path):
        """Test that a corrupt archive fails."""
        archive = tmp_path / "mte-release.zip"
        archive.write_bytes(b"this is not a zip file")

        assert extractor.extract(archive, tmp_path / "mte-release") is None

    @pytest.mark.parametrize("name", ["../evil.txt", "nested/../../evil.txt"])
    def test_rejects_path_traversal(self, extractor, session, tmp_path, name):
        """Test that entries escaping the destination are refused."""
        install_dir = tmp_path / "install"
        install_dir.mkdir()
        archive = make_archive(install_dir / "release.zip", {"ok.txt": b"ok", name: b"x"})
        destination = install_dir / "release"

        assert extractor.extract(archive, destination) is None
        assert not (install_dir / "evil.txt").exists()
        assert not (tmp_path / "evil.txt").exists()
        # Nothing is written when any entry is unsafe
        assert not destination.exists()
        assert session.temp_paths == ()

    def test_rejects_absolute_entry(self, extractor, tmp_path):
        """Test that absolute entry names are refused."""
        archive = make_archive(tmp_path / "release.zip", {"/etc/evil.conf": b"x"})

        assert extractor.extract(archive, tmp_path / "release") is None
        assert not (tmp_path / "release").exists()

    def test_check_member(self, tmp_path):
        """Test the entry validation directly."""
        ArchiveExtractor._check_member("a.txt", tmp_path)
        ArchiveExtractor._check_member("dir/", tmp_path)
        with pytest.raises(UnsafeArchiveError):
            ArchiveExtractor._check_member("../a.txt", tmp_path)
        with pytest.raises(UnsafeArchiveError):
            ArchiveExtractor._check_member("C:/windows/a.txt", tmp_path)

    def test_unsafe_archive_error_is_bad_zip(self):
        """Test that unsafe archives are a kind of malformed archive."""
        assert issubclass(UnsafeArchiveError, zipfile.BadZipFile)
