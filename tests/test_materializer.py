"""Tests for scoped archive extraction and the 7-Zip adapter."""

import asyncio
import os
from unittest.mock import patch

import pytest

from common.process import ProcessResult
from errors import ExtractionError, MalformedArchiveNameError
from sync.extractor import SevenZipExtractor
from sync.materializer import extracted_entries, with_extracted_entries
from versioning.models import PackageIdentity, PackageVersion
from conftest import write_nupkg


class TestWithExtractedEntries:
    """Test the acquire/use/release scratch directory pattern."""

    def test_continuation_sees_both_entries(self, tmp_path, extractor):
        archive = write_nupkg(str(tmp_path / "cache"), "Foo", "1.0.0", [("Bar", "2.0.0")])
        scratch_root = str(tmp_path / "scratch")
        seen = {}

        async def continuation(binary_path, descriptor_path):
            seen["binary"] = binary_path
            seen["descriptor"] = descriptor_path
            seen["exists"] = (os.path.isfile(binary_path), os.path.isfile(descriptor_path))
            with open(descriptor_path, encoding="utf-8") as f:
                seen["text"] = f.read()

        asyncio.run(with_extracted_entries(archive, scratch_root, continuation, extractor))

        assert seen["exists"] == (True, True)
        assert os.path.basename(seen["binary"]) == "Foo.dll"
        assert os.path.basename(seen["descriptor"]) == "Foo.nuspec"
        assert 'id="Bar"' in seen["text"]
        assert [entry for _a, _t, entry in extractor.calls] == ["Foo.dll", "Foo.nuspec"]
        assert os.listdir(scratch_root) == []

    def test_scratch_directory_is_identity_scoped_and_unique(self, tmp_path, extractor):
        first = write_nupkg(str(tmp_path / "cache"), "Foo", "1.0.0")
        second = write_nupkg(str(tmp_path / "cache"), "Bar", "1.0.0")
        scratch_root = str(tmp_path / "scratch")
        dirs = []

        async def run():
            async with extracted_entries(first, scratch_root, extractor) as (_b1, d1):
                async with extracted_entries(second, scratch_root, extractor) as (_b2, d2):
                    dirs.extend([os.path.dirname(d1), os.path.dirname(d2)])
                    assert len(os.listdir(scratch_root)) == 2

        asyncio.run(run())

        assert dirs[0] != dirs[1]
        assert os.path.basename(dirs[0]).startswith("Foo.1.0.0-")
        assert os.path.basename(dirs[1]).startswith("Bar.1.0.0-")
        assert os.listdir(scratch_root) == []

    def test_scratch_removed_when_continuation_fails(self, tmp_path, extractor):
        archive = write_nupkg(str(tmp_path / "cache"), "Foo", "1.0.0")
        scratch_root = str(tmp_path / "scratch")

        async def continuation(binary_path, descriptor_path):
            raise RuntimeError("continuation failed")

        with pytest.raises(RuntimeError, match="continuation failed"):
            asyncio.run(with_extracted_entries(archive, scratch_root, continuation, extractor))
        assert os.listdir(scratch_root) == []

    def test_scratch_removed_when_extraction_fails(self, tmp_path):
        from conftest import ZipExtractor
        archive = write_nupkg(str(tmp_path / "cache"), "Foo", "1.0.0")
        scratch_root = str(tmp_path / "scratch")
        calls = []

        async def continuation(binary_path, descriptor_path):
            calls.append(binary_path)

        with pytest.raises(ExtractionError):
            asyncio.run(with_extracted_entries(archive, scratch_root, continuation, ZipExtractor(fail_for="Foo")))
        assert calls == []
        assert os.listdir(scratch_root) == []

    def test_entry_names_follow_declared_identity(self, tmp_path, extractor):
        archive = write_nupkg(str(tmp_path / "cache"), "Foo.Bar", "1.0.0", lowercase=True)
        identity = PackageIdentity("foo.bar", PackageVersion((1, 0, 0)))
        seen = {}

        async def continuation(binary_path, descriptor_path):
            seen["descriptor"] = (os.path.basename(descriptor_path), os.path.isfile(descriptor_path))
            seen["binary"] = (os.path.basename(binary_path), os.path.isfile(binary_path))

        asyncio.run(with_extracted_entries(
            archive, str(tmp_path / "scratch"), continuation, extractor, identity=identity
        ))

        assert [entry for _a, _t, entry in extractor.calls] == ["foo.bar.dll", "foo.bar.nuspec"]
        assert seen["descriptor"] == ("Foo.Bar.nuspec", True)
        assert seen["binary"] == ("Foo.Bar.dll", True)

    def test_malformed_archive_name(self, tmp_path, extractor):
        archive = tmp_path / "not-a-package.nupkg"
        archive.write_bytes(b"")

        async def continuation(binary_path, descriptor_path):
            pass

        with pytest.raises(MalformedArchiveNameError):
            asyncio.run(with_extracted_entries(str(archive), str(tmp_path / "scratch"), continuation, extractor))
        assert extractor.calls == []

    def test_limiter_bounds_concurrent_extractions(self, tmp_path):
        archives = [write_nupkg(str(tmp_path / "cache"), f"Pkg{i}", "1.0.0") for i in range(6)]
        scratch_root = str(tmp_path / "scratch")
        state = {"active": 0, "peak": 0}

        class SlowExtractor:
            async def extract(self, archive_path, target_dir, entry_name):
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
                await asyncio.sleep(0.01)
                state["active"] -= 1
                open(os.path.join(target_dir, entry_name), "wb").close()

        async def continuation(binary_path, descriptor_path):
            pass

        async def run():
            limiter = asyncio.Semaphore(2)
            await asyncio.gather(*(
                with_extracted_entries(a, scratch_root, continuation, SlowExtractor(), limiter=limiter)
                for a in archives
            ))

        asyncio.run(run())
        assert state["peak"] == 2


class TestSevenZipExtractor:
    """Test the external tool adapter."""

    def test_build_command(self):
        extractor = SevenZipExtractor("/opt/7z/7za")
        assert extractor.build_command("/c/Foo.1.0.0.nupkg", "/tmp/x", "Foo.nuspec") == [
            "/opt/7z/7za", "e", "/c/Foo.1.0.0.nupkg", "-o/tmp/x", "Foo.nuspec", "-r", "-y", "-ssc-",
        ]

    def test_success(self):
        async def fake_run(command):
            return ProcessResult(command=command, returncode=0, output="Everything is Ok")

        with patch("sync.extractor.run_process", side_effect=fake_run) as mock_run:
            asyncio.run(SevenZipExtractor().extract("a.nupkg", "/tmp/x", "Foo.dll"))
        mock_run.assert_called_once()

    def test_non_zero_exit_raises(self):
        async def fake_run(command):
            return ProcessResult(command=command, returncode=2, output="ERROR: Data Error")

        with patch("sync.extractor.run_process", side_effect=fake_run):
            with pytest.raises(ExtractionError) as exc_info:
                asyncio.run(SevenZipExtractor().extract("a.nupkg", "/tmp/x", "Foo.dll"))
        assert exc_info.value.returncode == 2
        assert "Data Error" in str(exc_info.value)

    def test_launch_failure_raises(self, tmp_path):
        extractor = SevenZipExtractor(str(tmp_path / "missing-7za"))
        with pytest.raises(ExtractionError) as exc_info:
            asyncio.run(extractor.extract("a.nupkg", str(tmp_path), "Foo.dll"))
        assert exc_info.value.returncode is None
