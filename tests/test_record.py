"""Tests for per-generation metadata extraction."""

import os
import shutil
import sys
from datetime import datetime, timezone

import pytest

from pyrebuild.errors import (
    InvalidGenerationNameError,
    KernelVersionUnreadableError,
    MalformedStoreEntryError,
    TimestampUnavailableError,
    VersionUnreadableError,
)
from pyrebuild.generations import GenerationRecord, KernelVersion, generation_number
from pyrebuild.generations.record import (
    build_time,
    configuration_revision,
    kernel_version,
    specialisations,
)


def _no_revision(_gen_dir):
    return None


class TestGenerationNumber:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("system-1-link", 1),
            ("system-14-link", 14),
            ("system-0-link", 0),
            ("/nix/var/nix/profiles/system-321-link", 321),
        ],
    )
    def test_valid(self, name, expected):
        assert generation_number(name) == expected

    @pytest.mark.parametrize(
        "name",
        ["system", "system-x-link", "system--link", "system-1", "other-1-link", "system-1-link.bak"],
    )
    def test_invalid(self, name):
        with pytest.raises(InvalidGenerationNameError):
            generation_number(name)

    def test_named_profile(self):
        assert generation_number("work-7-link", profile_name="work") == 7
        with pytest.raises(InvalidGenerationNameError):
            generation_number("system-7-link", profile_name="work")


class TestKernelVersion:
    def test_parse(self):
        version = KernelVersion.parse("6.6.30")
        assert (version.major, version.minor, version.patch) == (6, 6, 30)
        assert str(version) == "6.6.30"

    def test_prerelease_and_build(self):
        version = KernelVersion.parse("6.9.0-rc1+debug")
        assert version.prerelease == "rc1"
        assert version.build == "debug"
        assert str(version) == "6.9.0-rc1+debug"

    @pytest.mark.parametrize("value", ["6.6", "v6.6.30", "modules", "6.6.30.1", ""])
    def test_rejects_non_semver(self, value):
        with pytest.raises(ValueError):
            KernelVersion.parse(value)


class TestExtract:
    """Tests for GenerationRecord.extract."""

    def test_fields(self, tmp_path, make_generation, nixos_version):
        link = make_generation(tmp_path, 3, kernel="6.1.90", specialisations=("b", "a"))

        record = GenerationRecord.extract(link, revision_query=_no_revision)

        assert record.number == 3
        assert record.nixos_version == nixos_version
        assert str(record.kernel_version) == "6.1.90"
        assert record.cfg_revision is None
        assert record.specialisations == ["a", "b"]
        assert record.build_time.tzinfo is not None

    def test_missing_revision_binary_gives_none(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        assert GenerationRecord.extract(link).cfg_revision is None

    def test_injected_revision(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        record = GenerationRecord.extract(link, revision_query=lambda _: "deadbeef")
        assert record.cfg_revision == "deadbeef"

    def test_missing_version_file(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        (link.resolve() / "nixos-version").unlink()
        with pytest.raises(VersionUnreadableError):
            GenerationRecord.extract(link, revision_query=_no_revision)

    def test_missing_kernel(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        (link.resolve() / "kernel").unlink()
        with pytest.raises(KernelVersionUnreadableError):
            GenerationRecord.extract(link, revision_query=_no_revision)

    def test_non_semver_module_dir(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1, kernel="latest")
        with pytest.raises(KernelVersionUnreadableError):
            GenerationRecord.extract(link, revision_query=_no_revision)

    def test_regular_files_in_module_dir_skipped(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1, kernel="6.6.30")
        modules = (link.resolve() / "kernel").resolve().parent / "lib" / "modules"
        (modules / "0-modules.alias").write_text("")
        assert str(kernel_version(link)) == "6.6.30"

    def test_empty_module_dir(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        modules = (link.resolve() / "kernel").resolve().parent / "lib" / "modules"
        shutil.rmtree(modules)
        modules.mkdir()
        with pytest.raises(KernelVersionUnreadableError):
            kernel_version(link)

    def test_target_outside_store(self, tmp_path):
        target = tmp_path / "plain-dir"
        target.mkdir()
        link = tmp_path / "system-5-link"
        link.symlink_to(target)
        with pytest.raises(MalformedStoreEntryError):
            GenerationRecord.extract(link, revision_query=_no_revision)

    def test_bad_link_name(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        renamed = link.with_name("system-current")
        link.rename(renamed)
        with pytest.raises(InvalidGenerationNameError):
            GenerationRecord.extract(renamed, revision_query=_no_revision)

    def test_to_document(self, tmp_path, make_generation, nixos_version):
        link = make_generation(tmp_path, 2, specialisations=("gaming",))
        document = GenerationRecord.extract(link, revision_query=_no_revision).to_document()

        assert "number" not in document
        assert document["kernel_version"] == "6.6.30"
        assert document["nixos_version"] == nixos_version
        assert document["cfg_revision"] is None
        assert document["specialisations"] == ["gaming"]
        assert isinstance(document["build_time"], str)


class TestSteps:
    def test_build_time_missing_link(self, tmp_path):
        with pytest.raises(TimestampUnavailableError):
            build_time(tmp_path / "system-1-link")

    def test_build_time_is_utc(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        created = build_time(link)
        assert created.tzinfo == timezone.utc
        assert created <= datetime.now(timezone.utc)

    def test_build_time_reads_link_not_store_entry(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        os.utime(link.resolve(), (1, 1))
        assert build_time(link).year > 1970

    def test_specialisations_missing_dir(self, tmp_path):
        assert specialisations(tmp_path) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="needs executable shell scripts")
    def test_configuration_revision_runs_generation_binary(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        bin_dir = link.resolve() / "sw" / "bin"
        bin_dir.mkdir(parents=True)
        script = bin_dir / "nixos-version"
        script.write_text('#!/bin/sh\n[ "$1" = "--configuration-revision" ] && echo 0123abc\n')
        script.chmod(0o755)

        assert configuration_revision(link) == "0123abc"

    @pytest.mark.skipif(sys.platform == "win32", reason="needs executable shell scripts")
    def test_configuration_revision_failure_gives_none(self, tmp_path, make_generation):
        link = make_generation(tmp_path, 1)
        bin_dir = link.resolve() / "sw" / "bin"
        bin_dir.mkdir(parents=True)
        script = bin_dir / "nixos-version"
        script.write_text("#!/bin/sh\nexit 1\n")
        script.chmod(0o755)

        assert configuration_revision(link) is None
