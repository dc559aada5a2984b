"""
Tests for NAS probing — model and disk queries and their parsers.
"""

import pytest

from diskcompat.core.errors import RemoteExecutionFailed
from diskcompat.core.services.nas_probe import (
    DISK_LIST_COMMAND,
    MODEL_QUERY_COMMAND,
    DetectedDisk,
    parse_disk_line,
    parse_disk_output,
    parse_model_output,
    query_disks,
    query_model,
)


class TestParseModelOutput:
    def test_single_line(self):
        assert parse_model_output("synology_geminilake_920+\n") == "synology_geminilake_920+"

    def test_first_non_empty_line(self):
        assert parse_model_output("\n  synology_r1000_1522+  \nextra\n") == "synology_r1000_1522+"

    @pytest.mark.parametrize("output", ["", "\n\n", "   "])
    def test_empty(self, output: str):
        with pytest.raises(RemoteExecutionFailed, match="no output"):
            parse_model_output(output)

    @pytest.mark.parametrize("output", ["../../etc/passwd", "two words", "a/b"])
    def test_rejects_unsafe_identifier(self, output: str):
        with pytest.raises(RemoteExecutionFailed, match="unexpected identifier"):
            parse_model_output(output)


class TestParseDiskOutput:
    def test_labelled_lines(self):
        out = "sata1: WD40EFRX-68N32N0\nnvme0n1: SNV3410-400G\nsda: ST4000VN008-2DR166\n"
        assert parse_disk_output(out) == [
            DetectedDisk(model="WD40EFRX-68N32N0", device="sata1"),
            DetectedDisk(model="SNV3410-400G", device="nvme0n1"),
            DetectedDisk(model="ST4000VN008-2DR166", device="sda"),
        ]

    def test_raw_lines(self):
        out = "WD40EFRX-68N32N0   \nST4000VN008-2DR166\n"
        assert [d.model for d in parse_disk_output(out)] == ["WD40EFRX-68N32N0", "ST4000VN008-2DR166"]
        assert all(d.device is None for d in parse_disk_output(out))

    def test_mixed_formats(self):
        out = "sdb: HAT5300-8T\nHAT5300-8T\n"
        assert [d.model for d in parse_disk_output(out)] == ["HAT5300-8T", "HAT5300-8T"]

    def test_blank_and_nul_lines_dropped(self):
        out = "\n\0\n  \nsdc:   \nsata2: WD80EFZZ\0\n"
        assert parse_disk_output(out) == [DetectedDisk(model="WD80EFZZ", device="sata2")]

    def test_colon_in_model_without_device_label_is_kept(self):
        assert parse_disk_line("VENDOR:MODEL-1") == DetectedDisk(model="VENDOR:MODEL-1")

    def test_dev_prefix(self):
        assert parse_disk_line("/dev/sda: ST8000") == DetectedDisk(model="ST8000", device="sda")

    def test_duplicates_kept(self):
        out = "sata1: X\nsata2: X\n"
        assert len(parse_disk_output(out)) == 2


class TestQueries:
    def test_query_model(self, fake_nas, target):
        assert query_model(fake_nas.registry, target) == "synology_geminilake_920+"
        assert fake_nas.ssh_commands() == [MODEL_QUERY_COMMAND]

    def test_query_model_ssh_failure(self, fake_nas, target):
        fake_nas.ssh.set_failure("query-model", error="Permission denied (publickey)", return_code=255)
        with pytest.raises(RemoteExecutionFailed) as exc_info:
            query_model(fake_nas.registry, target)
        assert "Permission denied" in str(exc_info.value)
        assert exc_info.value.stage == "query-model"

    def test_query_model_empty(self, fake_nas, target):
        fake_nas.ssh.set_output("query-model", "")
        with pytest.raises(RemoteExecutionFailed):
            query_model(fake_nas.registry, target)

    def test_query_disks(self, fake_nas, target):
        disks = query_disks(fake_nas.registry, target)
        assert [d.model for d in disks] == ["WD40EFRX-68N32N0", "ST8000VN004-2M2101"]
        assert fake_nas.ssh_commands() == [DISK_LIST_COMMAND]

    def test_query_disks_failure(self, fake_nas, target):
        fake_nas.ssh.set_failure("query-disks", error="timeout")
        with pytest.raises(RemoteExecutionFailed) as exc_info:
            query_disks(fake_nas.registry, target)
        assert exc_info.value.stage == "query-disks"


class TestCommandTemplates:
    def test_model_query_reads_unique(self):
        assert "/etc.defaults/synoinfo.conf" in MODEL_QUERY_COMMAND
        assert "unique=" in MODEL_QUERY_COMMAND

    def test_disk_list_covers_sata_and_nvme(self):
        assert "/sys/block/sd*/device/model" in DISK_LIST_COMMAND
        assert "/sys/block/sata*/device/model" in DISK_LIST_COMMAND
        assert "/sys/block/nvme*n*/device/model" in DISK_LIST_COMMAND
