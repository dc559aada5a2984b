"""
Shared test fixtures — a NasTarget and a scripted fake NAS.
"""

import json
from pathlib import Path

import pytest

from diskcompat.adapters.base import ExecutionContext
from diskcompat.adapters.mock import MockAdapter
from diskcompat.adapters.registry import AdapterRegistry
from diskcompat.core.models.action import Receipt
from diskcompat.core.models.target import NasTarget

MODEL_ID = "synology_geminilake_920+"

SAMPLE_DB = {
    "success": 1,
    "disk_compatbility_info": {
        "WD40EFRX-68N32N0": {
            "82.00A82": {
                "compatibility_interval": [
                    {"compatibility": "support", "not_yet_rolling_status": "support"},
                ],
            },
        },
        "HAT5300-8T": {
            "default": {"compatibility_interval": [{"compatibility": "support"}]},
        },
    },
    "nas_model": "DS920+",
    "version_cycle": "2024-03",
}


class FakeNas:
    """ssh and scp mocks behaving like a DS920+ with two disks."""

    def __init__(self, db: dict | bytes = SAMPLE_DB):
        self.ssh = MockAdapter(adapter_name="ssh")
        self.scp = MockAdapter(adapter_name="scp")
        self.registry = AdapterRegistry()
        self.registry.register(self.ssh)
        self.registry.register(self.scp)

        self.db_bytes = db if isinstance(db, bytes) else json.dumps(db, indent=4).encode("utf-8")
        self.uploads: dict[str, bytes] = {}

        self.ssh.set_output("query-model", MODEL_ID + "\n")
        self.ssh.set_output("query-disks", "sata1: WD40EFRX-68N32N0\nsata2: ST8000VN004-2M2101\n")
        self.scp.set_handler("download-db", self._download)
        self.scp.set_handler("upload-db", self._upload)

    def set_disks(self, output: str) -> None:
        self.ssh.set_output("query-disks", output)

    def _download(self, ctx: ExecutionContext) -> Receipt:
        Path(ctx.action.params["local_path"]).write_bytes(self.db_bytes)
        return Receipt.success(adapter="scp", action_id=ctx.action.id, return_code=0)

    def _upload(self, ctx: ExecutionContext) -> Receipt:
        self.uploads[ctx.action.params["remote_path"]] = Path(ctx.action.params["local_path"]).read_bytes()
        return Receipt.success(adapter="scp", action_id=ctx.action.id, return_code=0)

    def uploaded_json(self) -> dict:
        assert len(self.uploads) == 1
        return json.loads(next(iter(self.uploads.values())))

    def ssh_commands(self) -> list[str]:
        return [ctx.action.params["command"] for ctx in self.ssh.call_log]


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Base directory for per-run scratch directories."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def target(scratch_dir: Path) -> NasTarget:
    return NasTarget(
        user="admin",
        host="nas.local",
        scratch_dir=scratch_dir,
        elevation="noninteractive",
    )


@pytest.fixture
def fake_nas() -> FakeNas:
    return FakeNas()


@pytest.fixture
def sample_db() -> dict:
    return json.loads(json.dumps(SAMPLE_DB))
