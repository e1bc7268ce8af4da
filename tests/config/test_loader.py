from pathlib import Path
import textwrap

import pytest
from pydantic import ValidationError

from fleetboot.config.loader import load_config


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    monkeypatch.delenv("FLEETBOOT_OVERRIDES_FILE", raising=False)


def test_load_config_minimal_ok(tmp_path: Path):
    cfg_text = textwrap.dedent("""
        cluster_name: ci-runners
        region: eu-west-1
    """)
    f = tmp_path / "host.yaml"
    f.write_text(cfg_text)

    cfg = load_config(f)

    assert cfg.cluster_name == "ci-runners"
    assert cfg.storage.device == "/dev/xvdf"
    assert cfg.storage.mount_point == "/var/lib/docker-data"
    assert cfg.storage.wait_attempts == 60
    assert cfg.runtime.health_attempts == 30
    assert cfg.cleanup.enabled is True
    assert cfg.cleanup.schedule == "0 * * * *"


def test_nested_sections_and_env_expansion(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("RUNNER_CLUSTER", "build-fleet")
    f = tmp_path / "host.yaml"
    f.write_text(textwrap.dedent("""
        cluster_name: ${RUNNER_CLUSTER}
        region: us-east-2
        storage:
          device: /dev/nvme1n1
          fs_type: xfs
        cleanup:
          schedule: "30   14 * * *"
          max_age: 72h
        agent:
          extra:
            ECS_ENABLE_TASK_IAM_ROLE: "true"
    """))

    cfg = load_config(f)

    assert cfg.cluster_name == "build-fleet"
    assert cfg.storage.device == "/dev/nvme1n1"
    assert cfg.storage.fs_type == "xfs"
    assert cfg.storage.mount_point == "/var/lib/docker-data"
    assert cfg.cleanup.schedule == "30 14 * * *"
    assert cfg.cleanup.max_age == "72h"
    assert cfg.agent.extra == {"ECS_ENABLE_TASK_IAM_ROLE": "true"}


def test_overrides_file_next_to_config_is_merged(tmp_path: Path):
    (tmp_path / "host.yaml").write_text(textwrap.dedent("""
        cluster_name: ci-runners
        region: eu-west-1
        storage:
          device: /dev/xvdf
          mount_point: /data
    """))
    (tmp_path / "overrides.yaml").write_text(textwrap.dedent("""
        storage:
          device: /dev/xvdg
    """))

    cfg = load_config(tmp_path / "host.yaml")

    assert cfg.storage.device == "/dev/xvdg"
    assert cfg.storage.mount_point == "/data"


def test_overrides_file_from_env(tmp_path: Path, monkeypatch):
    (tmp_path / "host.yaml").write_text("cluster_name: a\nregion: r\n")
    elsewhere = tmp_path / "site" / "fleet.yaml"
    elsewhere.parent.mkdir()
    elsewhere.write_text("cluster_name: b\n")
    monkeypatch.setenv("FLEETBOOT_OVERRIDES_FILE", str(elsewhere))

    assert load_config(tmp_path / "host.yaml").cluster_name == "b"


def test_missing_env_overrides_file_is_skipped(tmp_path: Path, monkeypatch):
    (tmp_path / "host.yaml").write_text("cluster_name: a\nregion: r\n")
    monkeypatch.setenv("FLEETBOOT_OVERRIDES_FILE", str(tmp_path / "nope.yaml"))

    assert load_config(tmp_path / "host.yaml").cluster_name == "a"


def test_cli_overrides_win_and_none_is_ignored(tmp_path: Path):
    (tmp_path / "host.yaml").write_text("cluster_name: a\nregion: r\ncleanup:\n  max_age: 12h\n")

    cfg = load_config(
        tmp_path / "host.yaml",
        overrides={"region": "ap-south-1", "cleanup": {"enabled": False, "max_age": None}},
    )

    assert cfg.region == "ap-south-1"
    assert cfg.cleanup.enabled is False
    assert cfg.cleanup.max_age == "12h"


def test_no_file_overrides_only():
    cfg = load_config(overrides={"cluster_name": "c", "region": "r"})
    assert cfg.cluster_name == "c"


def test_missing_cluster_is_rejected():
    with pytest.raises(ValidationError):
        load_config(overrides={"region": "r"})


def test_schedule_with_wrong_field_count_is_rejected(tmp_path: Path):
    f = tmp_path / "host.yaml"
    f.write_text('cluster_name: c\nregion: r\ncleanup:\n  schedule: "0 * * *"\n')

    with pytest.raises(ValidationError, match="5 fields"):
        load_config(f)


@pytest.mark.parametrize("max_age", ["24 h", "1d", "24h; rm -rf /", "soon"])
def test_max_age_must_be_a_duration(max_age):
    with pytest.raises(ValidationError, match="max_age must be a duration"):
        load_config(overrides={"cluster_name": "c", "region": "r", "cleanup": {"max_age": max_age}})
