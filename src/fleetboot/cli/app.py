# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
import yaml
from pydantic import ValidationError

from fleetboot.bootstrap.agent import render_agent_config
from fleetboot.bootstrap.cleanup import render_cleanup_script
from fleetboot.bootstrap.runtime import render_daemon_config
from fleetboot.bootstrap.schedule import (
    render_cron_entry,
    render_timer_units,
    to_on_calendar,
    unit_paths,
)
from fleetboot.bootstrap.sequence import run_bootstrap
from fleetboot.bootstrap.storage import fstab_line
from fleetboot.config.loader import load_config
from fleetboot.config.models import BootstrapConfig
from fleetboot.host.local import LocalHost
from fleetboot.host.ssh import RemoteTarget, SshHost
from fleetboot.logging.log import init_logging
from fleetboot.observers.jsonfile import JsonFileObserver
from fleetboot.observers.logger import LoggerObserver


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="First-boot preparation of CI runner container hosts")

EXIT_FAILED = 1
EXIT_CONFIG = 2


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def build_overrides(
    *,
    cluster: Optional[str] = None,
    region: Optional[str] = None,
    device: Optional[str] = None,
    mount_point: Optional[str] = None,
    cleanup: Optional[bool] = None,
    schedule: Optional[str] = None,
    max_age: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Turn CLI flags into the nested dict shape of BootstrapConfig, leaving out
    anything not given so file values survive.
    """
    storage = {k: v for k, v in {"device": device, "mount_point": mount_point}.items() if v is not None}
    clean = {k: v for k, v in {"enabled": cleanup, "schedule": schedule, "max_age": max_age}.items() if v is not None}

    out: Dict[str, Any] = {}
    if cluster is not None:
        out["cluster_name"] = cluster
    if region is not None:
        out["region"] = region
    if log_file is not None:
        out["log_path"] = str(log_file)
    if storage:
        out["storage"] = storage
    if clean:
        out["cleanup"] = clean
    return out


def _load_or_exit(config: Optional[Path], overrides: Dict[str, Any]) -> BootstrapConfig:
    try:
        return load_config(config, overrides=overrides)
    except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=EXIT_CONFIG)


def _observers(logger, events_file: Optional[Path]) -> List:
    observers: List = [LoggerObserver(logger)]
    if events_file:
        observers.append(JsonFileObserver(events_file))
    return observers


def render_artifacts(cfg: BootstrapConfig) -> List[Tuple[str, str]]:
    """
    Every file the sequence would write, as (path, content) pairs. The
    mount-table line carries a placeholder UUID since the real one only
    exists once the device is formatted.
    """
    files = [
        (cfg.agent.config_path, render_agent_config(cfg.cluster_name, cfg.region, cfg.agent.extra)),
        (cfg.runtime.daemon_config_path, render_daemon_config(cfg.storage.mount_point)),
        (cfg.storage.fstab_path, fstab_line("<device-uuid>", cfg.storage) + "\n"),
    ]
    if cfg.cleanup.enabled:
        c = cfg.cleanup
        service, timer, _ = render_timer_units(c, c.schedule, c.script_path, runtime_service=cfg.runtime.service)
        service_path, timer_path = unit_paths(c)
        files += [
            (c.script_path, render_cleanup_script(c)),
            (service_path, service),
            (timer_path, timer),
            (c.cron_path, render_cron_entry(c.schedule, c.script_path)),
        ]
    return files


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command("run")
def run(
    config: Optional[Path] = typer.Argument(None, help="Host config YAML (optional when --cluster/--region are given)"),
    cluster: Optional[str] = typer.Option(None, "--cluster", help="Orchestrator cluster name"),
    region: Optional[str] = typer.Option(None, "--region", help="Region identifier"),
    device: Optional[str] = typer.Option(None, "--device", help="Secondary block device"),
    mount_point: Optional[str] = typer.Option(None, "--mount-point", help="Mount point / runtime data-root"),
    cleanup: Optional[bool] = typer.Option(None, "--cleanup/--no-cleanup", help="Install scheduled disk cleanup"),
    schedule: Optional[str] = typer.Option(None, "--schedule", help="Cleanup schedule (5-field cron)"),
    max_age: Optional[str] = typer.Option(None, "--max-age", help="Prune resources older than this (e.g. 24h)"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Boot log path"),
    events_file: Optional[Path] = typer.Option(None, "--events-file", help="Append JSON events here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="DEBUG output on the console"),
):
    """
    Bootstrap this machine. Meant to be called from cloud-init user data.
    """
    cfg = _load_or_exit(config, build_overrides(
        cluster=cluster, region=region, device=device, mount_point=mount_point,
        cleanup=cleanup, schedule=schedule, max_age=max_age, log_file=log_file,
    ))
    logger, run_id, _ = init_logging(log_path=cfg.log_path, verbose=verbose)

    report = run_bootstrap(
        LocalHost(logger=logger),
        cfg,
        observers=_observers(logger, events_file),
        run_id=run_id,
    )
    if not report.ok:
        raise typer.Exit(code=EXIT_FAILED)


@app.command("remote")
def remote(
    address: str = typer.Argument(..., help="IP or DNS name of the host"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Host config YAML"),
    user: str = typer.Option("ec2-user", "--user", "-u"),
    port: int = typer.Option(22, "--port"),
    key: Optional[Path] = typer.Option(None, "--key", "-i", help="SSH private key"),
    become_password: Optional[str] = typer.Option(
        None, "--become-password", envvar="FLEETBOOT_BECOME_PASSWORD", help="sudo password, if required",
    ),
    cluster: Optional[str] = typer.Option(None, "--cluster"),
    region: Optional[str] = typer.Option(None, "--region"),
    device: Optional[str] = typer.Option(None, "--device"),
    mount_point: Optional[str] = typer.Option(None, "--mount-point"),
    cleanup: Optional[bool] = typer.Option(None, "--cleanup/--no-cleanup"),
    schedule: Optional[str] = typer.Option(None, "--schedule"),
    max_age: Optional[str] = typer.Option(None, "--max-age"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Local log path"),
    events_file: Optional[Path] = typer.Option(None, "--events-file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Run the same sequence against a remote host over SSH.
    """
    cfg = _load_or_exit(config, build_overrides(
        cluster=cluster, region=region, device=device, mount_point=mount_point,
        cleanup=cleanup, schedule=schedule, max_age=max_age, log_file=log_file,
    ))
    logger, run_id, _ = init_logging(log_path=cfg.log_path, verbose=verbose)

    target = RemoteTarget(
        address=address,
        username=user,
        port=port,
        pkey_path=key,
        become_password=become_password,
    )
    with SshHost(target) as host:
        report = run_bootstrap(
            host,
            cfg,
            observers=_observers(logger, events_file),
            run_id=run_id,
        )
    if not report.ok:
        raise typer.Exit(code=EXIT_FAILED)


@app.command("render")
def render(
    config: Optional[Path] = typer.Argument(None, help="Host config YAML"),
    cluster: Optional[str] = typer.Option(None, "--cluster"),
    region: Optional[str] = typer.Option(None, "--region"),
    device: Optional[str] = typer.Option(None, "--device"),
    mount_point: Optional[str] = typer.Option(None, "--mount-point"),
    cleanup: Optional[bool] = typer.Option(None, "--cleanup/--no-cleanup"),
    schedule: Optional[str] = typer.Option(None, "--schedule"),
    max_age: Optional[str] = typer.Option(None, "--max-age"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write files under this directory instead of printing"),
):
    """
    Show every file the bootstrap would write, without touching any host.
    """
    cfg = _load_or_exit(config, build_overrides(
        cluster=cluster, region=region, device=device, mount_point=mount_point,
        cleanup=cleanup, schedule=schedule, max_age=max_age,
    ))
    for path, content in render_artifacts(cfg):
        if output:
            dest = output / path.lstrip("/")
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(content)
            typer.echo(f"wrote {dest}")
        else:
            typer.echo(f"# --- {path}")
            typer.echo(content, nl=False)


@app.command("schedule")
def schedule_cmd(
    expr: str = typer.Argument(..., help='5-field cron expression, e.g. "30 14 * * *"'),
):
    """
    Print the OnCalendar value a cleanup schedule translates to.
    """
    trigger = to_on_calendar(expr)
    typer.echo(f"OnCalendar={trigger.on_calendar}")
    if not trigger.exact:
        typer.echo("(not translatable; degraded to hourly)", err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
