"""Discovery probe: runs the discovery strategy from a shell inside a pod.

Prints one JSON document per cycle:

    {"nodes": [{"private_address": "10.0.0.5:5701", ...}], "metadata": {...}}

Configuration comes from the same KUBERNETES_* environment variables the
library reads. ``--interval`` keeps polling until SIGINT/SIGTERM, which is
how a membership layer would drive it.
"""

from __future__ import annotations

import json
import signal
import threading

import typer

from cluster_discovery.tier0_core.config import load_config
from cluster_discovery.tier0_core.errors import ConfigurationError, DiscoveryError
from cluster_discovery.tier0_core.logging import get_logger
from cluster_discovery.tier3_platform.discovery import KubernetesDiscoveryStrategy

log = get_logger("cluster_discovery.probe")

app = typer.Typer(help="Resolve cluster peers the way the discovery strategy does.", add_completion=False)


def _cycle(strategy: KubernetesDiscoveryStrategy, indent: int | None) -> str:
    nodes = strategy.discover_nodes()
    return json.dumps(
        {
            "nodes": [node.as_dict() for node in nodes],
            "metadata": strategy.discover_local_metadata(),
        },
        indent=indent,
        default=str,
    )


@app.command()
def main(
    interval: float = typer.Option(0.0, help="Seconds between cycles; 0 runs once."),
    pretty: bool = typer.Option(False, help="Indent the JSON output."),
) -> None:
    try:
        config = load_config()
    except ConfigurationError as exc:
        typer.echo(exc.detail, err=True)
        raise typer.Exit(code=2)

    stop = threading.Event()

    def _shutdown(signum, frame):
        log.info("probe.stopping", signal=signum)
        stop.set()

    strategy = KubernetesDiscoveryStrategy(config)
    strategy.start()
    previous = {sig: signal.signal(sig, _shutdown) for sig in (signal.SIGTERM, signal.SIGINT)}
    try:
        while True:
            try:
                typer.echo(_cycle(strategy, 2 if pretty else None))
            except ConfigurationError as exc:
                typer.echo(exc.detail, err=True)
                raise typer.Exit(code=2)
            except DiscoveryError as exc:
                log.error("probe.discovery_failed", code=exc.code, error=exc.detail)
                raise typer.Exit(code=1)
            if interval <= 0 or stop.wait(interval):
                break
    finally:
        strategy.destroy()
        for sig, handler in previous.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    app()
