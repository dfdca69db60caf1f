#!/usr/bin/env python3
"""
main.py
- Service entrypoint for the nodelabel-orch container.
- Launches:
    - Label sync polling loop (POLLING_MODE)
    - Docker node event watcher (EVENT_MODE)
    - Health, manual sync and metrics API
"""
import asyncio
import sys
from threading import Thread

import sentry_sdk
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from loguru import logger

from nodelabel_orch.core import docker_client
from nodelabel_orch.core.config import (
    API_HOST,
    API_PORT,
    EVENT_MODE,
    LOG_LEVEL,
    POLLING_MODE,
    SENTRY_DSN,
)
from nodelabel_orch.runner import label_sync

METRIC_HELP = {
    "reconcile_runs_total": ("counter", "Total node reconcile passes started"),
    "label_patches_total": ("counter", "Total label patches applied to nodes"),
    "reconcile_errors_total": ("counter", "Total failed reconcile passes"),
    "decode_errors_total": ("counter", "Total reconcile failures caused by malformed manifests"),
    "sweep_last_duration_seconds": ("gauge", "Duration of the last full node sweep in seconds"),
}


def setup_logging():
    logger.remove()
    logger.add(
        sys.stderr,
        level=LOG_LEVEL,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
    if SENTRY_DSN:
        sentry_sdk.init(dsn=SENTRY_DSN, traces_sample_rate=1.0)


def render_metrics(metrics):
    lines = []
    for name, value in metrics.items():
        kind, help_text = METRIC_HELP.get(name, ("gauge", name))
        lines.append(f"# HELP {name} {help_text}")
        lines.append(f"# TYPE {name} {kind}")
        lines.append(f"{name} {value}")
    return "\n".join(lines) + "\n"


def create_api(dispatcher):
    api = FastAPI()

    @api.get("/healthz")
    async def health():
        return {"status": "ok"}

    @api.post("/sync")
    async def sync_now():
        Thread(target=dispatcher.sweep, daemon=True).start()
        return {"status": "triggered"}

    @api.get("/metrics")
    async def metrics():
        return PlainTextResponse(render_metrics(dispatcher.snapshot_metrics()), media_type="text/plain")

    return api


async def main(dispatcher):
    try:
        if POLLING_MODE:
            await label_sync.run(dispatcher)
        else:
            # event-only: keep the loop alive for the API and watcher threads
            await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("[nodelabel-orch] Shutting down cleanly...")


def start():
    setup_logging()
    client = docker_client.connect()
    if not docker_client.is_swarm_manager(client):
        logger.error("[nodelabel-orch] Docker engine is not a Swarm manager, cannot label nodes")
        sys.exit(1)

    reconciler, nodes = label_sync.build_reconciler(client)
    dispatcher = label_sync.LabelSyncDispatcher(reconciler, nodes)

    api = create_api(dispatcher)
    Thread(target=uvicorn.run, args=(api,), kwargs={"host": API_HOST, "port": API_PORT}, daemon=True).start()
    if EVENT_MODE:
        Thread(target=dispatcher.watch_events, args=(client,), daemon=True).start()

    try:
        asyncio.run(main(dispatcher))
    except KeyboardInterrupt:
        logger.info("[nodelabel-orch] KeyboardInterrupt received. Exiting.")
    finally:
        dispatcher.close()


if __name__ == "__main__":
    start()
