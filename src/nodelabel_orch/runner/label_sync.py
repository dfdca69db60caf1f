#!/usr/bin/env python3
"""
label_sync.py
- Dispatcher for node label reconciles: triggers one pass per node change.
- Polling mode sweeps every Swarm node each RELABEL_TIME seconds; event mode
  reacts to Docker node events as they arrive. Both can run together.
- Guarantees at most one in-flight pass per node; a change arriving mid-pass
  re-runs the node once the current pass finishes.
- Owns retry: failed nodes are retried after a per-node cooldown.
- The event watcher reconnects with backoff when the Docker event stream drops.
"""

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import docker
import requests
from loguru import logger
from tenacity import Retrying, retry_if_exception_type, wait_exponential

from nodelabel_orch.core.config import (
    CONFIG_BASE,
    DRY_RUN,
    HTTP_TIMEOUT,
    IDENTITY_TOKEN,
    IDENTITY_URL,
    MAX_WORKERS,
    PROVIDER_ID_LABEL,
    RELABEL_TIME,
    RUN_ONCE,
)
from nodelabel_orch.core.constants import EVENT_RECONNECT_MAX_WAIT
from nodelabel_orch.core.errors import DecodeError, LabelerError
from nodelabel_orch.core.retry_state import RetryState
from nodelabel_orch.lib.common.swarm_nodes import SwarmNodeClient
from nodelabel_orch.lib.identity.http_identity import HttpIdentityProvider
from nodelabel_orch.lib.identity.identity_resolver import IdentityResolver
from nodelabel_orch.lib.manifests.config_cache import ConfigCache
from nodelabel_orch.lib.manifests.manifest_store import build_store
from nodelabel_orch.lib.sync.node_reconciler import NodeLabelReconciler

# a daemon restart or connection reset surfaces as any of these, at connect or mid-stream
EVENT_STREAM_ERRORS = (docker.errors.DockerException, requests.RequestException, OSError)


def build_reconciler(client):
    """
    Wire the reconciler from process configuration.

    Raises:
        ConfigError: CONFIG_BASE is not a valid manifest location.
    """
    nodes = SwarmNodeClient(client, provider_id_label=PROVIDER_ID_LABEL)
    store = build_store(CONFIG_BASE, timeout=HTTP_TIMEOUT)
    provider = HttpIdentityProvider(IDENTITY_URL, token=IDENTITY_TOKEN, timeout=HTTP_TIMEOUT)
    reconciler = NodeLabelReconciler(
        nodes=nodes,
        identifier=IdentityResolver(provider),
        cache=ConfigCache(store),
        dry_run=DRY_RUN,
    )
    return reconciler, nodes


class LabelSyncDispatcher:
    def __init__(self, reconciler, nodes, retry_state=None, max_workers=MAX_WORKERS):
        self.reconciler = reconciler
        self.nodes = nodes
        self.retry_state = retry_state or RetryState()
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._in_flight = set()
        self._rerun = set()
        self._executor = None

        # --- Metrics ---
        self.metrics = {
            "reconcile_runs_total": 0,
            "label_patches_total": 0,
            "reconcile_errors_total": 0,
            "decode_errors_total": 0,
            "sweep_last_duration_seconds": 0.0,
        }

    def _count(self, key, value=1):
        with self._lock:
            self.metrics[key] += value

    def snapshot_metrics(self):
        with self._lock:
            return dict(self.metrics)

    def _claim(self, name):
        with self._lock:
            if name in self._in_flight:
                self._rerun.add(name)
                return False
            self._in_flight.add(name)
            return True

    def _release(self, name):
        """Release the node; True if another change arrived while it was in flight."""
        with self._lock:
            if name in self._rerun:
                self._rerun.discard(name)
                return True
            self._in_flight.discard(name)
            return False

    def reconcile_node(self, name):
        """
        Reconcile one node unless a pass for it is already running or it is cooling down.

        Returns:
            ReconcileResult or None: The last pass's result; None if nothing ran or it failed.
        """
        if not self.retry_state.should_retry(name):
            logger.debug(f"[label_sync] {name} in retry cooldown, skipping")
            return None
        if not self._claim(name):
            logger.debug(f"[label_sync] {name} already in flight, queued a re-run")
            return None

        try:
            while True:
                result = self._run_once(name)
                if not self._release(name):
                    return result
        except BaseException:
            with self._lock:
                self._in_flight.discard(name)
                self._rerun.discard(name)
            raise

    def _run_once(self, name):
        self._count("reconcile_runs_total")
        try:
            result = self.reconciler.reconcile(name)
        except DecodeError as e:
            self._count("reconcile_errors_total")
            self._count("decode_errors_total")
            logger.error(f"[label_sync] ❌ Manifest defect while reconciling {name}: {e}")
            self.retry_state.record_retry(name)
            return None
        except LabelerError as e:
            self._count("reconcile_errors_total")
            logger.warning(f"[label_sync] Reconcile of {name} failed, will retry: {e}")
            self.retry_state.record_retry(name)
            return None

        self.retry_state.clear_retry(name)
        if result.patched:
            self._count("label_patches_total")
        return result

    def sweep(self):
        """Reconcile every node in the swarm, distinct nodes in parallel."""
        start_time = time.time()
        try:
            names = self.nodes.list_names()
        except LabelerError as e:
            self._count("reconcile_errors_total")
            logger.error(f"[label_sync] Unable to list nodes: {e}")
            return []

        logger.info(f"[label_sync] Reconciling labels on {len(names)} node(s)")
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="reconcile") as pool:
            results = list(pool.map(self.reconcile_node, names))

        with self._lock:
            self.metrics["sweep_last_duration_seconds"] = time.time() - start_time
        return results

    def handle_event(self, event):
        """Submit a reconcile for a Docker node event; returns the future or None."""
        if event.get("Type") != "node":
            return None
        actor = event.get("Actor", {})
        # the node ID is unique; the name attribute is a hostname and may be shared
        name = actor.get("ID") or actor.get("Attributes", {}).get("name")
        if not name:
            return None
        if event.get("Action") == "remove":
            logger.debug(f"[label_sync] Node {name} removed, nothing to reconcile")
            return None
        logger.debug(f"[label_sync] Node event {event.get('Action')} for {name}")
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="event")
            executor = self._executor
        future = executor.submit(self.reconcile_node, name)
        future.add_done_callback(lambda f: self._report_event_result(name, f))
        return future

    def _report_event_result(self, name, future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.opt(exception=error).error(f"[label_sync] ❌ Event-triggered reconcile of {name} crashed: {error}")

    def _consume_events(self, client):
        for event in client.events(decode=True, filters={"type": "node"}):
            self.handle_event(event)

    def watch_events(self, client, should_run=lambda: True, wait=None):
        """
        Block consuming Docker node events, reconnecting whenever the stream drops.
        Run in a daemon thread.

        Args:
            client (docker.DockerClient): Client whose event stream is watched.
            should_run (callable): Checked before each (re)connect; False stops watching.
            wait (tenacity wait strategy): Backoff between failed connects.
        """
        retrying = Retrying(
            retry=retry_if_exception_type(EVENT_STREAM_ERRORS),
            wait=wait if wait is not None else wait_exponential(multiplier=1, max=EVENT_RECONNECT_MAX_WAIT),
            before_sleep=_log_stream_loss,
            reraise=True,
        )
        logger.info("[label_sync] Watching Docker node events...")
        while should_run():
            retrying(self._consume_events, client)
            if should_run():
                logger.warning("[label_sync] Docker event stream closed, reconnecting")

    def close(self):
        """Wait for event-triggered passes to finish and release their threads."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


def _log_stream_loss(retry_state):
    error = retry_state.outcome.exception()
    logger.warning(
        f"[label_sync] Lost Docker event stream ({error}), reconnecting in {retry_state.next_action.sleep:.0f}s"
    )


async def run(dispatcher):
    """
    Polling loop: sweep all nodes, then sleep RELABEL_TIME seconds.
    """
    while True:
        await asyncio.to_thread(dispatcher.sweep)
        if RUN_ONCE:
            logger.info("[label_sync] RUN_ONCE set, exiting after one sweep")
            return
        await asyncio.sleep(RELABEL_TIME)
