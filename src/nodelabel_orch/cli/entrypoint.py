#!/usr/bin/env python3
"""
entrypoint.py
- Manual entrypoint for triggering label reconciles via `docker exec`.
- Usage:
    docker exec <container> nodelabel-orch-cli reconcile <node>
    docker exec <container> nodelabel-orch-cli sync
"""

import signal
import sys

from loguru import logger

from nodelabel_orch.core import docker_client
from nodelabel_orch.core.errors import LabelerError
from nodelabel_orch.runner.label_sync import LabelSyncDispatcher, build_reconciler


def usage():
    print("Usage: nodelabel-orch-cli <command> [node]")
    print("Available commands:")
    print("  reconcile <node>   Reconcile labels on a single node (ID, or unique hostname) and report the patch")
    print("  sync               Reconcile labels on every node once")
    sys.exit(1)


def handle_exit(signum, frame):
    print("📴 Received shutdown signal. Exiting...")
    sys.exit(0)


def reconcile(reconciler, name):
    try:
        result = reconciler.reconcile(name)
    except LabelerError as e:
        logger.error(f"[cli] {type(e).__name__}: {e}")
        return 1

    if result.skipped:
        print(f"Node {name} not found, nothing to do")
    elif not result.update and not result.delete:
        print(f"Node {name} labels already up to date")
    else:
        verb = "Patched" if result.patched else "Would patch"
        print(f"{verb} {name}")
        for key, value in sorted(result.update.items()):
            print(f"  + {key}={value}")
        for key in sorted(result.delete):
            print(f"  - {key}")
    return 0


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        usage()

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    command = argv[0]
    if command == "reconcile" and len(argv) == 2:
        reconciler, _ = build_reconciler(docker_client.connect())
        sys.exit(reconcile(reconciler, argv[1]))
    elif command == "sync" and len(argv) == 1:
        reconciler, nodes = build_reconciler(docker_client.connect())
        LabelSyncDispatcher(reconciler, nodes).sweep()
    else:
        print(f"❌ Unknown command: {' '.join(argv)}")
        usage()


if __name__ == "__main__":
    main()
