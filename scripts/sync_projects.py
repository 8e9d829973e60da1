#!/usr/bin/env python3
"""
Operator CLI for the Supabase -> analysis backend sync.

    python -m scripts.sync_projects status <project-id>
    python -m scripts.sync_projects sync <project-id> [<project-id> ...]
    python -m scripts.sync_projects sync-all
    python -m scripts.sync_projects verify

Prints JSON and exits non-zero when anything failed or the stores disagree.
"""
import argparse
import json
import logging
import sys

from offset_service.errors import PrimaryStoreError, ProjectValidationError, RemoteServiceError
from offset_service.main import get_backend, get_reconciler, get_store
from offset_service.sync import ProjectSyncReconciler, summarize
from utils.config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Sync carbon-offset projects from Supabase to the analysis backend.")
    sub = p.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show sync status of one project")
    status.add_argument("project_id")

    sync = sub.add_parser("sync", help="Sync the given projects")
    sync.add_argument("project_ids", nargs="+")

    sub.add_parser("sync-all", help="Sync every project in Supabase")
    sub.add_parser("verify", help="Compare the project ids in both stores")
    return p


def run(args: argparse.Namespace, reconciler: ProjectSyncReconciler) -> tuple[dict, int]:
    if args.command == "status":
        status = reconciler.check_project_sync_status(args.project_id)
        return status.model_dump(), 0

    if args.command == "sync":
        summary = summarize(reconciler.batch_sync_projects(args.project_ids))
        return summary.model_dump(), 1 if summary.failed else 0

    if args.command == "sync-all":
        summary = reconciler.sync_all_projects()
        return summary.model_dump(), 1 if summary.failed else 0

    report = reconciler.verify_data_consistency()
    return report.model_dump(), 0 if report.consistent else 1


def main(argv=None, reconciler: ProjectSyncReconciler | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if reconciler is None:
        reconciler = get_reconciler(get_store(), get_backend())

    try:
        output, code = run(args, reconciler)
    except (ProjectValidationError, PrimaryStoreError, RemoteServiceError) as e:
        logger.error(str(e))
        print(json.dumps({"error": str(e)}))
        return 2

    print(json.dumps(output, indent=2))
    return code


if __name__ == "__main__":
    sys.exit(main())
