#!/usr/bin/env python3
"""
Audio Extraction Runner

Start, cancel and watch extraction jobs for a recording from the command line.

Usage:
    python run_extraction.py list <recording_id>
    python run_extraction.py extract <recording_id> kits-drums
    python run_extraction.py extract <recording_id> melody --watch
    python run_extraction.py cancel <recording_id> kits-drums
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
load_dotenv()

from src.config import get_settings
from src.models.job import PROCESSING_TYPES, JobRecord
from src.services.supervisor import JobSupervisor, create_job_supervisor
from src.utils.errors import AudioExtractorError

STATUS_ICONS = {
    "pending": "⏳",
    "processing": "🔄",
    "completed": "✅",
    "failed": "❌",
}


def print_job(job: JobRecord, supervisor: JobSupervisor) -> None:
    icon = STATUS_ICONS.get(job.status, "•")
    line = f"{icon} {job.processing_type:<12} {job.status:<10} {job.created_at:%Y-%m-%d %H:%M:%S}"
    elapsed = supervisor.processing_time(job.processing_type)
    if job.status == "processing" and elapsed:
        line += f"  ({elapsed})"
    print(line)
    if job.result_url:
        print(f"   🎧 {job.result_url}")
    if job.error_message:
        print(f"   ⚠️  {job.error_message}")


def print_jobs(jobs: list[JobRecord], supervisor: JobSupervisor) -> None:
    if not jobs:
        print("No jobs for this recording yet.")
        return
    for job in jobs:
        print_job(job, supervisor)


async def watch_jobs(supervisor: JobSupervisor) -> None:
    async for jobs in supervisor.watch():
        print(f"--- {len(jobs)} job(s) ---")
        print_jobs(jobs, supervisor)


async def run_extract(supervisor: JobSupervisor, processing_type: str, watch: bool) -> int:
    print(f"🎛️  Starting {processing_type} extraction for {supervisor.recording_id}")

    extraction = asyncio.create_task(supervisor.extract(processing_type))
    if watch:
        # Let the dispatch write its record before the first listing
        await asyncio.sleep(0)
        await watch_jobs(supervisor)

    job = await extraction
    print()
    print_job(job, supervisor)
    return 0 if job.status == "completed" else 1


async def run(args: argparse.Namespace) -> int:
    supervisor = create_job_supervisor(args.recording_id)

    if args.command == "list":
        print_jobs(await supervisor.list_jobs(), supervisor)
        return 0

    if args.command == "cancel":
        cancelled = await supervisor.cancel(args.processing_type)
        print(f"🛑 Cancelled {len(cancelled)} {args.processing_type} job(s)")
        return 0

    return await run_extract(supervisor, args.processing_type, args.watch)


def main() -> None:
    parser = argparse.ArgumentParser(description="Audio extraction job runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List jobs for a recording")
    list_parser.add_argument("recording_id")

    extract_parser = subparsers.add_parser("extract", help="Start an extraction")
    extract_parser.add_argument("recording_id")
    extract_parser.add_argument("processing_type", choices=sorted(PROCESSING_TYPES))
    extract_parser.add_argument(
        "--watch", action="store_true", help="Print the job list while processing"
    )

    cancel_parser = subparsers.add_parser("cancel", help="Cancel processing jobs of a type")
    cancel_parser.add_argument("recording_id")
    cancel_parser.add_argument("processing_type", choices=sorted(PROCESSING_TYPES))

    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level)

    try:
        sys.exit(asyncio.run(run(args)))
    except AudioExtractorError as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
