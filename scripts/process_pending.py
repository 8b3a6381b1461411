"""Run pending transcriptions for one parent in the foreground and print the summary.

Usage:
  python scripts/process_pending.py meeting 42
"""

from __future__ import annotations

import argparse
import asyncio
import json

from scribeflow.config import Settings
from scribeflow.models import ParentRef
from scribeflow.services import create_transcription_service
from scribeflow.utils.logging_setup import setup_logging


async def _main() -> int:
    parser = argparse.ArgumentParser(description="Process pending attachments of a parent record.")
    parser.add_argument("entity_type", choices=["meeting", "research"])
    parser.add_argument("parent_id", type=int)
    parser.add_argument(
        "--wait-retries",
        action="store_true",
        default=False,
        help="Keep running until scheduled retries have finished",
    )
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings)
    parent = ParentRef.parse(args.entity_type, args.parent_id)
    service = create_transcription_service(settings)
    await service.startup()
    try:
        attempted = await service.orchestrator.process_all_pending(parent)
        if args.wait_retries:
            await service.scheduler.wait_idle()
        summary = await service.get_summary(parent)
        print(json.dumps({"parent": parent.key, "attempted": attempted, "summary": summary.to_dict()}))
    finally:
        await service.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(_main()))
