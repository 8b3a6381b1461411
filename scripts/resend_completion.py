"""Re-publish the completion event for a parent record (action=updated).

Usage:
  python scripts/resend_completion.py meeting 42
  python scripts/resend_completion.py research 7 --dry-run

Needs a persistent record store (RECORD_STORE_BACKEND=redis).
"""

from __future__ import annotations

import argparse
import asyncio
import json

from scribeflow.config import Settings
from scribeflow.dispatch import build_completion_message
from scribeflow.exceptions import ParentNotFoundError
from scribeflow.models import ParentRef
from scribeflow.services import create_transcription_service
from scribeflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Resend the ready-for-summarization event for a parent")
    p.add_argument("entity_type", choices=["meeting", "research"])
    p.add_argument("parent_id", type=int)
    p.add_argument("--dry-run", action="store_true", default=False, help="Print the event without publishing")
    return p.parse_args()


async def _main() -> int:
    args = _parse_args()
    settings = Settings()
    setup_logging(settings)
    parent = ParentRef.parse(args.entity_type, args.parent_id)
    service = create_transcription_service(settings)

    try:
        if args.dry_run:
            record = await service.records.get_parent(parent)
            if record is None:
                print(f"parent not found: {parent.key}")
                return 1
            message = build_completion_message(record, "updated", settings.kafka.topics(), source=settings.kafka.source)
            print(json.dumps({"topic": message.topic, "key": message.key, "headers": message.headers, "value": message.value}, indent=2, default=str))
            return 0

        await service.startup()
        try:
            sent = await service.resend_completion(parent)
        except ParentNotFoundError as exc:
            print(str(exc))
            return 1
        print(f"resend parent={parent.key} sent={sent} dispatcher={service.dispatcher.state.value}")
        return 0 if sent else 2
    finally:
        await service.shutdown()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(_main()))
