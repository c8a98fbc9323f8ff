"""
Backfill missing audio durations.

Finds stories that have an audio recording but no ``duration_seconds``,
downloads each recording, measures it and stores the result. A failure on one
story is logged and the run moves on to the next.

Usage:
    heritage-whisper-backfill-durations              # update the database
    heritage-whisper-backfill-durations --dry-run    # measure only
    heritage-whisper-backfill-durations --batch 5 --limit 100
"""

from __future__ import annotations

import argparse
import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from heritage_whisper.core.database import async_session_maker
from heritage_whisper.core.database.entities import Story
from heritage_whisper.core.database.repositories import StoryRepository
from heritage_whisper.core.logging_config import get_logger, setup_logging
from heritage_whisper.integrations import IntegrationError, SupabaseClient, storage_path_from_url
from heritage_whisper.server.core.config import settings
from heritage_whisper.storytelling.audio import measure_duration

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10


@dataclass
class BackfillStats:
    found: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def fail(self, story: Story, reason: str) -> None:
        self.failed += 1
        self.errors.append(f"{story.id} ({story.title}): {reason}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Measure and store durations for stories recorded without one.")
    parser.add_argument("--dry-run", action="store_true", help="Measure durations without writing them.")
    parser.add_argument("--batch", type=int, default=DEFAULT_BATCH_SIZE, help="Stories downloaded concurrently.")
    parser.add_argument("--limit", type=int, default=None, help="Process at most this many stories.")
    return parser.parse_args()


async def download_audio(story: Story, supabase: SupabaseClient, http: httpx.AsyncClient) -> Optional[bytes]:
    bucket = settings.supabase.audio_bucket
    path = storage_path_from_url(story.audio_url, bucket)
    try:
        if path:
            return await supabase.download(bucket, path)
        if story.audio_url and story.audio_url.startswith("http"):
            response = await http.get(story.audio_url)
            response.raise_for_status()
            return response.content
    except (IntegrationError, httpx.HTTPError) as e:
        logger.warning(f"Failed to download audio for story {story.id}: {e}")
    return None


async def process_story(
    story: Story, supabase: SupabaseClient, http: httpx.AsyncClient, stats: BackfillStats
) -> Optional[int]:
    audio = await download_audio(story, supabase, http)
    if not audio:
        stats.fail(story, "failed to download audio file")
        return None
    duration = measure_duration(audio)
    if duration is None:
        stats.fail(story, "failed to calculate audio duration")
        return None
    logger.info(f"Story {story.id} ({story.title}): {duration} seconds")
    return duration


async def backfill(*, dry_run: bool, batch_size: int, limit: Optional[int]) -> BackfillStats:
    config = settings.supabase
    if not config.url or not config.service_role_key:
        raise SystemExit("Supabase is not configured: set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")

    stats = BackfillStats()
    supabase = SupabaseClient(config.url, service_role_key=config.service_role_key)
    try:
        async with async_session_maker() as session, httpx.AsyncClient(timeout=60.0) as http:
            stories = StoryRepository(session)
            pending = await stories.list_missing_duration(limit)
            stats.found = len(pending)
            logger.info(f"Found {stats.found} stories with audio but no duration")

            for start in range(0, len(pending), max(1, batch_size)):
                batch = pending[start : start + max(1, batch_size)]
                durations = await asyncio.gather(*(process_story(s, supabase, http, stats) for s in batch))
                for story, duration in zip(batch, durations):
                    if duration is None:
                        continue
                    if dry_run:
                        logger.info(f"[dry run] Would set duration_seconds={duration} on story {story.id}")
                        stats.updated += 1
                        continue
                    story.duration_seconds = duration
                    await stories.update(story)
                    stats.updated += 1
    finally:
        await supabase.aclose()
    return stats


def main() -> None:
    args = parse_args()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format, enable_file=False)

    started = time.monotonic()
    stats = asyncio.run(backfill(dry_run=args.dry_run, batch_size=args.batch, limit=args.limit))

    logger.info(
        f"Backfill finished in {time.monotonic() - started:.1f}s: "
        f"{stats.found} found, {stats.updated} updated, {stats.failed} failed"
        + (" (dry run)" if args.dry_run else "")
    )
    for error in stats.errors:
        logger.warning(f"  {error}")
    if stats.failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
