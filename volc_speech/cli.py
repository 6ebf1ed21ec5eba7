"""Command-line entry point: run one record ASR or subtitle job end to end.

Usage (VOLCENGINE_ACCESS_TOKEN, VOLCENGINE_APP_ID and, for record jobs,
VOLCENGINE_CLUSTER set in the environment or a .env file):
  volc-speech record --url https://example.com/a.mp3 --uid demo --format mp3
  volc-speech subtitle --file clip.mp3 --speaker-info
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from volc_speech.client import Client
from volc_speech.errors import ConfigurationError, SpeechClientError
from volc_speech.record import RecordAsrRequest, transcribe
from volc_speech.subtitle import SubtitleRequest, generate_subtitles


def _require_env(name: str) -> str:
    value = (os.environ.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"{name} is not set")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="volc-speech")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    rec = sub.add_parser("record", help="transcribe a remote audio URL")
    rec.add_argument("--url", required=True)
    rec.add_argument("--uid", required=True)
    rec.add_argument("--format")
    rec.add_argument("--language")
    rec.add_argument("--speaker-info", action="store_true")
    rec.add_argument("--retry", type=float, default=10.0, help="seconds between polls")
    rec.add_argument("--max-attempts", type=int)

    sbt = sub.add_parser("subtitle", help="generate subtitles for a file or URL")
    src = sbt.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", type=Path)
    src.add_argument("--url")
    sbt.add_argument("--language")
    sbt.add_argument("--caption-type")
    sbt.add_argument("--speaker-info", action="store_true")
    sbt.add_argument("--non-blocking", action="store_true")
    sbt.add_argument("--retry", type=float, default=5.0)
    sbt.add_argument("--max-attempts", type=int)
    return parser


async def _run_record(client: Client, args: argparse.Namespace) -> dict:
    builder = (
        RecordAsrRequest.builder()
        .appid(_require_env("VOLCENGINE_APP_ID"))
        .token(client.config.access_token)
        .cluster(_require_env("VOLCENGINE_CLUSTER"))
        .uid(args.uid)
        .url(args.url)
        .use_punc(True)
    )
    if args.format:
        builder.format(args.format)
    if args.language:
        builder.language(args.language)
    if args.speaker_info:
        builder.with_speaker_info(True)
    result = await transcribe(client, builder.build(), args.retry, max_attempts=args.max_attempts)
    return result.model_dump(mode="json", exclude_none=True)


async def _run_subtitle(client: Client, args: argparse.Namespace) -> dict:
    builder = SubtitleRequest.builder().appid(_require_env("VOLCENGINE_APP_ID"))
    if args.file is not None:
        builder.local_file(args.file)
    else:
        builder.url(args.url)
    if args.language:
        builder.language(args.language)
    if args.caption_type:
        builder.caption_type(args.caption_type)
    if args.speaker_info:
        builder.with_speaker_info(True)
    result = await generate_subtitles(
        client,
        builder.build(),
        blocking=not args.non_blocking,
        retry=args.retry,
        max_attempts=args.max_attempts,
    )
    return result.model_dump(mode="json", exclude_none=True)


async def run(args: argparse.Namespace) -> dict:
    async with Client.from_env() as client:
        if args.command == "record":
            return await _run_record(client, args)
        return await _run_subtitle(client, args)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(message)s")
    try:
        out = asyncio.run(run(args))
    except SpeechClientError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
