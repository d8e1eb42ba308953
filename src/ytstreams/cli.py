"""CLI entry point for ytstreams."""

import argparse
import asyncio
import io
import json
import sys

from ytstreams.config import load_log_level, parse_client_names
from ytstreams.errors import ExtractionError
from ytstreams.extractor import extract_streams
from ytstreams.log import init_logging
from ytstreams.models import YtStreamList, YtStreamResponse
from ytstreams.pot import PoTokenContext, StaticPoTokenProvider


def select_streams(streams: YtStreamList, kind: str, sort: str) -> YtStreamList:
    if kind == "audio":
        streams = streams.audio_only()
    elif kind == "video":
        streams = streams.video_only()
    if sort == "highest":
        streams = streams.with_highest_bitrate()
    elif sort == "lowest":
        streams = streams.with_lowest_bitrate()
    return streams


def format_streams(response: YtStreamResponse, streams: YtStreamList) -> str:
    lines = [f"client: {response.client}"]
    for s in streams:
        size = f"{s.file_size}B" if s.file_size is not None else "?"
        lines.append(
            f"{s.itag or '-':>4}  {s.ext:<5} {s.quality or '-':<24} {s.tbr:>9.1f}k  {size:>12}  {s.url}"
        )
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> None:
    provider = None
    if args.po_token:
        provider = StaticPoTokenProvider({PoTokenContext.GVS: args.po_token})
    try:
        clients = parse_client_names(",".join(args.client)) if args.client else None
        response = await extract_streams(
            args.video, clients=clients, po_token_provider=provider, timeout=args.timeout,
        )
    except (ExtractionError, ValueError, asyncio.TimeoutError) as e:
        print(f"Extraction failed: {e or type(e).__name__}", file=sys.stderr)
        sys.exit(1)
    streams = select_streams(response.streams, args.kind, args.sort)
    if args.json:
        data = response.to_dict()
        data["streams"] = [s.to_dict() for s in streams]
        print(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        print(format_streams(response, streams))


def main():
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    parser = argparse.ArgumentParser(description="ytstreams - YouTube stream URL extractor")
    parser.add_argument("video", help="Video ID or watch URL")
    parser.add_argument(
        "--client",
        action="append",
        help="Client to try (repeatable, comma-separated allowed); defaults to all",
    )
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument("--audio-only", dest="kind", action="store_const", const="audio")
    kind.add_argument("--video-only", dest="kind", action="store_const", const="video")
    parser.add_argument("--sort", choices=("highest", "lowest"), help="Order by bitrate")
    parser.add_argument("--json", action="store_true", help="Print JSON")
    parser.add_argument("--po-token", help="GVS PO token to attach to stream URLs")
    parser.add_argument("--timeout", type=float, help="Overall time limit in seconds")
    parser.add_argument(
        "--log-level",
        default=None,
        help="error, warn, info, debug or trace (default: YTSTREAMS_LOG_LEVEL or info)",
    )
    args = parser.parse_args()
    try:
        init_logging(args.log_level or load_log_level())
    except ValueError as e:
        parser.error(str(e))
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
