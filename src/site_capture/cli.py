from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .archive import StreamOutcome
from .errors import InputValidationError, PrimaryFetchError, StagingIOError
from .http_client import DEFAULT_TIMEOUT_S
from .pipeline import CaptureConfig, CapturePipeline
from .server import ServerSettings

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _run_capture(args: argparse.Namespace) -> int:
    config = CaptureConfig(
        timeout_s=float(args.timeout),
        max_retries=int(args.retries),
        staging_parent=args.staging_dir,
    )
    pipeline = CapturePipeline(config=config)

    try:
        prepared = pipeline.prepare(args.url)
    except InputValidationError as e:
        print(str(e), file=sys.stderr)
        return 2
    except (PrimaryFetchError, StagingIOError) as e:
        print(f"Failed to fetch source: {e}", file=sys.stderr)
        return 3

    out_path: Path = args.out or Path(prepared.archive_name)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("wb") as sink:
            outcome = prepared.stream_to(sink)
    except OSError as e:
        prepared.close()
        print(str(e), file=sys.stderr)
        return 2

    if outcome is not StreamOutcome.COMPLETED:
        out_path.unlink(missing_ok=True)
        print(f"capture: archive {outcome.value}: {out_path}", file=sys.stderr)
        return 4

    if bool(args.json):
        print(
            json.dumps(
                {
                    "url": prepared.request.source_url,
                    "archive": str(out_path),
                    "counts": prepared.counters.to_dict(),
                    "skipped": prepared.skipped,
                },
                indent=2,
            )
        )
    else:
        c = prepared.counters
        print(
            "capture: "
            f"html={c.html} css={c.css} js={c.js} images={c.images} "
            f"others={c.others} total={c.total} skipped={len(prepared.skipped)}"
        )
        print(str(out_path))
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    logger.info("Server running on http://%s:%s", args.host, args.port)
    uvicorn.run(
        "site_capture.server:create_app",
        factory=True,
        host=args.host,
        port=int(args.port),
        log_level="debug" if args.verbose else "info",
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    env = ServerSettings.from_env()

    # Accepted before or after the subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS
    )

    parser = argparse.ArgumentParser(prog="site-capture", parents=[common])
    parser.set_defaults(verbose=False)
    sub = parser.add_subparsers(dest="cmd", required=True)

    capture_p = sub.add_parser(
        "capture",
        parents=[common],
        help="Capture one page and its assets into a ZIP file",
    )
    capture_p.add_argument("--url", required=True)
    capture_p.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Archive path. Defaults to ./website-source-<timestamp>.zip",
    )
    capture_p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S)
    capture_p.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Retries for 429/5xx answers (default: none)",
    )
    capture_p.add_argument(
        "--staging-dir",
        type=Path,
        default=None,
        help="Parent directory for the transient staging area",
    )
    capture_p.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON to stdout",
    )

    serve_p = sub.add_parser(
        "serve", parents=[common], help="Run the HTTP capture API"
    )
    serve_p.add_argument("--host", default=env.host)
    serve_p.add_argument("--port", type=int, default=env.port)

    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))

    if args.cmd == "capture":
        return _run_capture(args)
    if args.cmd == "serve":
        return _run_serve(args)
    return 2
