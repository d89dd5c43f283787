"""Drive one idea through the generation API from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

import httpx

# Ensure repo root is on sys.path so local imports work when invoked directly.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ideaforge.config import get_settings  # noqa: E402
from ideaforge.generation.poller import ClientPoller  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Create a session, generate its modules and print the result.")
  parser.add_argument("idea", help="Product idea text.")
  parser.add_argument("--domain", default=None, help="Industry domain hint (default: General).")
  parser.add_argument("--tone", default=None, help="Brand tone (default: Professional).")
  parser.add_argument("--base-url", default="http://localhost:8000", help="Service base URL.")
  parser.add_argument("--owner", default=None, help="Owner id sent as X-Owner-Id.")
  parser.add_argument("--interval", type=float, default=get_settings().poll_interval_seconds, help="Poll interval in seconds (default: IDEAFORGE_POLL_INTERVAL_SECONDS).")
  parser.add_argument("--deadline", type=float, default=None, help="Cancel after this many seconds.")
  parser.add_argument("--json", action="store_true", help="Print the final session snapshot as JSON.")
  return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
  async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as client:
    poller = ClientPoller(client, poll_interval_seconds=args.interval, owner_id=args.owner)
    loop = asyncio.get_running_loop()
    # Ctrl+C harvests whatever finished instead of aborting.
    loop.add_signal_handler(signal.SIGINT, poller.cancel)

    session_id = await poller.create_session(args.idea, args.domain, args.tone)
    print(f"Session {session_id} created; generating...")
    result = await poller.run(session_id, deadline_seconds=args.deadline)

  if args.json:
    print(json.dumps(result.session, indent=2))
  else:
    print(f"Status: {result.status}{' (cancelled)' if result.cancelled else ''}")
    for module in result.session.get("modules", []):
      suffix = f" - {module['error']}" if module.get("error") else ""
      print(f"  {module['module_id']:<16} {module['state']}{suffix}")
    if result.missing_modules:
      print(f"Missing: {', '.join(result.missing_modules)}")
  return 0 if result.status in {"completed", "partial"} else 1


def main(argv: list[str] | None = None) -> int:
  return asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
  raise SystemExit(main())
