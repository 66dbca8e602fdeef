from __future__ import annotations

import argparse
import asyncio
import json
import sys

import httpx

from schoolgen.client.poller import JobFailedError, JobPoller, JobTimeoutError
from schoolgen.schema.school import GenerationRequest


def _parse_args(argv: list[str]) -> argparse.Namespace:
  """Parse CLI arguments for one end-to-end generation against a running API."""
  parser = argparse.ArgumentParser(description="Submit a location and wait for the generated school.")
  parser.add_argument("--base-url", default="http://localhost:8080")
  parser.add_argument("--lat", type=float, required=True)
  parser.add_argument("--lng", type=float, required=True)
  parser.add_argument("--address", default=None)
  parser.add_argument("--landmark", action="append", default=[], help="Repeat for several landmarks.")
  parser.add_argument("--timeout", type=float, default=300.0)
  return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
  request = GenerationRequest(lat=args.lat, lng=args.lng, address=args.address, landmarks=args.landmark)
  async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as client:
    poller = JobPoller(client, timeout=args.timeout)
    try:
      view = await poller.run(request)
    except JobFailedError as exc:
      print(f"Job {exc.job_id} failed: {exc}", file=sys.stderr)
      return 1
    except JobTimeoutError as exc:
      print(str(exc), file=sys.stderr)
      return 2
  print(json.dumps({"status": view.status.value, "data": view.data}, ensure_ascii=False, indent=2))
  return 0


def main(argv: list[str] | None = None) -> int:
  return asyncio.run(_run(_parse_args(sys.argv[1:] if argv is None else argv)))


if __name__ == "__main__":
  raise SystemExit(main())
