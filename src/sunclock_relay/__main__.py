"""
Sunclock relay — Entry point

Commands:
  sunclock-relay [run]                → host bridge: events on stdin, actions on stdout
  sunclock-relay run --wire           → same, with packed app messages in hex
  sunclock-relay locate               → one guarded location query, print the device reply
  sunclock-relay flares               → fetch and list upcoming Iridium flares
  sunclock-relay geocode LAT LON      → reverse geocode one coordinate pair
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sunclock_relay.config import config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sunclock-relay", description="Location relay for the Twilight Sunclock watchface"
    )
    parser.add_argument("--variant", choices=["full", "reduced"], help="Override SUNCLOCK_VARIANT")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.set_defaults(func=_run, wire=False)

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    pr = sub.add_parser("run", help="Host bridge: JSON lines on stdin and stdout (default)")
    pr.add_argument("--wire", action="store_true", help="Include packed app messages (hex)")
    pr.set_defaults(func=_run)

    pl = sub.add_parser("locate", help="Run one location query and print the watch reply")
    pl.set_defaults(func=_locate)

    pf = sub.add_parser("flares", help="List upcoming Iridium flares")
    pf.set_defaults(func=_flares)

    pg = sub.add_parser("geocode", help="Reverse geocode a coordinate pair")
    pg.add_argument("lat", type=float, metavar="LAT")
    pg.add_argument("lon", type=float, metavar="LON")
    pg.set_defaults(func=_geocode)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # actions go to stdout, logs to stderr
    logging.basicConfig(
        format="%(asctime)s [sunclock] %(levelname)s — %(message)s",
        level=logging.DEBUG if args.verbose else getattr(logging, config.log_level.upper(), logging.INFO),
        stream=sys.stderr,
    )

    if args.variant:
        config.variant = args.variant

    asyncio.run(args.func(args))


async def _run(args: argparse.Namespace) -> None:
    from sunclock_relay.app import build_router, run_bridge
    from sunclock_relay.host import JsonLinesHost

    router = build_router(JsonLinesHost(wire=args.wire), config)
    await run_bridge(router)


async def _locate(args: argparse.Namespace) -> None:
    from sunclock_relay.app import build_router
    from sunclock_relay.host import JsonLinesHost

    router = build_router(JsonLinesHost(), config)
    await router.on_app_message({"getLatLong": 1})


async def _flares(args: argparse.Namespace) -> None:
    from sunclock_relay.app import build_flare_lookup
    from sunclock_relay.core.flares import format_flare

    flares = await build_flare_lookup(config).fetch()
    if not flares:
        print("No flares found.")
        return
    for f in flares:
        print(f"{f.timestamp:%Y-%m-%d %H:%M:%S}Z  mag {f.brightness:+.1f}  az {f.azimuth}°  [{format_flare(f)}]")


async def _geocode(args: argparse.Namespace) -> None:
    from sunclock_relay.app import build_geocoder
    from sunclock_relay.core.bundle import CoordinateBundle

    bundle = await build_geocoder(config).resolve_place(CoordinateBundle(args.lat, args.lon))
    parts = [p for p in [bundle.place_name, bundle.region, bundle.country] if p]
    print(", ".join(parts))
    if bundle.distance_km:
        print(f"  {bundle.distance_km} km away")


if __name__ == "__main__":
    main()
