# Copyright (C) 2021 The VoidMail Contributors
#
# This file is part of VoidMail.
#
# VoidMail is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# VoidMail is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with VoidMail.  If not, see <http://www.gnu.org/licenses/>.
"""Run a VoidMail server.

The tables are loaded from the data directory before the server starts,
and saved back after it stops (on SIGINT or SIGTERM).
"""
import asyncio
import logging
import signal
from argparse import ArgumentParser, Namespace

from . import VoidMail
from .errors import VoidMailError

logger = logging.getLogger("voidmail")


def parse_args() -> Namespace:
    parser = ArgumentParser(prog="voidmail", description="toy email service")
    parser.add_argument("--host", default="127.0.0.1", help="address to bind")
    parser.add_argument("--port", type=int, default=12345, help="port to bind")
    parser.add_argument(
        "--data-dir", default="data", metavar="DIR", help="directory of snapshot files"
    )
    parser.add_argument("--certfile", help="TLS certificate chain (PEM)")
    parser.add_argument("--keyfile", help="TLS private key (PEM)")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser.parse_args()


async def run(args: Namespace) -> None:
    instance = VoidMail(
        hostname=args.host,
        port=args.port,
        data_dir=args.data_dir,
        certfile=args.certfile,
        keyfile=args.keyfile,
        debug=args.debug,
    )
    await instance.load()
    await instance.start()
    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopping.set)
    try:
        await stopping.wait()
    finally:
        instance.stop()
        await instance.save()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args))
    except VoidMailError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
