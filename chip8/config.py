"""Runtime configuration for the pyglet host."""

import argparse
import logging
import sys
from dataclasses import dataclass

#  defaults
scale = 10
cpu_hz = 500


@dataclass
class Config:
    scale: int = scale
    cpu_hz: int = cpu_hz
    log: bool = False


def _positive_int(value):
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def parse_args(argv=None):
    """Parse the command line into ``(rom_path, Config)``."""
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 emulator")
    parser.add_argument("rom", help="path to a CHIP-8 ROM image")
    parser.add_argument("--scale", type=_positive_int, default=scale,
                        help="window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--hz", dest="cpu_hz", type=_positive_int, default=cpu_hz,
                        help="cycles executed per second (default: %(default)s)")
    parser.add_argument("--log", action="store_true", help="log every executed instruction")
    args = parser.parse_args(argv)
    return args.rom, Config(scale=args.scale, cpu_hz=args.cpu_hz, log=args.log)


def configure_logging(config):
    """Install the console handler and set the ``chip8`` level from ``config.log``."""
    logging.basicConfig(format="[%(levelname)s] %(name)s: %(message)s", stream=sys.stdout)
    logging.getLogger("chip8").setLevel(logging.DEBUG if config.log else logging.WARNING)
