import sys

from .config import configure_logging, parse_args
from .errors import RomTooLarge


def main(argv=None):
    rom, config = parse_args(argv)
    configure_logging(config)

    # importing pyglet.window needs a display
    from .frontend import run

    try:
        run(rom, config)
    except (OSError, RomTooLarge) as e:
        print(f"chip8: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
