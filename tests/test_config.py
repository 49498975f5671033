import logging

import pytest

from chip8.config import Config, configure_logging, parse_args


def test_defaults():
    rom, config = parse_args(["pong.ch8"])
    assert rom == "pong.ch8"
    assert config == Config(scale=10, cpu_hz=500, log=False)


def test_options():
    rom, config = parse_args(["tetris.ch8", "--scale", "4", "--hz", "700", "--log"])
    assert rom == "tetris.ch8"
    assert config == Config(scale=4, cpu_hz=700, log=True)


@pytest.mark.parametrize("argv", [[], ["rom", "--scale", "0"], ["rom", "--hz", "fast"]])
def test_bad_arguments(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


@pytest.mark.parametrize("log, level", [(True, logging.DEBUG), (False, logging.WARNING)])
def test_configure_logging_sets_package_level(log, level):
    package_logger = logging.getLogger("chip8")
    saved = package_logger.level
    try:
        configure_logging(Config(log=log))
        assert package_logger.level == level
        assert logging.getLogger("chip8.processor").getEffectiveLevel() == level
    finally:
        package_logger.setLevel(saved)
