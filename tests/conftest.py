"""Shared pytest fixtures for processor tests."""

import pytest

from chip8 import Processor, ReplaySource


@pytest.fixture
def cpu():
    return Processor(rng=ReplaySource([0xAB]))


def load_words(processor, words):
    """Load a list of 16-bit opcode words as a big-endian ROM."""
    data = bytearray()
    for word in words:
        data += bytes([(word >> 8) & 0xFF, word & 0xFF])
    processor.load_rom(data)
    return processor


def run(processor, cycles=1):
    for _ in range(cycles):
        processor.run_cycle()
    return processor
