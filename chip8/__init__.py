"""CHIP-8 virtual machine."""

from .constants import height, width
from .errors import (
    Chip8Error,
    InvalidKey,
    MemoryOutOfBounds,
    RomTooLarge,
    StackOverflow,
    StackUnderflow,
    UnknownOpcode,
)
from .processor import Processor, decode
from .rng import RandomSource, ReplaySource

__all__ = [
    "Chip8Error",
    "InvalidKey",
    "MemoryOutOfBounds",
    "Processor",
    "RandomSource",
    "ReplaySource",
    "RomTooLarge",
    "StackOverflow",
    "StackUnderflow",
    "UnknownOpcode",
    "decode",
    "height",
    "width",
]
