"""Errors raised by the CHIP-8 processor.

Every failure a cycle can produce is a ``Chip8Error``. The processor never
retries or corrects a failing instruction; the host decides whether to halt,
log, or skip it.
"""


class Chip8Error(Exception):
    """Base class for processor errors."""


class UnknownOpcode(Chip8Error):
    def __init__(self, pc, opcode):
        self.pc = pc
        self.opcode = opcode
        super().__init__(f"Unknown opcode at 0x{pc:03X}: 0x{opcode:04X}")


class RomTooLarge(Chip8Error):
    def __init__(self, size, capacity):
        self.size = size
        self.capacity = capacity
        super().__init__(f"ROM is {size} bytes, only {capacity} bytes fit in memory")


class StackOverflow(Chip8Error):
    def __init__(self, pc):
        self.pc = pc
        super().__init__(f"Stack overflow on CALL at 0x{pc:03X}")


class StackUnderflow(Chip8Error):
    def __init__(self, pc):
        self.pc = pc
        super().__init__(f"Stack underflow on RET at 0x{pc:03X}")


class MemoryOutOfBounds(Chip8Error):
    """An access of ``length`` bytes starting at ``address`` runs past the end of memory."""

    def __init__(self, pc, address, length):
        self.pc = pc
        self.address = address
        self.length = length
        super().__init__(
            f"Memory access out of bounds at 0x{pc:03X}: "
            f"{length} byte(s) from 0x{address:04X}"
        )


class InvalidKey(Chip8Error):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Keypad index out of range: {key}")
