# CHIP8 Virtual Machine:
# Input - 16 key states written by the host and checked per cycle.
# Output - 64x32 display (every pixel is either on or off) plus a dirty flag telling the host to redraw.
# CPU - Cowgod's CHIP8 Technical reference http://devernay.free.fr/hacks/chip8/C8TECH10.HTM#0.0
# Memory - 4096 bytes which hold the font glyphs and the loaded ROM.
#----------------------------------------------------------------------------------------------
# Registers are 16 bytes, two timers count down once per executed cycle, and the
# stack holds 16 return addresses. Nothing in here knows about windows or sound;
# the host drives run_cycle() and reads the display back.

import logging
from collections import namedtuple

import numpy as np

from .constants import (
    FONT_START,
    GLYPH_SIZE,
    KEY_COUNT,
    MAX_ROM_SIZE,
    MEMORY_SIZE,
    PROGRAM_START,
    REGISTER_COUNT,
    STACK_SIZE,
    fontset,
    height,
    width,
)
from .errors import (
    Chip8Error,
    InvalidKey,
    MemoryOutOfBounds,
    RomTooLarge,
    StackOverflow,
    StackUnderflow,
    UnknownOpcode,
)
from .rng import RandomSource

logger = logging.getLogger(__name__)

Fields = namedtuple("Fields", "opcode x y n kk nnn")


def decode(opcode):
    """Split a 16-bit opcode into its operand fields."""
    fields = Fields(
        opcode=opcode,
        x=(opcode & 0x0F00) >> 8,
        y=(opcode & 0x00F0) >> 4,
        n=opcode & 0x000F,
        kk=opcode & 0x00FF,
        nnn=opcode & 0x0FFF,
    )
    assert 0 <= fields.x < REGISTER_COUNT and 0 <= fields.y < REGISTER_COUNT
    return fields


class Processor:

    def __init__(self, rng=None):
        # ---- CPU state ----
        self.memory = bytearray(MEMORY_SIZE)
        self.registers = bytearray(REGISTER_COUNT)  # V0..VF, VF doubles as the flag register
        self.index = 0                              # I register (memory pointer)
        self.pc = PROGRAM_START                     # program counter starts at 0x200

        self.stack = np.zeros(STACK_SIZE, dtype=np.uint16)
        self.stack_pointer = 0

        self.delay_timer = 0
        self.sound_timer = 0

        self.keypad = np.zeros(KEY_COUNT, dtype=bool)
        self.display = np.zeros((height, width), dtype=bool)
        self.draw = True

        # register a pending Fx0A stores into, None while running normally
        self.waiting_for_key = None

        self.rng = rng if rng is not None else RandomSource()

        # Load fontset into memory
        self.memory[FONT_START:FONT_START + len(fontset)] = fontset

        # dispatch table, most specific masks first
        self.opcodes = [
            (0xF0FF, 0x00E0, self.op_CLS),
            (0xF0FF, 0x00EE, self.op_RET),
            (0xF000, 0x0000, self.op_SYS),

            (0xF000, 0x1000, self.op_JP),
            (0xF000, 0x2000, self.op_CALL),
            (0xF000, 0x3000, self.op_SE_Vx_kk),
            (0xF000, 0x4000, self.op_SNE_Vx_kk),
            (0xF000, 0x5000, self.op_SE_Vx_Vy),
            (0xF000, 0x6000, self.op_LD_Vx_kk),
            (0xF000, 0x7000, self.op_ADD_Vx_kk),

            (0xF00F, 0x8000, self.op_LD_Vx_Vy),
            (0xF00F, 0x8001, self.op_OR),
            (0xF00F, 0x8002, self.op_AND),
            (0xF00F, 0x8003, self.op_XOR),
            (0xF00F, 0x8004, self.op_ADD),
            (0xF00F, 0x8005, self.op_SUB),
            (0xF00F, 0x8006, self.op_SHR),
            (0xF00F, 0x8007, self.op_SUBN),
            (0xF00F, 0x800E, self.op_SHL),

            (0xF000, 0x9000, self.op_SNE_Vx_Vy),
            (0xF000, 0xA000, self.op_LD_I),
            (0xF000, 0xB000, self.op_JP_V0),
            (0xF000, 0xC000, self.op_RND),
            (0xF000, 0xD000, self.op_DRW),

            (0xF0FF, 0xE09E, self.op_SKP),
            (0xF0FF, 0xE0A1, self.op_SKNP),

            (0xF0FF, 0xF007, self.op_LD_Vx_DT),
            (0xF0FF, 0xF00A, self.op_WAITKEY),
            (0xF0FF, 0xF015, self.op_LD_DT_Vx),
            (0xF0FF, 0xF018, self.op_LD_ST_Vx),
            (0xF0FF, 0xF01E, self.op_ADD_I_Vx),
            (0xF0FF, 0xF029, self.op_FONT),
            (0xF0FF, 0xF033, self.op_BCD),
            (0xF0FF, 0xF055, self.op_STORE),
            (0xF0FF, 0xF065, self.op_LOAD),
        ]

        self._instruction_pc = self.pc

    @classmethod
    def from_rom(cls, data, rng=None):
        processor = cls(rng=rng)
        processor.load_rom(data)
        return processor

    # ---- Host interface ----
    def load_rom(self, data):
        """Copy ``data`` into memory at 0x200.

        Raises ``RomTooLarge`` when it would not fit below the end of memory.
        """
        data = bytes(data)
        if len(data) > MAX_ROM_SIZE:
            raise RomTooLarge(len(data), MAX_ROM_SIZE)
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = data
        logger.info("Loaded ROM: %d bytes at 0x%03X", len(data), PROGRAM_START)

    def set_key(self, key, pressed):
        if not 0 <= key < KEY_COUNT:
            raise InvalidKey(key)
        self.keypad[key] = bool(pressed)

    def register(self, i):
        assert 0 <= i < REGISTER_COUNT, i
        return self.registers[i]

    def set_register(self, i, value):
        assert 0 <= i < REGISTER_COUNT, i
        self.registers[i] = value & 0xFF

    def opcode(self):
        """The opcode word at the current program counter."""
        return self._fetch(self.pc)

    def debug_state(self):
        return self.pc, self.opcode()

    # ---- Cycle ----
    def run_cycle(self):
        """Execute one fetch-decode-execute cycle.

        Raises a ``Chip8Error`` if the instruction cannot run. The program
        counter is then left on the faulting instruction and the timers are
        not decremented.
        """
        if self.waiting_for_key is not None:
            self._resume_key_wait()
            self._tick_timers()
            return

        start = self.pc
        opcode = self._fetch(start)
        self.pc = (start + 2) & 0xFFFF

        handler = self._lookup(opcode)
        if handler is None:
            self.pc = start
            raise UnknownOpcode(start, opcode)

        self._instruction_pc = start
        try:
            handler(decode(opcode))
        except Chip8Error:
            self.pc = start
            raise

        self._tick_timers()

    def _lookup(self, opcode):
        for mask, pattern, handler in self.opcodes:
            if (opcode & mask) == pattern:
                return handler
        return None

    def _fetch(self, address):
        self._check_range(address, 2, pc=address)
        return (self.memory[address] << 8) | self.memory[address + 1]

    def _check_range(self, address, length, pc=None):
        if address < 0 or address + length > MEMORY_SIZE:
            raise MemoryOutOfBounds(self._instruction_pc if pc is None else pc, address, length)

    def _tick_timers(self):
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def _skip(self):
        self.pc = (self.pc + 2) & 0xFFFF

    def _first_pressed(self):
        pressed = np.flatnonzero(self.keypad)
        return int(pressed[0]) if len(pressed) else None

    def _resume_key_wait(self):
        key = self._first_pressed()
        if key is None:
            return
        x = self.waiting_for_key
        self.registers[x] = key
        self.waiting_for_key = None
        self._skip()
        logger.debug("Key %X pressed, V%X = %d", key, x, key)

    # ---- Opcode handlers ----

    # 00E0 - CLS
    def op_CLS(self, op):
        self.display[:] = False
        self.draw = True
        logger.debug("Clear the display")

    # 00EE - RET
    def op_RET(self, op):
        if self.stack_pointer == 0:
            raise StackUnderflow(self._instruction_pc)
        self.stack_pointer -= 1
        self.pc = int(self.stack[self.stack_pointer])
        logger.debug("Return to 0x%03X", self.pc)

    # 0nnn - SYS addr, ignored on modern interpreters
    def op_SYS(self, op):
        logger.debug("SYS call ignored (0x%03X)", op.nnn)

    # 1nnn - JP addr
    def op_JP(self, op):
        self.pc = op.nnn
        logger.debug("Jump to 0x%03X", op.nnn)

    # 2nnn - CALL addr
    def op_CALL(self, op):
        if self.stack_pointer >= STACK_SIZE:
            raise StackOverflow(self._instruction_pc)
        self.stack[self.stack_pointer] = self.pc
        self.stack_pointer += 1
        self.pc = op.nnn
        logger.debug("Call subroutine at 0x%03X", op.nnn)

    # 3xkk - SE Vx, byte
    def op_SE_Vx_kk(self, op):
        if self.registers[op.x] == op.kk:
            self._skip()
            logger.debug("Skip next instruction: V%X == %d", op.x, op.kk)

    # 4xkk - SNE Vx, byte
    def op_SNE_Vx_kk(self, op):
        if self.registers[op.x] != op.kk:
            self._skip()
            logger.debug("Skip next instruction: V%X != %d", op.x, op.kk)

    # 5xy0 - SE Vx, Vy
    def op_SE_Vx_Vy(self, op):
        if self.registers[op.x] == self.registers[op.y]:
            self._skip()
            logger.debug("Skip next instruction: V%X == V%X", op.x, op.y)

    # 6xkk - LD Vx, byte
    def op_LD_Vx_kk(self, op):
        self.registers[op.x] = op.kk
        logger.debug("Set V%X = %d", op.x, op.kk)

    # 7xkk - ADD Vx, byte (VF untouched)
    def op_ADD_Vx_kk(self, op):
        self.registers[op.x] = (self.registers[op.x] + op.kk) & 0xFF
        logger.debug("Add %d to V%X: %d", op.kk, op.x, self.registers[op.x])

    # 8xy0 - LD Vx, Vy
    def op_LD_Vx_Vy(self, op):
        self.registers[op.x] = self.registers[op.y]
        logger.debug("Copy V%X into V%X", op.y, op.x)

    # 8xy1 - OR Vx, Vy
    def op_OR(self, op):
        self.registers[op.x] |= self.registers[op.y]
        logger.debug("V%X = V%X OR V%X -> %d", op.x, op.x, op.y, self.registers[op.x])

    # 8xy2 - AND Vx, Vy
    def op_AND(self, op):
        self.registers[op.x] &= self.registers[op.y]
        logger.debug("V%X = V%X AND V%X -> %d", op.x, op.x, op.y, self.registers[op.x])

    # 8xy3 - XOR Vx, Vy
    def op_XOR(self, op):
        self.registers[op.x] ^= self.registers[op.y]
        logger.debug("V%X = V%X XOR V%X -> %d", op.x, op.x, op.y, self.registers[op.x])

    # 8xy4 - ADD Vx, Vy, VF = carry
    def op_ADD(self, op):
        total = self.registers[op.x] + self.registers[op.y]
        self.registers[0xF] = 1 if total > 0xFF else 0
        self.registers[op.x] = total & 0xFF
        logger.debug("Add V%X to V%X: %d, carry=%d", op.y, op.x, total & 0xFF, self.registers[0xF])

    # 8xy5 - SUB Vx, Vy, VF = NOT borrow
    def op_SUB(self, op):
        vx, vy = self.registers[op.x], self.registers[op.y]
        self.registers[0xF] = 0 if vy > vx else 1
        self.registers[op.x] = (vx - vy) & 0xFF
        logger.debug("Subtract V%X from V%X: %d, NOT borrow=%d", op.y, op.x, (vx - vy) & 0xFF, self.registers[0xF])

    # 8xy6 - SHR Vx, VF = bit shifted out
    def op_SHR(self, op):
        vx = self.registers[op.x]
        self.registers[0xF] = vx & 1
        self.registers[op.x] = vx >> 1
        logger.debug("Shift V%X right: %d, lsb=%d", op.x, vx >> 1, vx & 1)

    # 8xy7 - SUBN Vx, Vy, VF = NOT borrow
    def op_SUBN(self, op):
        vx, vy = self.registers[op.x], self.registers[op.y]
        self.registers[0xF] = 0 if vx > vy else 1
        self.registers[op.x] = (vy - vx) & 0xFF
        logger.debug("Set V%X = V%X - V%X: %d, NOT borrow=%d", op.x, op.y, op.x, (vy - vx) & 0xFF, self.registers[0xF])

    # 8xyE - SHL Vx, VF = bit shifted out
    def op_SHL(self, op):
        vx = self.registers[op.x]
        self.registers[0xF] = (vx >> 7) & 1
        self.registers[op.x] = (vx << 1) & 0xFF
        logger.debug("Shift V%X left: %d, msb=%d", op.x, (vx << 1) & 0xFF, (vx >> 7) & 1)

    # 9xy0 - SNE Vx, Vy
    def op_SNE_Vx_Vy(self, op):
        if self.registers[op.x] != self.registers[op.y]:
            self._skip()
            logger.debug("Skip next instruction: V%X != V%X", op.x, op.y)

    # Annn - LD I, addr
    def op_LD_I(self, op):
        self.index = op.nnn
        logger.debug("Set I = 0x%03X", op.nnn)

    # Bnnn - JP V0, addr
    def op_JP_V0(self, op):
        self.pc = op.nnn + self.registers[0]
        logger.debug("Jump to V0 + 0x%03X = 0x%03X", op.nnn, self.pc)

    # Cxkk - RND Vx, byte
    def op_RND(self, op):
        self.registers[op.x] = self.rng.next_byte() & op.kk
        logger.debug("Set V%X = random byte & %d -> %d", op.x, op.kk, self.registers[op.x])

    # Dxyn - DRW Vx, Vy, nibble
    def op_DRW(self, op):
        self._check_range(self.index, op.n)
        px = self.registers[op.x]
        py = self.registers[op.y]
        self.draw = True
        self.registers[0xF] = 0
        for row in range(op.n):
            sprite = self.memory[self.index + row]
            for bit in range(8):
                if sprite & (0x80 >> bit):
                    vx = (px + bit) % width
                    vy = (py + row) % height
                    if self.display[vy, vx]:
                        self.registers[0xF] = 1
                    self.display[vy, vx] ^= True
        logger.debug("Drew %d-row sprite at (%d, %d), collision=%d", op.n, px, py, self.registers[0xF])

    # Ex9E - SKP Vx
    def op_SKP(self, op):
        key = self.registers[op.x]
        if key < KEY_COUNT and self.keypad[key]:
            self._skip()
            logger.debug("Skip next instruction: key %X pressed", key)

    # ExA1 - SKNP Vx
    def op_SKNP(self, op):
        key = self.registers[op.x]
        if key >= KEY_COUNT or not self.keypad[key]:
            self._skip()
            logger.debug("Skip next instruction: key %X not pressed", key)

    # Fx07 - LD Vx, DT
    def op_LD_Vx_DT(self, op):
        self.registers[op.x] = self.delay_timer
        logger.debug("Set V%X = delay timer %d", op.x, self.delay_timer)

    # Fx0A - LD Vx, K
    def op_WAITKEY(self, op):
        key = self._first_pressed()
        if key is None:
            # park on this instruction until run_cycle sees a key
            self.waiting_for_key = op.x
            self.pc = self._instruction_pc
            logger.debug("Waiting for key into V%X", op.x)
        else:
            self.registers[op.x] = key
            logger.debug("Key %X pressed, V%X = %d", key, op.x, key)

    # Fx15 - LD DT, Vx
    def op_LD_DT_Vx(self, op):
        self.delay_timer = self.registers[op.x]
        logger.debug("Set delay timer = %d", self.delay_timer)

    # Fx18 - LD ST, Vx
    def op_LD_ST_Vx(self, op):
        self.sound_timer = self.registers[op.x]
        logger.debug("Set sound timer = %d", self.sound_timer)

    # Fx1E - ADD I, Vx
    def op_ADD_I_Vx(self, op):
        self.index = (self.index + self.registers[op.x]) & 0xFFFF
        logger.debug("Set I = I + V%X = 0x%03X", op.x, self.index)

    # Fx29 - LD F, Vx
    def op_FONT(self, op):
        self.index = FONT_START + GLYPH_SIZE * self.registers[op.x]
        logger.debug("Set I = glyph for %X at 0x%03X", self.registers[op.x], self.index)

    # Fx33 - LD B, Vx
    def op_BCD(self, op):
        self._check_range(self.index, 3)
        v = self.registers[op.x]
        self.memory[self.index] = v // 100
        self.memory[self.index + 1] = (v // 10) % 10
        self.memory[self.index + 2] = v % 10
        logger.debug("Store BCD of %d at 0x%03X", v, self.index)

    # Fx55 - LD [I], Vx
    def op_STORE(self, op):
        self._check_range(self.index, op.x + 1)
        self.memory[self.index:self.index + op.x + 1] = self.registers[:op.x + 1]
        logger.debug("Store V0..V%X at 0x%03X", op.x, self.index)

    # Fx65 - LD Vx, [I]
    def op_LOAD(self, op):
        self._check_range(self.index, op.x + 1)
        self.registers[:op.x + 1] = self.memory[self.index:self.index + op.x + 1]
        logger.debug("Load V0..V%X from 0x%03X", op.x, self.index)
