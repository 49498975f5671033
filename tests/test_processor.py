"""Processor lifecycle, ROM loading and accessors."""

import numpy as np
import pytest

from chip8 import Processor, ReplaySource, decode
from chip8.constants import MAX_ROM_SIZE, PROGRAM_START, fontset
from chip8.errors import InvalidKey, RomTooLarge

from conftest import load_words, run


def test_initial_state():
    cpu = Processor()
    assert cpu.pc == 0x200
    assert cpu.index == 0
    assert cpu.stack_pointer == 0
    assert cpu.delay_timer == 0 and cpu.sound_timer == 0
    assert bytes(cpu.registers) == bytes(16)
    assert cpu.display.shape == (32, 64)
    assert not cpu.display.any()
    assert not cpu.keypad.any()
    assert cpu.draw is True
    assert cpu.waiting_for_key is None


def test_font_preloaded_and_rest_zeroed():
    cpu = Processor()
    assert len(fontset) == 80
    assert bytes(cpu.memory[:80]) == fontset
    assert not any(cpu.memory[80:])


def test_load_rom_copies_at_program_start(cpu):
    cpu.load_rom(b"\x12\x34\x56")
    assert cpu.memory[PROGRAM_START:PROGRAM_START + 3] == b"\x12\x34\x56"
    assert cpu.memory[PROGRAM_START + 3] == 0


def test_load_rom_accepts_list_of_ints(cpu):
    cpu.load_rom([0x60, 0x05])
    assert cpu.opcode() == 0x6005


def test_load_rom_fills_memory_exactly(cpu):
    cpu.load_rom(bytes([0xAA]) * MAX_ROM_SIZE)
    assert cpu.memory[4095] == 0xAA
    assert len(cpu.memory) == 4096


def test_load_rom_too_large(cpu):
    with pytest.raises(RomTooLarge) as excinfo:
        cpu.load_rom(bytes(MAX_ROM_SIZE + 1))
    assert excinfo.value.size == 3585
    assert excinfo.value.capacity == 3584
    assert not any(cpu.memory[PROGRAM_START:])


def test_from_rom():
    cpu = Processor.from_rom(b"\x00\xE0", rng=ReplaySource([1]))
    assert cpu.opcode() == 0x00E0


def test_set_key(cpu):
    cpu.set_key(0xA, True)
    assert cpu.keypad[0xA]
    cpu.set_key(0xA, False)
    assert not cpu.keypad.any()


@pytest.mark.parametrize("key", [-1, 16, 100])
def test_set_key_out_of_range(cpu, key):
    with pytest.raises(InvalidKey):
        cpu.set_key(key, True)


def test_register_accessors(cpu):
    cpu.set_register(3, 0x1FF)
    assert cpu.register(3) == 0xFF
    with pytest.raises(AssertionError):
        cpu.register(16)


@pytest.mark.parametrize("opcode, fields", [
    (0x0000, (0x0, 0x0, 0x0, 0x00, 0x000)),
    (0xFFFF, (0xF, 0xF, 0xF, 0xFF, 0xFFF)),
    (0xD12F, (0x1, 0x2, 0xF, 0x2F, 0x12F)),
    (0x8AB4, (0xA, 0xB, 0x4, 0xB4, 0xAB4)),
    (0x3C7E, (0xC, 0x7, 0xE, 0x7E, 0xC7E)),
])
def test_decode_fields(opcode, fields):
    op = decode(opcode)
    assert (op.x, op.y, op.n, op.kk, op.nnn) == fields
    assert op.opcode == opcode


def test_decode_matches_bit_slices():
    for opcode in range(0, 0x10000, 0x0101):
        op = decode(opcode)
        assert op.x == (opcode >> 8) & 0xF
        assert op.y == (opcode >> 4) & 0xF
        assert op.n == opcode & 0xF
        assert op.kk == opcode & 0xFF
        assert op.nnn == opcode & 0xFFF


def test_debug_state(cpu):
    load_words(cpu, [0x6005, 0x1234])
    assert cpu.debug_state() == (0x200, 0x6005)
    run(cpu)
    assert cpu.debug_state() == (0x202, 0x1234)


def test_add_program_end_to_end(cpu):
    cpu.load_rom([0x60, 0x05, 0x61, 0x03, 0x80, 0x14])
    run(cpu, 3)
    assert cpu.registers[0] == 8
    assert cpu.registers[0xF] == 0
    assert cpu.pc == 0x206


def test_timers_decrement_once_per_cycle(cpu):
    load_words(cpu, [0x6003, 0xF015, 0xF018, 0x0000, 0x0000, 0x0000, 0x0000])
    run(cpu, 3)
    # set during cycles 2 and 3, each followed by its own decrement
    assert cpu.delay_timer == 1
    assert cpu.sound_timer == 2
    run(cpu, 3)
    assert cpu.delay_timer == 0
    assert cpu.sound_timer == 0


def test_run_is_deterministic():
    words = [0x6A02, 0x6B0C, 0xA000, 0xDAB5, 0x7A01, 0x8AB4, 0xF033]

    def state():
        cpu = load_words(Processor(rng=ReplaySource([7])), words)
        run(cpu, len(words))
        return bytes(cpu.memory), bytes(cpu.registers), cpu.display.copy(), cpu.index

    first, second = state(), state()
    assert first[0] == second[0]
    assert first[1] == second[1]
    assert np.array_equal(first[2], second[2])
    assert first[3] == second[3]
