# pyglet host for the processor: keyboard in, pixels out.
# The window owns the cycle schedule; the processor itself has no notion of time.

import logging

import pyglet
from pyglet.window import key

from .constants import height, width
from .errors import Chip8Error
from .processor import Processor
from .render import framebuffer_to_rgba

logger = logging.getLogger(__name__)

#map binding keys
keymap = {
    key._1: 0x1, key._2: 0x2, key._3: 0x3, key._4: 0xC,
    key.Q: 0x4, key.W: 0x5, key.E: 0x6, key.R: 0xD,
    key.A: 0x7, key.S: 0x8, key.D: 0x9, key.F: 0xE,
    key.Z: 0xA, key.X: 0x0, key.C: 0xB, key.V: 0xF,
}


class Chip8Window(pyglet.window.Window):

    def __init__(self, processor, config):
        self.scale = config.scale
        super().__init__(
            width=width * self.scale,
            height=height * self.scale,
            caption="CHIP-8",
            resizable=False,
        )
        self.processor = processor
        self.has_exit = False

        self.image = pyglet.image.ImageData(
            width * self.scale,
            height * self.scale,
            'RGBA',
            framebuffer_to_rgba(processor.display, self.scale).tobytes(),
        )

        pyglet.clock.schedule_interval(self.tick, 1 / config.cpu_hz)

    # ---- CPU cycle ----
    def tick(self, dt):
        if self.has_exit:
            return
        try:
            self.processor.run_cycle()
        except Chip8Error as e:
            logger.error("Emulation error: %s", e)
            self.has_exit = True
            pyglet.clock.unschedule(self.tick)
            self.close()

    # ---- Drawing ----
    def on_draw(self):
        if self.processor.draw:
            pixels = framebuffer_to_rgba(self.processor.display, self.scale)
            self.image.set_data('RGBA', width * self.scale * 4, pixels.tobytes())
            self.processor.draw = False
        self.clear()
        self.image.blit(0, 0)

    # ---- Input ----
    def on_key_press(self, symbol, modifiers):
        if symbol == key.ESCAPE:
            self.close()
        elif symbol == key.SLASH and modifiers & key.MOD_SHIFT:
            log_debug_state(self.processor)
        elif symbol == key.F1:
            toggle_logging()
        elif symbol in keymap:
            self.processor.set_key(keymap[symbol], True)

    def on_key_release(self, symbol, modifiers):
        if symbol in keymap:
            self.processor.set_key(keymap[symbol], False)

    def on_close(self):
        pyglet.clock.unschedule(self.tick)
        super().on_close()


def log_debug_state(processor):
    try:
        pc, opcode = processor.debug_state()
    except Chip8Error as e:
        logger.error("Debug state unavailable: %s", e)
        return
    logger.warning("index = 0x%X, opcode = 0x%04X", pc, opcode)


def toggle_logging():
    root = logging.getLogger("chip8")
    root.setLevel(logging.WARNING if root.getEffectiveLevel() <= logging.DEBUG else logging.DEBUG)
    logger.warning("instruction logging %s", "on" if root.level == logging.DEBUG else "off")


def run(rom_path, config):
    logger.info("Loading ROM: %s", rom_path)
    with open(rom_path, "rb") as f:
        processor = Processor.from_rom(f.read())
    Chip8Window(processor, config)
    pyglet.app.run()
