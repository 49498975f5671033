"""Turn the processor's framebuffer into window pixels."""

import numpy as np


def framebuffer_to_rgba(display, scale=1):
    """Return an RGBA image of ``display`` upscaled by ``scale``.

    Set pixels are white and clear pixels black, all fully opaque. Rows are
    flipped so row 0 of the result is the bottom of the screen, which is where
    pyglet puts the image origin.
    """
    display = np.asarray(display, dtype=bool)
    small = np.zeros(display.shape + (4,), dtype=np.uint8)
    small[..., 3] = 255
    small[display[::-1], :3] = 255

    if scale != 1:
        return np.repeat(np.repeat(small, scale, axis=0), scale, axis=1)
    return small
