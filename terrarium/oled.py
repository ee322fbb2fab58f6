"""SSD1306 128x64 OLED driven over I2C with a local frame buffer."""

from __future__ import annotations

import struct
import time
from typing import Callable

WIDTH = 128
HEIGHT = 64
PAGES = HEIGHT // 8
I2C_ADDRESS = 0x78
COMMAND_TIMEOUT_MS = 100
DATA_TIMEOUT_MS = 1000

FONT_SIZE_8 = 8
FONT_SIZE_16 = 16

CMD_DISPLAY_OFF = 0xAE
CMD_DISPLAY_ON = 0xAF
CMD_SET_CONTRAST = 0x81
CMD_ENTIRE_DISPLAY_ON = 0xA5
CMD_NORMAL_DISPLAY = 0xA6
CMD_INVERSE_DISPLAY = 0xA7
CMD_SET_MULTIPLEX = 0xA8
CMD_SET_DISPLAY_OFFSET = 0xD3
CMD_SET_START_LINE = 0x40
CMD_CHARGE_PUMP = 0x8D
CMD_MEMORY_MODE = 0x20
CMD_SEGMENT_REMAP = 0xA1
CMD_COM_SCAN_DEC = 0xC8
CMD_SET_COM_PINS = 0xDA
CMD_SET_PRECHARGE = 0xD9
CMD_SET_VCOM_DETECT = 0xDB
CMD_SET_CLOCK_DIV = 0xD5
CMD_SET_COLUMN_ADDR = 0x21
CMD_SET_PAGE_ADDR = 0x22

_CONTROL_COMMAND = 0x00
_CONTROL_DATA = 0x40

INIT_COMMANDS = bytes([
    CMD_DISPLAY_OFF,
    CMD_SET_CLOCK_DIV, 0x80,
    CMD_SET_MULTIPLEX, 0x3F,
    CMD_SET_DISPLAY_OFFSET, 0x00,
    CMD_SET_START_LINE | 0x00,
    CMD_CHARGE_PUMP, 0x14,
    CMD_MEMORY_MODE, 0x00,
    CMD_SEGMENT_REMAP | 0x01,
    CMD_COM_SCAN_DEC,
    CMD_SET_COM_PINS, 0x12,
    CMD_SET_CONTRAST, 0xCF,
    CMD_SET_PRECHARGE, 0xF1,
    CMD_SET_VCOM_DETECT, 0x40,
    CMD_ENTIRE_DISPLAY_ON,
    CMD_NORMAL_DISPLAY,
    CMD_DISPLAY_ON,
])

# Glyphs for characters 32 (space) to 58 (':'); several are left blank.
FONT_8X8: tuple[bytes, ...] = (
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x18, 0x3C, 0x3C, 0x18, 0x18, 0x00, 0x18, 0x00]),
    bytes([0x36, 0x36, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x66, 0x66, 0x0C, 0x18, 0x33, 0x33, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x06, 0x0C, 0x18, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x0C, 0x0C, 0x06]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x7E, 0x00, 0x00, 0x00]),
    bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x0C, 0x0C, 0x00]),
    bytes([0x00, 0x03, 0x06, 0x0C, 0x18, 0x30, 0x60, 0x00]),
    bytes([0x00, 0x3E, 0x63, 0x67, 0x6B, 0x73, 0x3E, 0x00]),
    bytes([0x00, 0x0C, 0x0E, 0x0C, 0x0C, 0x0C, 0x3F, 0x00]),
    bytes([0x00, 0x1E, 0x33, 0x30, 0x1C, 0x06, 0x3F, 0x00]),
    bytes([0x00, 0x1E, 0x33, 0x30, 0x1C, 0x33, 0x1E, 0x00]),
    bytes([0x00, 0x38, 0x3C, 0x36, 0x33, 0x7F, 0x30, 0x00]),
    bytes([0x00, 0x3F, 0x03, 0x1F, 0x30, 0x33, 0x1E, 0x00]),
    bytes([0x00, 0x1C, 0x06, 0x03, 0x1F, 0x33, 0x1E, 0x00]),
    bytes([0x00, 0x3F, 0x30, 0x18, 0x0C, 0x06, 0x06, 0x00]),
    bytes([0x00, 0x1E, 0x33, 0x33, 0x1E, 0x33, 0x1E, 0x00]),
    bytes([0x00, 0x1E, 0x33, 0x3E, 0x30, 0x18, 0x0E, 0x00]),
    bytes([0x00, 0x00, 0x0C, 0x0C, 0x00, 0x0C, 0x0C, 0x00]),
)
_BLANK_GLYPH = bytes(8)

Transport = Callable[[int, bytes, int], None]


class OledError(Exception):
    """The display did not accept a command or data transfer."""


def char_index(ch: str) -> int:
    """Return the glyph index used for ``ch``; unknown characters map to 0."""
    code = ord(ch)
    if 32 <= code <= 58:
        return code - 32
    if ch in ("C", "c"):
        return 35
    return 0


def _glyph(ch: str) -> bytes:
    index = char_index(ch)
    return FONT_8X8[index] if index < len(FONT_8X8) else _BLANK_GLYPH


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def format_float(number: float, precision: int) -> str:
    """Format as integer part, a dot and the truncated fraction digits.

    Arithmetic is done in single precision; the fraction is printed without
    leading zeros, as the display firmware does.
    """
    number = _f32(number)
    int_part = int(number)
    if precision == 0:
        return str(int_part)
    fraction = _f32(number - int_part)
    fraction_digits = int(_f32(fraction * 10**precision))
    return f"{int_part}.{fraction_digits}"


class Display:
    """Frame buffer and drawing for the OLED.

    ``transport(address, payload, timeout_ms)`` sends one I2C write and
    raises :class:`OSError` when the device does not acknowledge it.
    """

    power_up_delay = 0.1

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._buffer = bytearray(WIDTH * PAGES)
        self._status_counter = 0

    @property
    def buffer(self) -> bytes:
        """The frame buffer, one byte per column per 8-row page."""
        return bytes(self._buffer)

    def _send(self, payload: bytes, timeout_ms: int) -> None:
        try:
            self._transport(I2C_ADDRESS, payload, timeout_ms)
        except OSError as exc:
            raise OledError(f"I2C transfer failed: {exc}") from exc

    def write_command(self, cmd: int) -> None:
        self._send(bytes([_CONTROL_COMMAND, cmd]), COMMAND_TIMEOUT_MS)

    def write_data(self, data: bytes) -> None:
        if not data:
            raise OledError("no data to write")
        self._send(bytes([_CONTROL_DATA]) + bytes(data), DATA_TIMEOUT_MS)

    def initialize(self) -> None:
        """Wait for power-up, send the setup sequence and clear the buffer."""
        time.sleep(self.power_up_delay)
        for cmd in INIT_COMMANDS:
            self.write_command(cmd)
        self.clear()

    def clear(self) -> None:
        self._buffer[:] = bytes(len(self._buffer))

    def refresh(self) -> None:
        """Send the whole frame buffer to the display."""
        for cmd in (CMD_SET_COLUMN_ADDR, 0, WIDTH - 1, CMD_SET_PAGE_ADDR, 0, PAGES - 1):
            self.write_command(cmd)
        self.write_data(self._buffer)

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < WIDTH and 0 <= y < HEIGHT):
            raise IndexError(f"pixel ({x}, {y}) is outside the display")

    def _light(self, x: int, y: int) -> None:
        if 0 <= x < WIDTH and 0 <= y < HEIGHT:
            self._buffer[x + (y // 8) * WIDTH] |= 1 << (y % 8)

    def set_pixel(self, x: int, y: int, color: int) -> None:
        self._check(x, y)
        index = x + (y // 8) * WIDTH
        mask = 1 << (y % 8)
        if color:
            self._buffer[index] |= mask
        else:
            self._buffer[index] &= ~mask & 0xFF

    def get_pixel(self, x: int, y: int) -> bool:
        self._check(x, y)
        return bool(self._buffer[x + (y // 8) * WIDTH] & (1 << (y % 8)))

    def draw_char(self, x: int, y: int, ch: str, font_size: int) -> None:
        """Draw a glyph, doubled in both directions for the 16-pixel font."""
        scale = 2 if font_size == FONT_SIZE_16 else 1
        for row, line in enumerate(_glyph(ch)):
            for col in range(8):
                if not line & (0x80 >> col):
                    continue
                for dx in range(scale):
                    for dy in range(scale):
                        self._light(x + col * scale + dx, y + row * scale + dy)

    def show_string(self, x: int, y: int, text: str, font_size: int) -> None:
        """Draw characters left to right while they fit on the line."""
        width = 16 if font_size == FONT_SIZE_16 else 8
        current_x = x
        for ch in text:
            if current_x + width > WIDTH:
                break
            self.draw_char(current_x, y, ch, font_size)
            current_x += width

    def show_number(
        self, x: int, y: int, number: float, precision: int, font_size: int
    ) -> None:
        self.show_string(x, y, format_float(number, precision), font_size)

    def show_temperature(self, temperature: float, target: float) -> None:
        self.show_string(0, 0, "Temp:", FONT_SIZE_16)
        self.show_number(48, 0, temperature, 1, FONT_SIZE_16)
        self.show_string(96, 0, "C", FONT_SIZE_16)
        self.show_string(0, 16, "Targ:", FONT_SIZE_16)
        self.show_number(48, 16, target, 1, FONT_SIZE_16)
        self.show_string(96, 16, "C", FONT_SIZE_16)

    def show_humidity(self, humidity: float, target: float) -> None:
        self.show_string(0, 32, "Humi:", FONT_SIZE_16)
        self.show_number(48, 32, humidity, 1, FONT_SIZE_16)
        self.show_string(96, 32, "%", FONT_SIZE_16)
        self.show_string(0, 48, "Targ:", FONT_SIZE_16)
        self.show_number(48, 48, target, 1, FONT_SIZE_16)
        self.show_string(96, 48, "%", FONT_SIZE_16)

    def show_system_status(self) -> None:
        """Draw a heartbeat indicator that alternates on every call."""
        self._status_counter += 1
        indicator = "." if self._status_counter % 2 else "*"
        self.show_string(120, 0, indicator, FONT_SIZE_8)