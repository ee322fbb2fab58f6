"""DHT22 temperature and humidity sensor read over a single-wire bus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

START_SIGNAL_LOW_US = 1000
START_SIGNAL_HIGH_US = 40
BIT_HIGH_THRESHOLD_US = 40
TIMEOUT_US = 1000
POWER_UP_DELAY_MS = 1000

FRAME_BITS = 40
FRAME_BYTES = 5

MIN_TEMPERATURE = -40.0
MAX_TEMPERATURE = 80.0
MIN_HUMIDITY = 0.0
MAX_HUMIDITY = 100.0

_SIGN_BIT = 0x8000


class PinBus(Protocol):
    """Access to the sensor's data pin and a microsecond timer."""

    def set_output(self) -> None: ...

    def set_input(self) -> None: ...

    def write(self, level: bool) -> None: ...

    def read(self) -> bool: ...

    def micros(self) -> int: ...

    def delay_us(self, us: int) -> None: ...

    def delay_ms(self, ms: int) -> None: ...


@dataclass(frozen=True)
class SensorReading:
    """Temperature in °C and relative humidity in %."""

    temperature: float
    humidity: float


class DHT22Error(Exception):
    """Base class for sensor read failures."""


class SensorTimeoutError(DHT22Error):
    """The data line did not change level in time."""


class ChecksumError(DHT22Error):
    """The received frame's checksum byte does not match its data."""


class OutOfRangeError(DHT22Error):
    """The decoded values lie outside the sensor's measuring range."""


class NotInitializedError(DHT22Error):
    """A read was attempted before the sensor was initialised."""


def decode_pulses(high_times: Iterable[int]) -> bytes:
    """Turn the 40 measured high-level durations (µs) into the 5 frame bytes."""
    times = list(high_times)
    if len(times) != FRAME_BITS:
        raise ValueError(f"expected {FRAME_BITS} pulses, got {len(times)}")
    frame = bytearray(FRAME_BYTES)
    for position, duration in enumerate(times):
        index = position // 8
        frame[index] = ((frame[index] << 1) & 0xFF) | (duration > BIT_HIGH_THRESHOLD_US)
    return bytes(frame)


def decode_frame(data: bytes) -> SensorReading:
    """Check and decode a 5-byte frame into a reading."""
    if len(data) != FRAME_BYTES:
        raise ValueError(f"expected {FRAME_BYTES} bytes, got {len(data)}")
    checksum = sum(data[:4]) & 0xFF
    if checksum != data[4]:
        raise ChecksumError(f"checksum {data[4]:#04x} does not match {checksum:#04x}")

    humidity = ((data[0] << 8) | data[1]) / 10.0
    raw_temperature = (data[2] << 8) | data[3]
    if raw_temperature & _SIGN_BIT:
        temperature = -(raw_temperature & ~_SIGN_BIT & 0xFFFF) / 10.0
    else:
        temperature = raw_temperature / 10.0

    if not (MIN_HUMIDITY <= humidity <= MAX_HUMIDITY) or not (
        MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE
    ):
        raise OutOfRangeError(
            f"temperature {temperature} °C or humidity {humidity} % out of range"
        )
    return SensorReading(temperature, humidity)


class DHT22Sensor:
    """Drives the DHT22 start signal and samples its 40-bit answer."""

    def __init__(self, bus: PinBus) -> None:
        self.bus = bus
        self.initialized = False

    def initialize(self) -> None:
        """Release the line high and wait for the sensor to power up."""
        self.bus.set_output()
        self.bus.write(True)
        self.bus.delay_ms(POWER_UP_DELAY_MS)
        self.initialized = True

    def _wait_while(self, level: bool, phase: str) -> int:
        """Wait for the line to leave ``level``; return the time waiting began."""
        start = self.bus.micros()
        deadline = start + TIMEOUT_US
        while self.bus.read() == level and self.bus.micros() < deadline:
            pass
        if self.bus.micros() >= deadline:
            raise SensorTimeoutError(f"timed out waiting during {phase}")
        return start

    def read(self) -> SensorReading:
        """Perform one full transaction and return the decoded reading."""
        if not self.initialized:
            raise NotInitializedError("sensor has not been initialised")
        bus = self.bus
        bus.set_output()
        bus.write(False)
        bus.delay_us(START_SIGNAL_LOW_US)
        bus.write(True)
        bus.delay_us(START_SIGNAL_HIGH_US)
        bus.set_input()

        self._wait_while(True, "response start")
        self._wait_while(False, "response low")
        self._wait_while(True, "response high")

        high_times = []
        for _ in range(FRAME_BITS):
            self._wait_while(False, "bit start")
            start = self._wait_while(True, "bit level")
            high_times.append(bus.micros() - start)

        return decode_frame(decode_pulses(high_times))