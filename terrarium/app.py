"""The terrarium controller: sensor, display and control tasks on a shared tick."""

from __future__ import annotations

import argparse
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, Protocol, Sequence

from terrarium.control import TemperatureController
from terrarium.dht22 import DHT22Error, DHT22Sensor, SensorReading
from terrarium.models import ControlConfig, SensorData
from terrarium.oled import FONT_SIZE_16, Display, OledError
from terrarium.relay import RelayController, RelayType

SENSOR_PERIOD_MS = 2000
DISPLAY_PERIOD_MS = 500
CONTROL_PERIOD_MS = 1000
MUTEX_TIMEOUT_S = 0.1

Log = Callable[[str], None]


class _Sensor(Protocol):
    def read(self) -> SensorReading: ...


def snake_config() -> ControlConfig:
    """Targets for a hognose snake: 30 °C, 40 % humidity."""
    return ControlConfig(30.0, 40.0, 2.0, 8.0)


class ReptileSystem:
    """Runs the three periodic tasks against simulated millisecond time.

    ``now_ms`` is the current tick; clocks handed to the relays and the
    controller are expected to read it.
    """

    def __init__(
        self,
        sensor: _Sensor,
        display: Display,
        relays: RelayController,
        controller: TemperatureController,
        config: ControlConfig,
        log: Log,
    ) -> None:
        self.sensor = sensor
        self.display = display
        self.relays = relays
        self.controller = controller
        self.config = config
        self.log = log
        self.sensor_data = SensorData()
        self.now_ms = 0
        self._lock = threading.Lock()
        self._started = False
        # Highest priority first: control, sensor, display.
        self._tasks = (
            ("control", self.control_step, CONTROL_PERIOD_MS),
            ("sensor", self.sensor_step, SENSOR_PERIOD_MS),
            ("display", self.display_step, DISPLAY_PERIOD_MS),
        )
        self._next_wake: dict[str, int] = {}

    @contextmanager
    def _shared_data(self) -> Iterator[SensorData | None]:
        """Hold the sensor-data lock, or yield None if it could not be taken."""
        if not self._lock.acquire(timeout=MUTEX_TIMEOUT_S):
            yield None
            return
        try:
            yield self.sensor_data
        finally:
            self._lock.release()

    def _snapshot(self) -> SensorData:
        with self._shared_data() as data:
            return SensorData() if data is None else replace(data)

    def sensor_step(self) -> None:
        """Read the sensor and publish the result to the shared data."""
        try:
            reading = self.sensor.read()
        except DHT22Error:
            with self._shared_data() as data:
                if data is not None:
                    data.invalidate()
            self.log("[sensor] DHT22 read failed!")
            return
        with self._shared_data() as data:
            if data is not None:
                data.update_data(reading.temperature, reading.humidity, self.now_ms)
        self.log(
            f"[sensor] temperature: {reading.temperature:f}°C, "
            f"humidity: {reading.humidity:f}%"
        )

    def display_step(self) -> None:
        """Redraw the screen from the latest data and push it to the display."""
        self.display.clear()
        data = self._snapshot()
        if data.valid:
            self.display.show_temperature(data.temperature, self.config.target_temp)
            self.display.show_humidity(data.humidity, self.config.target_humidity)
        else:
            self.display.show_string(0, 0, "Sensor error", FONT_SIZE_16)
        self.display.show_system_status()
        try:
            self.display.refresh()
        except OledError as exc:
            self.log(f"[display] refresh failed: {exc}")

    def control_step(self) -> None:
        """Feed valid data to the climate controller."""
        data = self._snapshot()
        if data.valid:
            self.controller.update(data, self.config)

    def run(self, duration_ms: int) -> None:
        """Advance simulated time by ``duration_ms``, running tasks as they fall due."""
        if duration_ms < 0:
            raise ValueError(f"duration must not be negative, got {duration_ms}")
        if not self._started:
            self._started = True
            for name, _, _ in self._tasks:
                self.log(f"[{name} task] started")
            self._next_wake = {name: self.now_ms for name, _, _ in self._tasks}
        end = self.now_ms + duration_ms
        while True:
            due = min(self._next_wake.values())
            if due >= end:
                break
            self.now_ms = due
            for name, step, period in self._tasks:
                if self._next_wake[name] == due:
                    step()
                    self._next_wake[name] += period
        self.now_ms = end


class _SimulatedBus:
    """A DHT22 data line that answers every start signal with a fixed reading."""

    _BIT_LOW_US = 50
    _ZERO_HIGH_US = 26
    _ONE_HIGH_US = 70

    def __init__(self, temperature: float, humidity: float) -> None:
        humidity_raw = round(humidity * 10) & 0xFFFF
        temperature_raw = round(abs(temperature) * 10) & 0x7FFF
        if temperature < 0:
            temperature_raw |= 0x8000
        body = humidity_raw.to_bytes(2, "big") + temperature_raw.to_bytes(2, "big")
        self._frame = body + bytes([sum(body) & 0xFF])
        self._time = 0
        self._output = True
        self._level = True
        self._segments: list[tuple[bool, int]] = []
        self._answer_start = 0

    def set_output(self) -> None:
        self._output = True

    def set_input(self) -> None:
        self._output = False
        self._answer_start = self._time
        segments = [(True, 20), (False, 80), (True, 80)]
        for byte in self._frame:
            for shift in range(7, -1, -1):
                high = self._ONE_HIGH_US if byte >> shift & 1 else self._ZERO_HIGH_US
                segments += [(False, self._BIT_LOW_US), (True, high)]
        segments.append((False, self._BIT_LOW_US))
        self._segments = segments

    def write(self, level: bool) -> None:
        self._level = level

    def read(self) -> bool:
        if self._output:
            return self._level
        elapsed = self._time - self._answer_start
        for level, length in self._segments:
            if elapsed < length:
                return level
            elapsed -= length
        return True

    def micros(self) -> int:
        self._time += 1
        return self._time

    def delay_us(self, us: int) -> None:
        self._time += us

    def delay_ms(self, ms: int) -> None:
        self._time += ms * 1000


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="terrarium", description="Simulate the terrarium climate controller."
    )
    parser.add_argument("--duration", type=int, default=10000, help="simulated run time in ms")
    parser.add_argument("--temperature", type=float, default=26.0, help="simulated temperature in °C")
    parser.add_argument("--humidity", type=float, default=50.0, help="simulated humidity in %%")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the controller against simulated hardware and report relay states."""
    args = _parse_args(argv)
    if args.duration < 0:
        print("error: duration must not be negative")
        return 2

    system: ReptileSystem | None = None

    def clock() -> int:
        return 0 if system is None else system.now_ms

    sensor = DHT22Sensor(_SimulatedBus(args.temperature, args.humidity))
    display = Display(lambda address, payload, timeout_ms: None)
    display.power_up_delay = 0.0
    relays = RelayController(lambda port, pin, level: None, clock)
    config = snake_config()
    controller = TemperatureController(relays, clock, config)

    sensor.initialize()
    display.initialize()
    relays.initialize()
    controller.initialize()

    system = ReptileSystem(sensor, display, relays, controller, config, print)
    print("Terrarium climate controller starting...")
    print(
        f"Config: hognose snake - target temperature {config.target_temp:g}°C, "
        f"target humidity {config.target_humidity:g}%"
    )
    system.run(args.duration)

    for relay, state in relays.all_states().items():
        print(f"{relay.name.lower()}: {state.name}")
    return 0


__all__ = ["ReptileSystem", "main", "snake_config"]

if __name__ == "__main__":
    raise SystemExit(main())