"""Shared sensor data and control configuration values."""

from __future__ import annotations

from dataclasses import dataclass

MIN_TARGET_TEMPERATURE = -40.0
MAX_TARGET_TEMPERATURE = 80.0
MIN_TARGET_HUMIDITY = 0.0
MAX_TARGET_HUMIDITY = 100.0
MAX_TEMP_TOLERANCE = 10.0
MAX_HUMIDITY_TOLERANCE = 20.0


@dataclass
class SensorData:
    """Latest temperature (°C) and humidity (%) with its timestamp in ms."""

    temperature: float = 0.0
    humidity: float = 0.0
    last_update_time: int = 0
    valid: bool = False

    def update_data(self, temperature: float, humidity: float, time: int) -> None:
        """Store a fresh reading and mark the data valid."""
        self.temperature = temperature
        self.humidity = humidity
        self.last_update_time = time
        self.valid = True

    def invalidate(self) -> None:
        """Mark the stored reading as no longer valid."""
        self.valid = False


class ControlConfig:
    """Targets and tolerances for the climate controller.

    The constructor stores its values as given. Assigning to an attribute
    afterwards keeps the old value when the new one is outside its allowed
    range.
    """

    def __init__(
        self,
        target_temp: float = 25.0,
        target_humidity: float = 60.0,
        temp_tolerance: float = 1.0,
        humidity_tolerance: float = 5.0,
    ) -> None:
        self._target_temp = target_temp
        self._target_humidity = target_humidity
        self._temp_tolerance = temp_tolerance
        self._humidity_tolerance = humidity_tolerance

    @property
    def target_temp(self) -> float:
        return self._target_temp

    @target_temp.setter
    def target_temp(self, value: float) -> None:
        if MIN_TARGET_TEMPERATURE <= value <= MAX_TARGET_TEMPERATURE:
            self._target_temp = value

    @property
    def target_humidity(self) -> float:
        return self._target_humidity

    @target_humidity.setter
    def target_humidity(self, value: float) -> None:
        if MIN_TARGET_HUMIDITY <= value <= MAX_TARGET_HUMIDITY:
            self._target_humidity = value

    @property
    def temp_tolerance(self) -> float:
        return self._temp_tolerance

    @temp_tolerance.setter
    def temp_tolerance(self, value: float) -> None:
        if 0.0 < value <= MAX_TEMP_TOLERANCE:
            self._temp_tolerance = value

    @property
    def humidity_tolerance(self) -> float:
        return self._humidity_tolerance

    @humidity_tolerance.setter
    def humidity_tolerance(self, value: float) -> None:
        if 0.0 < value <= MAX_HUMIDITY_TOLERANCE:
            self._humidity_tolerance = value

    def _key(self) -> tuple[float, float, float, float]:
        return (
            self._target_temp,
            self._target_humidity,
            self._temp_tolerance,
            self._humidity_tolerance,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ControlConfig):
            return NotImplemented
        return self._key() == other._key()

    def __repr__(self) -> str:
        return (
            f"ControlConfig(target_temp={self._target_temp!r}, "
            f"target_humidity={self._target_humidity!r}, "
            f"temp_tolerance={self._temp_tolerance!r}, "
            f"humidity_tolerance={self._humidity_tolerance!r})"
        )