"""Climate control: drives the relays from sensor readings and targets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

from terrarium.models import ControlConfig, SensorData
from terrarium.pid import PIDController
from terrarium.relay import RelayController, RelayState, RelayType

_TICK_MASK = 0xFFFFFFFF
CONTROL_INTERVAL_MS = 1000
_CONTROL_DT = 1.0

TEMP_PID_GAINS = (2.0, 0.5, 0.1)
HUMIDITY_PID_GAINS = (1.5, 0.3, 0.05)
PID_OUTPUT_LIMITS = (-100.0, 100.0)
PID_INTEGRAL_LIMIT = 50.0

Clock = Callable[[], int]


class Mode(IntEnum):
    AUTO = 0
    MANUAL = 1
    OFF = 2


@dataclass
class ControlState:
    """What the controller last decided and when."""

    mode: Mode = Mode.AUTO
    heater_enabled: bool = False
    fan_enabled: bool = False
    humidifier_enabled: bool = False
    last_control_time: int = 0
    temp_output: float = 0.0
    humidity_output: float = 0.0


def _make_pid(gains: tuple[float, float, float]) -> PIDController:
    pid = PIDController(*gains)
    pid.set_output_limits(*PID_OUTPUT_LIMITS)
    pid.set_integral_limit(PID_INTEGRAL_LIMIT)
    return pid


class TemperatureController:
    """Bang-bang relay control with PID outputs kept for reporting.

    ``clock()`` returns a millisecond tick counter. ``config`` is the shared
    configuration that the target and tolerance setters change; :meth:`update`
    works from the configuration it is given.
    """

    def __init__(
        self,
        relays: RelayController,
        clock: Clock,
        config: ControlConfig | None = None,
    ) -> None:
        self.relays = relays
        self.config = ControlConfig() if config is None else config
        self._clock = clock
        self.temp_pid = _make_pid(TEMP_PID_GAINS)
        self.humidity_pid = _make_pid(HUMIDITY_PID_GAINS)
        self.state = ControlState()

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @mode.setter
    def mode(self, value: Mode | int) -> None:
        self.state.mode = Mode(value)

    def initialize(self) -> None:
        """Initialise the relays, enter AUTO mode and start the control timer."""
        self.relays.initialize()
        self.state.mode = Mode.AUTO
        self.state.last_control_time = self._clock()

    def update(self, sensor_data: SensorData, config: ControlConfig) -> None:
        """Run one control step if the data is valid and a second has passed."""
        if not sensor_data.valid:
            return
        now = self._clock()
        elapsed = (now - self.state.last_control_time) & _TICK_MASK
        if elapsed < CONTROL_INTERVAL_MS:
            return
        self.state.last_control_time = now

        if self.state.mode is Mode.AUTO:
            self._control_temperature(
                sensor_data.temperature, config.target_temp, config.temp_tolerance
            )
            self._control_humidity(
                sensor_data.humidity, config.target_humidity, config.humidity_tolerance
            )
        elif self.state.mode is Mode.OFF:
            self.relays.turn_off_all()

        self.relays.safety_check()

    def _control_temperature(self, current: float, target: float, tolerance: float) -> None:
        error = target - current
        self.state.temp_output = self.temp_pid.update(target, current, _CONTROL_DT)

        if error > tolerance:
            heater, fan = True, False
        elif error < -tolerance:
            heater, fan = False, True
        else:
            heater, fan = False, False

        self.relays.set_state(RelayType.HEATER, RelayState.ON if heater else RelayState.OFF)
        self.relays.set_state(RelayType.FAN, RelayState.ON if fan else RelayState.OFF)
        self.state.heater_enabled = heater
        self.state.fan_enabled = fan

    def _control_humidity(self, current: float, target: float, tolerance: float) -> None:
        error = target - current
        self.state.humidity_output = self.humidity_pid.update(target, current, _CONTROL_DT)

        humidify = error > tolerance
        self.relays.set_state(
            RelayType.HUMIDIFIER, RelayState.ON if humidify else RelayState.OFF
        )
        self.state.humidifier_enabled = humidify

    def set_temperature_pid(self, kp: float, ki: float, kd: float) -> None:
        self.temp_pid.set_parameters(kp, ki, kd)

    def set_humidity_pid(self, kp: float, ki: float, kd: float) -> None:
        self.humidity_pid.set_parameters(kp, ki, kd)

    def set_target_temperature(self, temperature: float) -> None:
        """Change the shared target temperature and restart the temperature PID."""
        self.config.target_temp = temperature
        self.temp_pid.reset()

    def set_target_humidity(self, humidity: float) -> None:
        """Change the shared target humidity and restart the humidity PID."""
        self.config.target_humidity = humidity
        self.humidity_pid.reset()

    def set_tolerances(self, temp_tolerance: float, humidity_tolerance: float) -> None:
        self.config.temp_tolerance = temp_tolerance
        self.config.humidity_tolerance = humidity_tolerance

    def emergency_stop(self) -> None:
        """Cut every relay, disable relay control and switch to OFF mode."""
        self.relays.emergency_stop()
        self.state.mode = Mode.OFF

    def safety_check(self) -> bool:
        """Return whether relay control is enabled."""
        return self.relays.initialized