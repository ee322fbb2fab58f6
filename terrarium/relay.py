"""Relay bank driving the heater, fan and humidifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterable

_TICK_MASK = 0xFFFFFFFF
SAFETY_CHECK_INTERVAL_MS = 1000
MAX_HEATER_ON_MS = 30 * 60 * 1000


class RelayType(IntEnum):
    HEATER = 0
    FAN = 1
    HUMIDIFIER = 2


class RelayState(IntEnum):
    OFF = 0
    ON = 1


@dataclass(frozen=True)
class RelayConfig:
    """GPIO port and pin of one relay and whether it is switched by a high level."""

    port: str
    pin: int
    active_high: bool = False


DEFAULT_CONFIGS: tuple[RelayConfig, ...] = (
    RelayConfig("GPIOC", 13),
    RelayConfig("GPIOC", 14),
    RelayConfig("GPIOC", 15),
)


@dataclass(frozen=True)
class RelayStatus:
    heater: RelayState
    fan: RelayState
    humidifier: RelayState
    last_update_time: int


WritePin = Callable[[str, int, bool], None]
Clock = Callable[[], int]


class RelayController:
    """Keeps the logical relay states and writes the matching pin levels.

    ``write_pin(port, pin, level)`` sets a pin high (True) or low (False);
    ``clock()`` returns a millisecond tick counter. State changes are ignored
    until :meth:`initialize` has run, and again after :meth:`emergency_stop`.
    """

    def __init__(
        self,
        write_pin: WritePin,
        clock: Clock,
        configs: Iterable[RelayConfig] | None = None,
    ) -> None:
        self.configs = tuple(DEFAULT_CONFIGS if configs is None else configs)
        if len(self.configs) != len(RelayType):
            raise ValueError(f"expected {len(RelayType)} relay configs, got {len(self.configs)}")
        self._write_pin = write_pin
        self._clock = clock
        self._states = {relay: RelayState.OFF for relay in RelayType}
        self.initialized = False
        self._last_check_time = 0
        self._heater_on_time = 0

    def _write(self, relay: RelayType, state: RelayState) -> None:
        config = self.configs[relay]
        level = config.active_high if state is RelayState.ON else not config.active_high
        self._write_pin(config.port, config.pin, level)

    def initialize(self) -> None:
        """Switch every relay off and enable control; a second call does nothing."""
        if self.initialized:
            return
        self.turn_off_all()
        self.initialized = True

    def set_state(self, relay: RelayType | int, state: RelayState | int) -> None:
        relay = RelayType(relay)
        state = RelayState(state)
        if not self.initialized:
            return
        self._states[relay] = state
        self._write(relay, state)

    def get_state(self, relay: RelayType | int) -> RelayState:
        return self._states[RelayType(relay)]

    def toggle(self, relay: RelayType | int) -> None:
        relay = RelayType(relay)
        if not self.initialized:
            return
        new_state = RelayState.OFF if self._states[relay] is RelayState.ON else RelayState.ON
        self.set_state(relay, new_state)

    def turn_off_all(self) -> None:
        """Switch every relay off, whether or not control is enabled."""
        for relay in RelayType:
            self._write(relay, RelayState.OFF)
            self._states[relay] = RelayState.OFF

    def all_states(self) -> dict[RelayType, RelayState]:
        return dict(self._states)

    def status(self) -> RelayStatus:
        return RelayStatus(
            heater=self._states[RelayType.HEATER],
            fan=self._states[RelayType.FAN],
            humidifier=self._states[RelayType.HUMIDIFIER],
            last_update_time=self._clock(),
        )

    def safety_check(self) -> None:
        """Once a second, count heater run time and cut it after 30 minutes.

        When the heater has been on for longer than the limit it is switched
        off and the fan switched on to cool down.
        """
        now = self._clock()
        if ((now - self._last_check_time) & _TICK_MASK) < SAFETY_CHECK_INTERVAL_MS:
            return
        self._last_check_time = now
        if self._states[RelayType.HEATER] is RelayState.ON:
            self._heater_on_time += SAFETY_CHECK_INTERVAL_MS
            if self._heater_on_time > MAX_HEATER_ON_MS:
                self.set_state(RelayType.HEATER, RelayState.OFF)
                self.set_state(RelayType.FAN, RelayState.ON)
                self._heater_on_time = 0
        else:
            self._heater_on_time = 0

    def emergency_stop(self) -> None:
        """Switch everything off and disable control until re-initialised."""
        self.turn_off_all()
        self.initialized = False