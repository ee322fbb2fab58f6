# terrarium

A controller that keeps a reptile enclosure at a target temperature and
humidity. It has no dependencies beyond the standard library. All hardware
access goes through callables and objects that you pass in.

## Modules

- `terrarium.models`
  - `SensorData` is a dataclass that holds `temperature`, `humidity`,
    `last_update_time` and `valid`. It has two methods:
    - `update_data()` stores a reading and marks the data valid.
    - `invalidate()` clears the valid flag.
  - `ControlConfig` holds `target_temp`, `target_humidity`,
    `temp_tolerance` and `humidity_tolerance`. The defaults are 25 °C, 60 %,
    1.0 and 5.0.
    - The constructor stores its values as given.
    - Assigning to an attribute afterwards silently keeps the old value when
      the new one is out of range. The ranges are −40…80 °C, 0…100 %,
      0 < tolerance ≤ 10 and 0 < tolerance ≤ 20.
- `terrarium.pid`
  - `PIDController(kp, ki, kd)` clamps its integral to
    `±integral_limit` and its output to `[output_min, output_max]`. All
    three limits default to 100.
  - Its methods are `set_parameters()`, `set_output_limits()`,
    `set_integral_limit()`, `update(setpoint, measurement, dt)` and
    `reset()`.
  - The derivative term is 0 when `dt` is not positive.
- `terrarium.relay`
  - `RelayController(write_pin, clock, configs=None)` drives the
    `RelayType.HEATER`, `FAN` and `HUMIDIFIER` relays.
    - `write_pin(port, pin, level)` sets a pin level.
    - `clock()` returns milliseconds.
    - Each `RelayConfig` says whether its relay is active high. The default
      is active low, on GPIOC pins 13–15.
  - Its methods are `initialize()`, `set_state()`, `get_state()`,
    `toggle()`, `turn_off_all()`, `all_states()`, `status()` (a
    `RelayStatus`), `safety_check()` and `emergency_stop()`.
    - `set_state()` and `toggle()` are ignored until `initialize()` has run,
      and again after `emergency_stop()`.
    - `safety_check()` runs at most once a second. It counts how long the
      heater has been on. After 30 minutes it switches the heater off and
      the fan on.
- `terrarium.control`
  - `TemperatureController(relays, clock, config=None)` runs at most one
    step per second through `update(sensor_data, config)`. It acts only on
    valid data.
    - In `Mode.AUTO` the heater and fan switch when the temperature leaves
      the tolerance band. The humidifier switches on when the humidity is
      more than the tolerance below target.
    - `Mode.MANUAL` leaves the relays alone.
    - `Mode.OFF` turns every relay off.
  - After each step it calls the relays' `safety_check()`.
  - The PID outputs are recorded in `state` (`ControlState`) for reporting
    only.
  - Other methods:
    - `set_temperature_pid()` and `set_humidity_pid()`.
    - `set_target_temperature()` and `set_target_humidity()`. These change
      the shared `config` and reset the matching PID.
    - `set_tolerances()`.
    - `emergency_stop()`.
    - `safety_check()`, which returns whether relay control is enabled.
- `terrarium.dht22`
  - `decode_pulses()` turns 40 high-pulse durations in µs into 5 bytes.
  - `decode_frame()` checks the checksum and decodes a `SensorReading`.
  - `DHT22Sensor(bus)` runs the single-wire transaction over a `PinBus`.
  - Failures raise subclasses of `DHT22Error`:
    - `SensorTimeoutError`
    - `ChecksumError`
    - `OutOfRangeError`
    - `NotInitializedError`
- `terrarium.oled`
  - `Display(transport)` keeps a 128x64 SSD1306 frame buffer in `buffer`.
  - The transport is `transport(address, payload, timeout_ms)`. An
    `OSError` from it becomes an `OledError`.
  - Drawing methods:
    - `set_pixel()` and `get_pixel()`. Both raise `IndexError` outside the
      screen.
    - `draw_char()`, `show_string()` and `show_number()`, using an 8x8 font
      that can be doubled to 16 pixels.
    - `show_temperature()`, `show_humidity()` and `show_system_status()`.
  - Device methods are `initialize()`, `clear()`, `refresh()`,
    `write_command()` and `write_data()`.
  - `format_float()` formats a number as integer part, a dot and truncated
    fraction digits. `char_index()` maps a character to its glyph.
- `terrarium.heap`
  - `Heap(total_size=15360, alignment=8, pointer_size=4)` is a first-fit
    allocator over a simulated address range. Free blocks are merged with
    their neighbours.
  - `malloc(size)` returns an address. It raises `ValueError` for a
    non-positive size and `MemoryError` when no block fits.
  - `free(address)` raises `InvalidFreeError` for an address that is not
    allocated.
  - `stats()` returns a `HeapStats`.
- `terrarium.app`
  - `ReptileSystem` runs three steps on simulated millisecond time through
    `run(duration_ms)`:
    - `sensor_step` every 2 s.
    - `display_step` every 0.5 s.
    - `control_step` every 1 s.
  - The steps share the sensor data under a lock.
  - `snake_config()` returns 30 °C, 40 %, tolerances 2.0 and 8.0.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

```
terrarium --duration 10000 --temperature 26 --humidity 50
```

The command builds the whole system with `snake_config()` and runs it for the
given simulated time in milliseconds. It uses:

- a simulated DHT22 line that always reports the given temperature and
  humidity;
- a display and relay pins that discard what is written to them.

It prints the sensor log lines and, at the end, the state of each relay.
A negative `--duration` exits with status 2.

## Library use

```python
from terrarium.models import SensorData
from terrarium.pid import PIDController

pid = PIDController(2.0, 0.5, 0.1)
pid.set_output_limits(-100.0, 100.0)
pid.set_integral_limit(50.0)
output = pid.update(30.0, 27.5, 1.0)

reading = SensorData()
reading.update_data(27.5, 38.0, 1000)
```

## What it does not do

- The package has no drivers for real GPIO pins, I2C buses or timers. To run
  against hardware you supply your own `write_pin`, `clock`, `PinBus` and
  `transport`.
- `ReptileSystem` does not run in real time or in threads. It steps simulated
  time forward.
- `Heap` is a standalone allocator. No other part of the package uses it.