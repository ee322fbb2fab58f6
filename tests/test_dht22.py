import bisect

import pytest

from terrarium.dht22 import (
    BIT_HIGH_THRESHOLD_US,
    ChecksumError,
    DHT22Error,
    DHT22Sensor,
    NotInitializedError,
    OutOfRangeError,
    SensorReading,
    SensorTimeoutError,
    decode_frame,
    decode_pulses,
)

DATASHEET_FRAME = bytes([0x02, 0x8C, 0x01, 0x5F, 0xEE])


class FakeBus:
    """Simulated data line: a waveform of (level, µs) segments after release."""

    def __init__(self, segments=()):
        self.time = 0
        self.output = True
        self.level = True
        self.input_start = None
        self.writes = []
        self.delays_ms = []
        self._ends = []
        self._levels = []
        total = 0
        for level, duration in segments:
            total += duration
            self._ends.append(total)
            self._levels.append(level)

    def set_output(self):
        self.output = True

    def set_input(self):
        self.output = False
        self.input_start = self.time

    def write(self, level):
        self.writes.append(level)
        self.level = level

    def read(self):
        now = self.time
        self.time += 1
        if self.output:
            return self.level
        elapsed = now - self.input_start
        index = bisect.bisect_right(self._ends, elapsed)
        return self._levels[index] if index < len(self._levels) else True

    def micros(self):
        return self.time

    def delay_us(self, us):
        self.time += us

    def delay_ms(self, ms):
        self.delays_ms.append(ms)
        self.time += ms * 1000


def waveform(frame):
    segments = [(True, 20), (False, 80), (True, 80)]
    for byte in frame:
        for shift in range(7, -1, -1):
            segments.append((False, 50))
            segments.append((True, 70 if (byte >> shift) & 1 else 26))
    segments.append((False, 50))
    return segments


def ready_sensor(segments):
    sensor = DHT22Sensor(FakeBus(segments))
    sensor.initialize()
    return sensor


def test_datasheet_frame_decodes():
    reading = decode_frame(DATASHEET_FRAME)
    assert reading.humidity == pytest.approx(65.2)
    assert reading.temperature == pytest.approx(35.1)


def test_negative_temperature_uses_sign_bit():
    positive = decode_frame(bytes([0x02, 0x8C, 0x00, 0x65, (0x02 + 0x8C + 0x65) & 0xFF]))
    negative = decode_frame(
        bytes([0x02, 0x8C, 0x80, 0x65, (0x02 + 0x8C + 0x80 + 0x65) & 0xFF])
    )
    assert negative.temperature == pytest.approx(-10.1)
    assert negative.temperature == -positive.temperature
    assert negative.humidity == positive.humidity


def test_checksum_mismatch_raises():
    bad = DATASHEET_FRAME[:4] + bytes([DATASHEET_FRAME[4] ^ 0x01])
    with pytest.raises(ChecksumError):
        decode_frame(bad)


def test_checksum_wraps_to_one_byte():
    frame = bytes([0x03, 0xE8, 0x00, 0xFA])
    frame += bytes([sum(frame) & 0xFF])
    reading = decode_frame(frame)
    assert reading.humidity == 100.0
    assert reading.temperature == 25.0


def test_humidity_above_range_raises():
    frame = bytes([0x03, 0xE9, 0x00, 0x00])
    with pytest.raises(OutOfRangeError):
        decode_frame(frame + bytes([sum(frame) & 0xFF]))


def test_temperature_above_range_raises():
    frame = bytes([0x00, 0x00, 0x03, 0x2A])
    with pytest.raises(OutOfRangeError):
        decode_frame(frame + bytes([sum(frame) & 0xFF]))


def test_temperature_below_range_raises():
    frame = bytes([0x00, 0x00, 0x81, 0x91])
    with pytest.raises(OutOfRangeError):
        decode_frame(frame + bytes([sum(frame) & 0xFF]))


def test_frame_length_is_checked():
    with pytest.raises(ValueError):
        decode_frame(DATASHEET_FRAME[:4])


def test_errors_share_a_base_class():
    with pytest.raises(DHT22Error) as info:
        decode_frame(DATASHEET_FRAME[:4] + b"\x00")
    assert type(info.value) is ChecksumError
    assert all(
        issubclass(error, DHT22Error)
        for error in (ChecksumError, OutOfRangeError, SensorTimeoutError, NotInitializedError)
    )


def test_decode_pulses_all_short_and_all_long():
    assert decode_pulses([0] * 40) == bytes(5)
    assert decode_pulses([100] * 40) == b"\xff" * 5


def test_decode_pulses_threshold_is_exclusive():
    at_threshold = decode_pulses([BIT_HIGH_THRESHOLD_US] * 40)
    above = decode_pulses([BIT_HIGH_THRESHOLD_US + 1] * 40)
    assert at_threshold == bytes(5)
    assert above == b"\xff" * 5


def test_decode_pulses_bit_order_is_msb_first():
    times = [0] * 40
    times[0] = 100
    times[39] = 100
    frame = decode_pulses(times)
    assert frame[0] == 0x80
    assert frame[4] == 0x01
    assert frame[1:4] == bytes(3)


def test_decode_pulses_wrong_count():
    with pytest.raises(ValueError):
        decode_pulses([0] * 39)


def test_initialize_releases_line_and_waits():
    bus = FakeBus()
    sensor = DHT22Sensor(bus)
    sensor.initialize()
    assert sensor.initialized is True
    assert bus.writes == [True]
    assert bus.delays_ms == [1000]


def test_read_before_initialize_raises():
    sensor = DHT22Sensor(FakeBus(waveform(DATASHEET_FRAME)))
    with pytest.raises(NotInitializedError):
        sensor.read()


def test_full_read_matches_frame_decoding():
    sensor = ready_sensor(waveform(DATASHEET_FRAME))
    assert sensor.read() == decode_frame(DATASHEET_FRAME)


def test_read_sends_start_signal():
    bus = FakeBus(waveform(DATASHEET_FRAME))
    sensor = DHT22Sensor(bus)
    sensor.initialize()
    sensor.read()
    assert bus.writes == [True, False, True]


def test_full_read_with_bad_checksum():
    bad = DATASHEET_FRAME[:4] + b"\x00"
    sensor = ready_sensor(waveform(bad))
    with pytest.raises(ChecksumError):
        sensor.read()


def test_no_response_times_out():
    sensor = ready_sensor([])
    with pytest.raises(SensorTimeoutError):
        sensor.read()


def test_missing_data_bits_time_out():
    sensor = ready_sensor([(True, 20), (False, 80), (True, 80)])
    with pytest.raises(SensorTimeoutError):
        sensor.read()


def test_reading_is_immutable():
    reading = SensorReading(temperature=21.0, humidity=40.0)
    with pytest.raises(AttributeError):
        reading.temperature = 22.0
    assert reading.temperature == 21.0
    assert reading.humidity == 40.0