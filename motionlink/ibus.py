"""Receiver side of the FlySky iBUS serial protocol: servo channels and telemetry sensors."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, IntEnum

from motionlink.hal import Clock

PROTOCOL_LENGTH = 0x20
PROTOCOL_OVERHEAD = 3
PROTOCOL_TIMEGAP_MS = 3
PROTOCOL_CHANNELS = 14
PROTOCOL_COMMAND40 = 0x40
PROTOCOL_COMMAND_DISCOVER = 0x80
PROTOCOL_COMMAND_TYPE = 0x90
PROTOCOL_COMMAND_VALUE = 0xA0
SENSOR_MAX = 10
REPLY_DELAY_US = 100


class SensorType(IntEnum):
    """Telemetry sensor kinds understood by common transmitters."""

    INTERNAL_VOLTAGE = 0x00
    TEMPERATURE = 0x01
    RPM = 0x02
    EXTERNAL_VOLTAGE = 0x03
    PRESSURE = 0x41
    SERVO = 0xFD


@dataclass
class Sensor:
    """A telemetry sensor: its type, data length in bytes (2 or 4) and current value."""

    sensor_type: int
    length: int = 2
    value: int = 0


class ByteStream:
    """An in-memory serial port: bytes fed in are read by the protocol, writes are collected."""

    def __init__(self) -> None:
        self._incoming: deque[int] = deque()
        self._outgoing = bytearray()

    def feed(self, data: Iterable[int]) -> None:
        """Queue bytes as if they had arrived on the line."""
        self._incoming.extend(byte & 0xFF for byte in data)

    def available(self) -> int:
        """Number of received bytes not yet read."""
        return len(self._incoming)

    def read(self) -> int:
        """Take the next received byte."""
        if not self._incoming:
            raise EOFError("no data available")
        return self._incoming.popleft()

    def write(self, value: int) -> None:
        """Send one byte."""
        self._outgoing.append(value & 0xFF)

    def take_output(self) -> bytes:
        """Return everything written so far and clear it."""
        data = bytes(self._outgoing)
        self._outgoing.clear()
        return data


class _State(Enum):
    GET_LENGTH = "length"
    GET_DATA = "data"
    GET_CHKSUML = "checksum-low"
    GET_CHKSUMH = "checksum-high"
    DISCARD = "discard"


def _to_int32(value: int) -> int:
    return ((int(value) + 2**31) % 2**32) - 2**31


class IBus:
    """Decodes servo frames and answers telemetry polls arriving on a byte stream.

    A new frame is only recognised after a silence of at least 3 ms on the line.
    Call ``loop`` often enough to answer sensor polls promptly.
    """

    def __init__(self, stream: ByteStream, clock: Clock | None = None) -> None:
        self.stream = stream
        self.clock = clock if clock is not None else Clock()
        self.poll_count = 0
        self.value_count = 0
        self.frame_count = 0
        self._state = _State.DISCARD
        self._last = self.clock.millis()
        self._frame = bytearray(PROTOCOL_LENGTH)
        self._payload = bytearray()
        self._length = 0
        self._checksum = 0
        self._checksum_low = 0
        self._channels = [0] * PROTOCOL_CHANNELS
        self._sensors: list[Sensor] = []

    @property
    def sensors(self) -> tuple[Sensor, ...]:
        """The registered sensors; sensor address n is item n - 1."""
        return tuple(self._sensors)

    def loop(self) -> None:
        """Process every byte waiting on the stream, replying to sensor polls."""
        while self.stream.available() > 0:
            now = self.clock.millis()
            if (now - self._last) & 0xFFFFFFFF >= PROTOCOL_TIMEGAP_MS:
                self._state = _State.GET_LENGTH
            self._last = now
            self._consume(self.stream.read())

    def _consume(self, byte: int) -> None:
        state = self._state
        if state is _State.GET_LENGTH:
            if PROTOCOL_OVERHEAD < byte <= PROTOCOL_LENGTH:
                self._payload = bytearray()
                self._length = byte - PROTOCOL_OVERHEAD
                self._checksum = 0xFFFF - byte
                self._state = _State.GET_DATA
            else:
                self._state = _State.DISCARD
        elif state is _State.GET_DATA:
            self._payload.append(byte)
            self._checksum = (self._checksum - byte) & 0xFFFF
            if len(self._payload) == self._length:
                self._state = _State.GET_CHKSUML
        elif state is _State.GET_CHKSUML:
            self._checksum_low = byte
            self._state = _State.GET_CHKSUMH
        elif state is _State.GET_CHKSUMH:
            if self._checksum == (byte << 8) + self._checksum_low:
                self._frame[: len(self._payload)] = self._payload
                self._execute()
            self._state = _State.DISCARD

    def _execute(self) -> None:
        command = self._frame[0]
        address = command & 0x0F
        if command == PROTOCOL_COMMAND40:
            for index in range(PROTOCOL_CHANNELS):
                low = self._frame[2 * index + 1]
                high = self._frame[2 * index + 2]
                self._channels[index] = low | (high << 8)
            self.frame_count = (self.frame_count + 1) & 0xFF
        elif 0 < address <= len(self._sensors) and self._length == 1:
            # Only single-byte polls are answered, so our own replies looping back are ignored.
            self._reply(command & 0xF0, address, self._sensors[address - 1])

    def _reply(self, kind: int, address: int, sensor: Sensor) -> None:
        self.clock.delay_us(REPLY_DELAY_US)
        if kind == PROTOCOL_COMMAND_DISCOVER:
            self.poll_count = (self.poll_count + 1) & 0xFF
            message = [0x04, PROTOCOL_COMMAND_DISCOVER + address]
        elif kind == PROTOCOL_COMMAND_TYPE:
            message = [
                0x06,
                PROTOCOL_COMMAND_TYPE + address,
                sensor.sensor_type & 0xFF,
                sensor.length,
            ]
        elif kind == PROTOCOL_COMMAND_VALUE:
            self.value_count = (self.value_count + 1) & 0xFF
            value_bytes = [(sensor.value >> shift) & 0xFF for shift in range(0, 8 * sensor.length, 8)]
            message = [0x04 + sensor.length, PROTOCOL_COMMAND_VALUE + address, *value_bytes]
        else:
            return
        checksum = (0xFFFF - sum(message)) & 0xFFFF
        for byte in message:
            self.stream.write(byte)
        self.stream.write(checksum & 0xFF)
        self.stream.write(checksum >> 8)

    def read_channel(self, channel: int) -> int:
        """Last received value of a servo channel (0..13); 0 for any other channel."""
        if 0 <= channel < PROTOCOL_CHANNELS:
            return self._channels[channel]
        return 0

    def add_sensor(self, sensor_type: int, length: int = 2) -> int:
        """Register a sensor and return the number of sensors, i.e. its address.

        A length other than 2 or 4 is taken as 2. Once ten sensors exist no more
        are added and 10 is returned.
        """
        if length not in (2, 4):
            length = 2
        if len(self._sensors) < SENSOR_MAX:
            self._sensors.append(Sensor(int(sensor_type) & 0xFF, length, 0))
        return len(self._sensors)

    def set_sensor_measurement(self, address: int, value: int) -> None:
        """Set the value reported by the sensor at ``address``; unknown addresses are ignored."""
        if 0 < address <= len(self._sensors):
            self._sensors[address - 1].value = _to_int32(value)