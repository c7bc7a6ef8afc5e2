"""Hardware abstraction: motor interface kinds, time sources and a digital pin bus."""

from __future__ import annotations

import time
from enum import IntEnum


class MotorInterface(IntEnum):
    """How a stepper motor is wired to the controller."""

    FUNCTION = 0
    DRIVER = 1
    FULL2WIRE = 2
    FULL3WIRE = 3
    FULL4WIRE = 4
    HALF3WIRE = 6
    HALF4WIRE = 8

    def pin_count(self) -> int:
        """Number of motor output pins this interface drives."""
        if self is MotorInterface.FUNCTION:
            return 0
        if self in (MotorInterface.FULL4WIRE, MotorInterface.HALF4WIRE):
            return 4
        if self in (MotorInterface.FULL3WIRE, MotorInterface.HALF3WIRE):
            return 3
        return 2


class Direction(IntEnum):
    """Direction of rotation."""

    CCW = 0
    CW = 1


class Level(IntEnum):
    """Logic level of a digital pin."""

    LOW = 0
    HIGH = 1


class Clock:
    """Monotonic time source in microseconds, backed by the system clock."""

    def __init__(self) -> None:
        self._origin_ns = time.perf_counter_ns()

    def micros(self) -> int:
        """Microseconds elapsed since the clock was created."""
        return (time.perf_counter_ns() - self._origin_ns) // 1000

    def millis(self) -> int:
        """Milliseconds elapsed since the clock was created."""
        return self.micros() // 1000

    def delay_us(self, microseconds: int) -> None:
        """Block for at least the given number of microseconds."""
        if microseconds < 0:
            raise ValueError("delay must not be negative")
        deadline = time.perf_counter_ns() + microseconds * 1000
        while time.perf_counter_ns() < deadline:
            pass


class ManualClock(Clock):
    """A clock that only moves when told to; delays advance it instantly."""

    def __init__(self, start_us: int = 0) -> None:
        if start_us < 0:
            raise ValueError("start time must not be negative")
        self._now_us = start_us

    def micros(self) -> int:
        return self._now_us

    def millis(self) -> int:
        return self._now_us // 1000

    def delay_us(self, microseconds: int) -> None:
        self.advance(microseconds)

    def advance(self, microseconds: int) -> None:
        """Move the clock forward by the given number of microseconds."""
        if microseconds < 0:
            raise ValueError("time cannot run backwards")
        self._now_us += microseconds


class PinBus:
    """A set of digital pins that records modes, levels and every write."""

    def __init__(self) -> None:
        self._outputs: set[int] = set()
        self._levels: dict[int, Level] = {}
        self.history: list[tuple[int, Level]] = []

    def set_output(self, pin: int) -> None:
        """Configure a pin as an output."""
        self._outputs.add(pin)

    def write(self, pin: int, level: int) -> None:
        """Drive a pin to the given level and record the write."""
        value = Level(1 if level else 0)
        self._levels[pin] = value
        self.history.append((pin, value))

    def read(self, pin: int) -> Level:
        """Last level written to a pin; LOW if never written."""
        return self._levels.get(pin, Level.LOW)

    def is_output(self, pin: int) -> bool:
        """Whether the pin has been configured as an output."""
        return pin in self._outputs