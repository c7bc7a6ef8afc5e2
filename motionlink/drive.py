"""Output drivers that turn a step into pin changes or user callbacks."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from motionlink.hal import Clock, Level, MotorInterface, PinBus

_FULL2WIRE_PHASES = (0b10, 0b11, 0b01, 0b00)
_FULL3WIRE_PHASES = (0b100, 0b001, 0b010)
_FULL4WIRE_PHASES = (0b0101, 0b0110, 0b1010, 0b1001)
_HALF3WIRE_PHASES = (0b100, 0b101, 0b001, 0b011, 0b010, 0b110)
_HALF4WIRE_PHASES = (0b0001, 0b0101, 0b0100, 0b0110, 0b0010, 0b1010, 0b1000, 0b1001)


def _truncated_remainder(value: int, divisor: int) -> int:
    """Remainder that takes the sign of the dividend, as hardware integer division does."""
    if value >= 0:
        return value % divisor
    return -((-value) % divisor)


class PinDriver:
    """Drives a stepper motor or step/direction driver through digital pins."""

    def __init__(
        self,
        interface: MotorInterface = MotorInterface.FULL4WIRE,
        pins: Sequence[int] = (2, 3, 4, 5),
        bus: PinBus | None = None,
        clock: Clock | None = None,
        enable: bool = True,
    ) -> None:
        self.interface = MotorInterface(interface)
        if self.interface is MotorInterface.FUNCTION:
            raise ValueError("the function interface has no pins; use FunctionDriver")
        if len(pins) < self.interface.pin_count():
            raise ValueError(
                f"{self.interface.name} needs {self.interface.pin_count()} pins, got {len(pins)}"
            )
        if len(pins) > 4:
            raise ValueError("at most 4 motor pins are supported")
        self.pins: tuple[int, ...] = tuple(pins)
        self.bus = bus if bus is not None else PinBus()
        self.clock = clock if clock is not None else Clock()
        self.min_pulse_width = 1
        self.enable_pin: int | None = None
        self.enable_inverted = False
        self._inverted = [False, False, False, False]
        if enable:
            self.enable_outputs()

    @property
    def _pin_count(self) -> int:
        return self.interface.pin_count()

    def set_output_pins(self, mask: int) -> None:
        """Drive the motor pins from a bit mask; bit 0 is the first pin."""
        for index, pin in enumerate(self.pins[: self._pin_count]):
            active = bool(mask & (1 << index))
            self.bus.write(pin, Level(active ^ self._inverted[index]))

    def step(self, position: int, direction: int, speed: float) -> None:
        """Emit the output pattern for the given step position."""
        kind = self.interface
        if kind is MotorInterface.DRIVER:
            self._pulse(bool(direction))
            return
        if kind is MotorInterface.FULL2WIRE:
            mask = _FULL2WIRE_PHASES[position & 0x3]
        elif kind is MotorInterface.FULL4WIRE:
            mask = _FULL4WIRE_PHASES[position & 0x3]
        elif kind is MotorInterface.HALF4WIRE:
            mask = _HALF4WIRE_PHASES[position & 0x7]
        else:
            phases = _FULL3WIRE_PHASES if kind is MotorInterface.FULL3WIRE else _HALF3WIRE_PHASES
            phase = _truncated_remainder(position, len(phases))
            # A negative remainder selects no phase, so the outputs stay as they are.
            if phase < 0:
                return
            mask = phases[phase]
        self.set_output_pins(mask)

    def _pulse(self, clockwise: bool) -> None:
        # Direction is set before the step edge to avoid rogue pulses.
        idle = 0b10 if clockwise else 0b00
        self.set_output_pins(idle)
        self.set_output_pins(idle | 0b01)
        self.clock.delay_us(self.min_pulse_width)
        self.set_output_pins(idle)

    def enable_outputs(self) -> None:
        """Configure the motor pins as outputs and assert the enable pin if set."""
        for pin in self.pins[: self._pin_count]:
            self.bus.set_output(pin)
        if self.enable_pin is not None:
            self.bus.set_output(self.enable_pin)
            self.bus.write(self.enable_pin, Level(Level.HIGH ^ self.enable_inverted))

    def disable_outputs(self) -> None:
        """Drive every motor pin inactive and release the enable pin if set."""
        self.set_output_pins(0)
        if self.enable_pin is not None:
            self.bus.set_output(self.enable_pin)
            self.bus.write(self.enable_pin, Level(Level.LOW ^ self.enable_inverted))

    def attach_enable_pin(self, pin: int | None = None) -> None:
        """Use a pin to enable the driver; None means no enable pin."""
        self.enable_pin = pin
        if pin is not None:
            self.bus.set_output(pin)
            self.bus.write(pin, Level(Level.HIGH ^ self.enable_inverted))

    def set_pins_inverted(
        self,
        direction_invert: bool = False,
        step_invert: bool = False,
        enable_invert: bool = False,
    ) -> None:
        """Set inversion of the step, direction and enable lines of a driver."""
        self._inverted[0] = bool(step_invert)
        self._inverted[1] = bool(direction_invert)
        self.enable_inverted = bool(enable_invert)

    def set_all_pins_inverted(
        self,
        pin1_invert: bool,
        pin2_invert: bool,
        pin3_invert: bool,
        pin4_invert: bool,
        enable_invert: bool,
    ) -> None:
        """Set inversion of each of the four motor pins and the enable pin."""
        self._inverted = [bool(pin1_invert), bool(pin2_invert), bool(pin3_invert), bool(pin4_invert)]
        self.enable_inverted = bool(enable_invert)


class FunctionDriver:
    """Performs steps by calling user-supplied forward and backward functions."""

    interface = MotorInterface.FUNCTION

    def __init__(self, forward: Callable[[], object], backward: Callable[[], object]) -> None:
        self.forward = forward
        self.backward = backward

    def step(self, position: int, direction: int, speed: float) -> None:
        """Step forward when the speed is positive, otherwise backward."""
        if speed > 0:
            self.forward()
        else:
            self.backward()

    def enable_outputs(self) -> None:
        """There are no pins to enable; nothing happens."""

    def disable_outputs(self) -> None:
        """There are no pins to disable; nothing happens."""