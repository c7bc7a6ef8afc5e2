"""Stepper motor motion control with acceleration, deceleration and absolute positioning."""

from __future__ import annotations

import math
from typing import Protocol

from motionlink.hal import Clock, Direction


class StepDriver(Protocol):
    """What the stepper needs from an output driver."""

    def step(self, position: int, direction: int, speed: float) -> None: ...

    def enable_outputs(self) -> None: ...

    def disable_outputs(self) -> None: ...


class AccelStepper:
    """A single stepper motor moving towards a target with a trapezoidal speed profile.

    Positions are signed step counts; positive is clockwise. Speeds are in steps
    per second and accelerations in steps per second per second. The motor is
    advanced by polling ``run`` (accelerated) or ``run_speed`` (constant speed).
    """

    def __init__(self, driver: StepDriver, clock: Clock | None = None) -> None:
        self.driver = driver
        self.clock = clock if clock is not None else Clock()
        self._current_pos = 0
        self._target_pos = 0
        self._speed = 0.0
        self._max_speed = 0.0
        self._acceleration = 0.0
        self.step_interval = 0
        self._last_step_time = 0
        self._n = 0
        self._c0 = 0.0
        self._cn = 0.0
        self._cmin = 1.0
        self.direction = Direction.CCW
        self.acceleration = 1.0
        self.max_speed = 1.0

    # Targets and positions

    def move_to(self, absolute: int) -> None:
        """Set the absolute target position and recompute the speed."""
        absolute = int(absolute)
        if self._target_pos != absolute:
            self._target_pos = absolute
            self.compute_new_speed()

    def move(self, relative: int) -> None:
        """Set the target position relative to the current position."""
        self.move_to(self._current_pos + int(relative))

    def distance_to_go(self) -> int:
        """Steps from the current position to the target; positive is clockwise."""
        return self._target_pos - self._current_pos

    def target_position(self) -> int:
        """The most recently set target position."""
        return self._target_pos

    def current_position(self) -> int:
        """The current motor position in steps."""
        return self._current_pos

    def reset_position(self, position: int) -> None:
        """Declare the motor to be at ``position`` now, stopping it."""
        self._target_pos = self._current_pos = int(position)
        self._n = 0
        self.step_interval = 0
        self._speed = 0.0

    # Configuration

    @property
    def max_speed(self) -> float:
        """Maximum permitted speed in steps per second."""
        return self._max_speed

    @max_speed.setter
    def max_speed(self, speed: float) -> None:
        speed = abs(float(speed))
        if speed == 0.0:
            raise ValueError("maximum speed must be greater than zero")
        if self._max_speed != speed:
            self._max_speed = speed
            self._cmin = 1_000_000.0 / speed
            # Re-derive the step counter from the current speed while accelerating or cruising.
            if self._n > 0:
                self._n = int((self._speed * self._speed) / (2.0 * self._acceleration))
                self.compute_new_speed()

    @property
    def acceleration(self) -> float:
        """Acceleration and deceleration rate in steps per second per second."""
        return self._acceleration

    @acceleration.setter
    def acceleration(self, acceleration: float) -> None:
        acceleration = float(acceleration)
        if acceleration == 0.0:
            return
        acceleration = abs(acceleration)
        if self._acceleration != acceleration:
            self._n = int(self._n * (self._acceleration / acceleration))
            self._c0 = 0.676 * math.sqrt(2.0 / acceleration) * 1_000_000.0
            self._acceleration = acceleration
            self.compute_new_speed()

    @property
    def speed(self) -> float:
        """Current speed in steps per second; positive is clockwise."""
        return self._speed

    @speed.setter
    def speed(self, speed: float) -> None:
        speed = float(speed)
        if speed == self._speed:
            return
        speed = min(max(speed, -self._max_speed), self._max_speed)
        if speed == 0.0:
            self.step_interval = 0
        else:
            self.step_interval = int(abs(1_000_000.0 / speed))
            self.direction = Direction.CW if speed > 0.0 else Direction.CCW
        self._speed = speed

    # Motion

    def compute_new_speed(self) -> int:
        """Work out the speed for the next step and return the new step interval in microseconds."""
        distance_to = self.distance_to_go()
        steps_to_stop = int((self._speed * self._speed) / (2.0 * self._acceleration))

        if distance_to == 0 and steps_to_stop <= 1:
            self.step_interval = 0
            self._speed = 0.0
            self._n = 0
            return self.step_interval

        if distance_to > 0:
            if self._n > 0:
                if steps_to_stop >= distance_to or self.direction == Direction.CCW:
                    self._n = -steps_to_stop
            elif self._n < 0:
                if steps_to_stop < distance_to and self.direction == Direction.CW:
                    self._n = -self._n
        elif distance_to < 0:
            if self._n > 0:
                if steps_to_stop >= -distance_to or self.direction == Direction.CW:
                    self._n = -steps_to_stop
            elif self._n < 0:
                if steps_to_stop < -distance_to and self.direction == Direction.CCW:
                    self._n = -self._n

        if self._n == 0:
            self._cn = self._c0
            self.direction = Direction.CW if distance_to > 0 else Direction.CCW
        else:
            self._cn = self._cn - (2.0 * self._cn) / (4.0 * self._n + 1)
            self._cn = max(self._cn, self._cmin)
        self._n += 1
        self.step_interval = int(self._cn)
        self._speed = 1_000_000.0 / self._cn
        if self.direction == Direction.CCW:
            self._speed = -self._speed
        return self.step_interval

    def run_speed(self) -> bool:
        """Take one step if one is due at the current constant speed; True if it stepped."""
        if not self.step_interval:
            return False
        now = self.clock.micros()
        if now - self._last_step_time < self.step_interval:
            return False
        if self.direction == Direction.CW:
            self._current_pos += 1
        else:
            self._current_pos -= 1
        self._step()
        self._last_step_time = now
        return True

    def run(self) -> bool:
        """Step if due, with acceleration; True while still moving towards the target."""
        if self.run_speed():
            self.compute_new_speed()
        return self._speed != 0.0 or self.distance_to_go() != 0

    def run_to_position(self) -> None:
        """Block until the target is reached and the motor has stopped."""
        while self.run():
            pass

    def run_speed_to_position(self) -> bool:
        """Run at constant speed towards the target unless already there; True if it stepped."""
        if self._target_pos == self._current_pos:
            return False
        self.direction = Direction.CW if self._target_pos > self._current_pos else Direction.CCW
        return self.run_speed()

    def run_to_new_position(self, position: int) -> None:
        """Set a new target and block until it is reached."""
        self.move_to(position)
        self.run_to_position()

    def stop(self) -> None:
        """Retarget so that the motor stops as quickly as the acceleration allows."""
        if self._speed != 0.0:
            steps_to_stop = int((self._speed * self._speed) / (2.0 * self._acceleration)) + 1
            self.move(steps_to_stop if self._speed > 0 else -steps_to_stop)

    def is_running(self) -> bool:
        """True if the motor is moving or not yet at its target."""
        return not (self._speed == 0.0 and self._target_pos == self._current_pos)

    def step_forward(self) -> int:
        """Take one clockwise step immediately and return the new position."""
        self._current_pos += 1
        self._step()
        self._last_step_time = self.clock.micros()
        return self._current_pos

    def step_backward(self) -> int:
        """Take one anticlockwise step immediately and return the new position."""
        self._current_pos -= 1
        self._step()
        self._last_step_time = self.clock.micros()
        return self._current_pos

    def _step(self) -> None:
        self.driver.step(self._current_pos, int(self.direction), self._speed)

    # Outputs

    def enable_outputs(self) -> None:
        """Enable the driver outputs."""
        self.driver.enable_outputs()

    def disable_outputs(self) -> None:
        """Disable the driver outputs to save power."""
        self.driver.disable_outputs()