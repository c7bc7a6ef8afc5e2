"""Co-ordinated constant-speed motion of several steppers arriving together."""

from __future__ import annotations

from collections.abc import Sequence

from motionlink.stepper import AccelStepper

MAX_STEPPERS = 10


class TooManySteppersError(RuntimeError):
    """Raised when more steppers are added than a group can manage."""


class MultiStepper:
    """Moves a group of steppers so that they all reach their targets at the same time.

    Only constant-speed motion is used: each stepper gets its own speed, chosen
    so that the slowest-finishing move sets the pace for all of them.
    """

    def __init__(self) -> None:
        self._steppers: list[AccelStepper] = []

    @property
    def steppers(self) -> tuple[AccelStepper, ...]:
        """The managed steppers, in the order they were added."""
        return tuple(self._steppers)

    def __len__(self) -> int:
        return len(self._steppers)

    def add_stepper(self, stepper: AccelStepper) -> None:
        """Add a stepper to the group; at most ten can be managed."""
        if len(self._steppers) >= MAX_STEPPERS:
            raise TooManySteppersError(f"a group manages at most {MAX_STEPPERS} steppers")
        self._steppers.append(stepper)

    def move_to(self, absolute: Sequence[int]) -> None:
        """Set absolute targets, one per stepper in order of addition, and matching speeds."""
        if len(absolute) < len(self._steppers):
            raise ValueError(
                f"need {len(self._steppers)} target positions, got {len(absolute)}"
            )
        targets = [int(position) for position in absolute[: len(self._steppers)]]

        longest_time = 0.0
        for stepper, target in zip(self._steppers, targets):
            distance = target - stepper.current_position()
            longest_time = max(longest_time, abs(distance) / stepper.max_speed)

        if longest_time > 0.0:
            for stepper, target in zip(self._steppers, targets):
                distance = target - stepper.current_position()
                stepper.move_to(target)
                stepper.speed = distance / longest_time

    def run(self) -> bool:
        """Step every stepper that has not reached its target; True if any is still moving."""
        moving = False
        for stepper in self._steppers:
            if stepper.distance_to_go() != 0:
                stepper.run_speed()
                moving = True
        return moving

    def run_speed_to_position(self) -> None:
        """Block until every stepper has reached its target."""
        while self.run():
            pass