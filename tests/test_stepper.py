import pytest

from motionlink.drive import FunctionDriver, PinDriver
from motionlink.hal import Direction, Level, ManualClock, MotorInterface, PinBus
from motionlink.stepper import AccelStepper


class TickingClock:
    """A clock that moves forward a fixed amount on every reading."""

    def __init__(self, tick: int = 20) -> None:
        self.now = 0
        self.tick = tick

    def micros(self) -> int:
        self.now += self.tick
        return self.now

    def millis(self) -> int:
        return self.now // 1000

    def delay_us(self, microseconds: int) -> None:
        self.now += microseconds


class Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def forward(self) -> None:
        self.calls.append("f")

    def backward(self) -> None:
        self.calls.append("b")


def make_function_stepper(clock=None):
    rec = Recorder()
    stepper = AccelStepper(FunctionDriver(rec.forward, rec.backward), clock or ManualClock())
    return stepper, rec


def test_defaults():
    stepper, _ = make_function_stepper()
    assert stepper.max_speed == 1.0
    assert stepper.acceleration == 1.0
    assert stepper.speed == 0.0
    assert stepper.current_position() == 0
    assert stepper.target_position() == 0
    assert not stepper.is_running()


def test_move_to_and_move():
    stepper, _ = make_function_stepper()
    stepper.move_to(25)
    assert stepper.target_position() == 25
    assert stepper.distance_to_go() == 25
    stepper.move(-5)
    assert stepper.target_position() == -5
    assert stepper.is_running()


def test_move_to_sets_direction_and_speed():
    stepper, _ = make_function_stepper()
    stepper.move_to(-10)
    assert stepper.direction == Direction.CCW
    assert stepper.speed < 0
    assert stepper.step_interval > 0


def test_speed_is_clamped_to_max_speed():
    stepper, _ = make_function_stepper()
    stepper.max_speed = 100
    stepper.speed = 500
    assert stepper.speed == 100
    stepper.speed = -500
    assert stepper.speed == -100


def test_negative_max_speed_and_acceleration_made_positive():
    stepper, _ = make_function_stepper()
    stepper.max_speed = -50
    stepper.acceleration = -20
    assert stepper.max_speed == 50
    assert stepper.acceleration == 20


def test_zero_acceleration_ignored():
    stepper, _ = make_function_stepper()
    stepper.acceleration = 30
    stepper.acceleration = 0
    assert stepper.acceleration == 30


def test_zero_max_speed_rejected():
    stepper, _ = make_function_stepper()
    stepper.max_speed = 50
    with pytest.raises(ValueError):
        stepper.max_speed = 0
    assert stepper.max_speed == 50


def test_run_speed_steps_when_due():
    clock = ManualClock()
    stepper, rec = make_function_stepper(clock)
    stepper.max_speed = 100
    stepper.speed = 10
    assert stepper.step_interval == 100_000
    assert stepper.run_speed() is False
    clock.advance(99_999)
    assert stepper.run_speed() is False
    clock.advance(1)
    assert stepper.run_speed() is True
    assert stepper.current_position() == 1
    assert rec.calls == ["f"]


def test_run_speed_backward():
    clock = ManualClock()
    stepper, rec = make_function_stepper(clock)
    stepper.max_speed = 100
    stepper.speed = -10
    clock.advance(stepper.step_interval)
    assert stepper.run_speed() is True
    assert stepper.current_position() == -1
    assert rec.calls == ["b"]


def test_run_speed_without_speed_does_nothing():
    clock = ManualClock()
    stepper, rec = make_function_stepper(clock)
    clock.advance(10_000_000)
    assert stepper.run_speed() is False
    assert stepper.current_position() == 0
    assert rec.calls == []


def test_run_to_new_position_reaches_target_and_stops():
    stepper, rec = make_function_stepper(TickingClock())
    stepper.max_speed = 1000
    stepper.acceleration = 2000
    stepper.run_to_new_position(100)
    assert stepper.current_position() == 100
    assert stepper.speed == 0.0
    assert not stepper.is_running()
    assert rec.calls.count("f") == 100


def test_round_trip_back_to_origin():
    stepper, _ = make_function_stepper(TickingClock())
    stepper.max_speed = 1000
    stepper.acceleration = 2000
    stepper.run_to_new_position(60)
    stepper.run_to_new_position(0)
    assert stepper.current_position() == 0
    assert not stepper.is_running()


def test_run_respects_max_speed_and_does_not_overshoot():
    clock = ManualClock()
    stepper, _ = make_function_stepper(clock)
    stepper.max_speed = 500
    stepper.acceleration = 1000
    stepper.move_to(200)
    positions = []
    while stepper.run():
        assert abs(stepper.speed) <= stepper.max_speed + 1e-6
        positions.append(stepper.current_position())
        clock.advance(100)
    assert max(positions) <= 200
    assert positions == sorted(positions)
    assert stepper.current_position() == 200


def test_stop_shortens_move():
    clock = ManualClock()
    stepper, _ = make_function_stepper(clock)
    stepper.max_speed = 500
    stepper.acceleration = 1000
    stepper.move_to(10_000)
    while abs(stepper.speed) < 400:
        stepper.run()
        clock.advance(50)
    stepper.stop()
    target = stepper.target_position()
    assert stepper.current_position() < target < 10_000
    while stepper.run():
        clock.advance(50)
    assert stepper.current_position() == target


def test_stop_at_rest_keeps_target():
    stepper, _ = make_function_stepper()
    stepper.stop()
    assert stepper.target_position() == 0


def test_reset_position_stops_motor():
    stepper, _ = make_function_stepper()
    stepper.move_to(50)
    stepper.reset_position(7)
    assert stepper.current_position() == 7
    assert stepper.target_position() == 7
    assert stepper.speed == 0.0
    assert stepper.step_interval == 0
    assert not stepper.is_running()


def test_run_speed_to_position_uses_target_direction():
    clock = ManualClock()
    stepper, rec = make_function_stepper(clock)
    stepper.max_speed = 100
    stepper.move_to(-5)
    stepper.speed = 10
    clock.advance(1_000_000)
    assert stepper.run_speed_to_position() is True
    assert stepper.current_position() == -1


def test_run_speed_to_position_at_target():
    clock = ManualClock()
    stepper, _ = make_function_stepper(clock)
    stepper.max_speed = 100
    stepper.speed = 10
    clock.advance(1_000_000)
    assert stepper.run_speed_to_position() is False
    assert stepper.current_position() == 0


def test_compute_new_speed_at_target_stops():
    stepper, _ = make_function_stepper()
    assert stepper.compute_new_speed() == 0
    assert stepper.speed == 0.0


def test_compute_new_speed_returns_interval():
    stepper, _ = make_function_stepper()
    stepper.move_to(10)
    interval = stepper.compute_new_speed()
    assert interval == stepper.step_interval
    assert interval > 0


def test_step_forward_and_backward():
    stepper, rec = make_function_stepper()
    assert stepper.step_forward() == 1
    assert stepper.step_forward() == 2
    assert stepper.step_backward() == 1
    assert stepper.current_position() == 1
    assert len(rec.calls) == 3


def test_step_forward_drives_full4wire_phase():
    bus = PinBus()
    clock = ManualClock()
    driver = PinDriver(MotorInterface.FULL4WIRE, (2, 3, 4, 5), bus, clock)
    stepper = AccelStepper(driver, clock)
    stepper.step_forward()
    levels = [bus.read(pin) for pin in (2, 3, 4, 5)]
    assert levels == [Level.LOW, Level.HIGH, Level.HIGH, Level.LOW]


def test_enable_and_disable_outputs():
    bus = PinBus()
    clock = ManualClock()
    driver = PinDriver(MotorInterface.FULL2WIRE, (8, 9), bus, clock, enable=False)
    stepper = AccelStepper(driver, clock)
    assert not bus.is_output(8)
    stepper.enable_outputs()
    assert bus.is_output(8) and bus.is_output(9)
    stepper.step_forward()
    stepper.disable_outputs()
    assert bus.read(8) == Level.LOW
    assert bus.read(9) == Level.LOW