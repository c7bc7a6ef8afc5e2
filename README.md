# motionlink

Stepper motor motion control and handling of the iBus radio-control
receiver protocol. Nothing here needs real hardware. Time comes from a
clock object, pin writes go to a recording pin bus, and serial bytes go
through an in-memory stream. A whole motion profile or protocol exchange
can therefore be simulated and checked.

## Modules

### `motionlink.hal`

- `MotorInterface`: the wiring types `FUNCTION`, `DRIVER`, `FULL2WIRE`,
  `FULL3WIRE`, `FULL4WIRE`, `HALF3WIRE` and `HALF4WIRE`. `pin_count()`
  returns how many motor pins each type drives.
- `Direction` (`CCW`, `CW`) and `Level` (`LOW`, `HIGH`).
- `Clock`: a microsecond time source on the system's performance counter,
  with `micros()`, `millis()` and `delay_us()`. `delay_us()` busy-waits.
- `ManualClock`: a clock that only moves when `advance()` is called.
  Its `delay_us()` advances it instantly.
- `PinBus`: records which pins are outputs (`set_output`, `is_output`) and
  the last level written to each pin (`write`, `read`). Every write is
  also appended to its `history` list.

### `motionlink.drive`

- `PinDriver(interface, pins, bus, clock, enable)` turns a step position
  into the coil pattern for the wiring type. For `DRIVER` it produces a
  direction and step pulse instead, and the pulse lasts `min_pulse_width`
  microseconds. Enable pins are supported through `attach_enable_pin()`.
  The line polarity is set with `set_pins_inverted()` for step, direction
  and enable, or with `set_all_pins_inverted()` for four motor pins and
  enable. `enable_outputs()` and `disable_outputs()` switch the outputs.
- `FunctionDriver(forward, backward)` calls `forward()` when the speed is
  positive and `backward()` otherwise.

### `motionlink.stepper`

`AccelStepper(driver, clock)` moves a motor towards a target with a
trapezoidal speed profile.

- Targets: `move_to()`, `move()`, `target_position()`,
  `current_position()`, `distance_to_go()` and `reset_position()`.
  `reset_position()` also stops the motor.
- Settings are properties. `max_speed` defaults to 1.0, and setting it to
  zero raises `ValueError`. `acceleration` defaults to 1.0, and setting it
  to zero is ignored. `speed` is clamped to ±`max_speed`. Negative values
  given for `max_speed` or `acceleration` are taken as positive.
- Accelerated motion: `run()` takes at most one step per call and returns
  True while the motor is still moving. `run_to_position()` and
  `run_to_new_position()` block until the move is done. `stop()` retargets
  the motor so that it stops as quickly as the acceleration allows.
  `is_running()` reports whether it is moving.
- Constant speed: `run_speed()` and `run_speed_to_position()`. The
  `move_to()` call recomputes the speed, so set `speed` after it.
- `step_forward()` and `step_backward()` step at once.
  `enable_outputs()` and `disable_outputs()` are passed on to the driver.

### `motionlink.multi_stepper`

`MultiStepper` drives up to ten `AccelStepper`s at constant speeds, chosen
so that they all reach their targets together. `add_stepper()` raises
`TooManySteppersError` for an eleventh stepper. `move_to()` takes one
target per stepper, in the order the steppers were added, and raises
`ValueError` if too few are given. `run()` steps whichever steppers are due,
and `run_speed_to_position()` blocks until all have arrived.

### `motionlink.ibus`

`IBus(stream, clock)` decodes frames from a `ByteStream`. A frame is only
recognised after at least 3 ms of silence on the line.

- Servo frames (command 0x40) update 14 channels, which are read with
  `read_channel()`. A channel number outside 0..13 gives 0.
  `frame_count` counts the valid frames.
- Telemetry: `add_sensor(sensor_type, length)` registers a sensor and
  returns its address. The length is 2 or 4; any other value is taken as
  2. At most ten sensors can be registered. `set_sensor_measurement()`
  sets a sensor's value. Discovery, type and value polls are answered on
  the stream and are counted in `poll_count` and `value_count`.
- `SensorType` names common sensor kinds, and `Sensor` holds a sensor's
  type, length and value.

## Installation

```
pip install .
```

## Examples

A simulated stepper move:

```python
from motionlink.hal import ManualClock, PinBus, MotorInterface
from motionlink.drive import PinDriver
from motionlink.stepper import AccelStepper

clock = ManualClock(0)
bus = PinBus()
driver = PinDriver(MotorInterface.FULL4WIRE, (2, 3, 4, 5), bus, clock, True)
motor = AccelStepper(driver, clock)
motor.max_speed = 500
motor.acceleration = 1000

motor.move_to(200)
while motor.run():
    clock.advance(100)

print(motor.current_position())  # 200
```

With a `ManualClock`, time only moves when you advance it. The blocking
`run_to_position()` is therefore meant for use with the real `Clock`.

Decoding a servo frame and answering a telemetry poll:

```python
from motionlink.hal import ManualClock
from motionlink.ibus import ByteStream, IBus, SensorType

clock = ManualClock(0)
stream = ByteStream()
receiver = IBus(stream, clock)

frame = bytes.fromhex(
    "2040db05dc055405dc05e803d007d205e803dc05dc05dc05dc05dc05dc05daf3"
)
clock.advance(10_000)
stream.feed(frame)
receiver.loop()
print(receiver.read_channel(0))  # 1499

address = receiver.add_sensor(SensorType.TEMPERATURE)  # 1
receiver.set_sensor_measurement(address, 400)
clock.advance(10_000)
stream.feed(bytes.fromhex("04a15aff"))  # value poll for sensor 1
receiver.loop()
print(stream.take_output().hex())  # 06a19001c7fe
```

## What it does not do

No real serial ports or GPIO pins are accessed. `PinBus` only records
writes, and `ByteStream` only holds bytes in memory, so connecting to
hardware means supplying objects with the same methods. Nothing runs in the
background either: `AccelStepper.run()`, `MultiStepper.run()` and
`IBus.loop()` must be called by your own loop.

## Running the tests

```
pip install .[test]
pytest
```