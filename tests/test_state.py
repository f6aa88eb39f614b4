"""Tests for controller state helpers."""

from __future__ import annotations

from simple_pendant.state import (
    ControllerState,
    MachineSnapshot,
    MachineStatus,
    Position,
    adjust_spindle,
    apply_selectors,
    apply_status,
    display_positions,
    set_jog_mode,
    toggle_coordinate_system,
)


class TestControllerState:
    def test_defaults(self) -> None:
        state = ControllerState()
        assert state.axis == "OFF"
        assert state.jog_mode == "continuous"
        assert state.coordinate_system == "machine"
        assert state.distance_mode == "absolute"
        assert state.step_size == 0.001
        assert state.velocity_fraction == 0.02

    def test_velocity_positions_have_no_step(self) -> None:
        state = ControllerState(feed_step=27)
        assert state.step_size is None
        assert state.velocity_fraction == 1.0

    def test_selectors(self) -> None:
        state = ControllerState()
        apply_selectors(state, 18, 16)
        assert (state.axis, state.feed_step) == ("Y", 16)
        apply_selectors(state, 0, 0)
        assert (state.axis, state.feed_step) == ("Y", 16)
        apply_selectors(state, 6, 13)
        assert (state.axis, state.feed_step) == ("OFF", 13)

    def test_jog_mode(self) -> None:
        state = ControllerState()
        assert set_jog_mode(state, "continuous") is False
        assert set_jog_mode(state, "step") is True
        assert state.jog_mode == "step"

    def test_toggle_coordinates(self) -> None:
        state = ControllerState()
        assert toggle_coordinate_system(state) == "work"
        assert toggle_coordinate_system(state) == "machine"


class TestApplyStatus:
    def test_state_transitions(self) -> None:
        state = ControllerState()
        assert apply_status(state, MachineStatus(state="Run", feed=850.7)) is True
        assert state.machine_state == "run"
        assert state.feed_rate == 850
        assert apply_status(state, MachineStatus(state="Run")) is False
        assert apply_status(state, MachineStatus(state="Hold")) is True
        assert state.machine_state == "hold"
        assert apply_status(state, MachineStatus(state="Idle")) is True
        assert state.machine_state == "idle"

    def test_other_states_keep_previous(self) -> None:
        state = ControllerState(machine_state="run")
        assert apply_status(state, MachineStatus(state="Alarm")) is False
        assert apply_status(state, MachineStatus(state="Jog")) is False
        assert state.machine_state == "run"


class TestSpindleTarget:
    def test_steps_and_clamps(self) -> None:
        state = ControllerState(spindle_target=24800)
        assert adjust_spindle(state, 1) == 25000
        assert adjust_spindle(state, 1) == 25000
        state.spindle_target = 5200
        assert adjust_spindle(state, -1) == 5000

    def test_custom_bounds(self) -> None:
        state = ControllerState(spindle_target=1000)
        assert adjust_spindle(state, 1, min_rpm=0, max_rpm=2000, step=250) == 1250


class TestDisplayPositions:
    STATUS = MachineStatus(
        mpos=Position(1.0, 2.0, 3.0, 4.0),
        wpos=Position(-1.0, -2.0, -3.0, -4.0),
        axis_count=3,
    )

    def test_machine_frame(self) -> None:
        assert display_positions(ControllerState(), self.STATUS) == (1.0, 2.0, 3.0)

    def test_work_frame(self) -> None:
        state = ControllerState(coordinate_system="work")
        assert display_positions(state, self.STATUS) == (-1.0, -2.0, -3.0)

    def test_four_axes(self) -> None:
        status = MachineStatus(mpos=Position(1.0, 2.0, 3.0, 4.0), axis_count=4)
        assert display_positions(ControllerState(), status) == (1.0, 2.0, 3.0, 4.0)


class TestSnapshot:
    def test_updates_return_new_snapshots(self) -> None:
        snap = MachineSnapshot()
        updated = snap.with_settings({"X": 3000.0}, {"X": 500.0})
        assert snap.max_rate == {}
        assert updated.max_rate == {"X": 3000.0}

        merged = updated.with_settings(accel={"Y": 250.0})
        assert merged.accel == {"X": 500.0, "Y": 250.0}
        assert merged.max_rate == {"X": 3000.0}

        status = MachineStatus(state="Idle")
        assert merged.with_status(status).status is status
        assert merged.status == MachineStatus()
