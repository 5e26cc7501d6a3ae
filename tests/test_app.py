import pytest
from factories import make_checks, make_snapshot, to_text

from healthdash.app import HEADER_FOOTER_RESERVE, DashboardModel
from healthdash.flake import FlakeError, FlakeOutput
from healthdash.messages import (
    QUIT,
    Batch,
    HealthReady,
    InfoReady,
    KeyInput,
    LoadFailed,
    Resize,
    Screen,
    flatten,
)
from healthdash.system_state import CollectionError


class FakeCollaborators:
    def __init__(self, snapshot=None, checks=None, info_error=None, flake_outputs=None, flake_error=None):
        self.snapshot = snapshot or make_snapshot()
        self.checks = checks if checks is not None else make_checks()
        self.info_error = info_error
        self.flake_outputs = flake_outputs or []
        self.flake_error = flake_error
        self.calls = []

    def fetch_info(self, config):
        self.calls.append("info")
        if self.info_error:
            raise self.info_error
        return self.snapshot

    def run_diagnostics(self, snapshot):
        self.calls.append("diagnostics")
        assert snapshot is self.snapshot
        return self.checks

    def fetch_flake(self, path, timeout):
        self.calls.append(("flake", path))
        if self.flake_error:
            raise self.flake_error
        return self.flake_outputs


@pytest.fixture
def fakes():
    return FakeCollaborators()


@pytest.fixture
def model(fakes):
    return DashboardModel(
        fetch_info=fakes.fetch_info, run_diagnostics=fakes.run_diagnostics, fetch_flake=fakes.fetch_flake
    )


def press(model, *keys):
    cmd = None
    for key in keys:
        cmd = model.update(KeyInput(key))
    return cmd


def plain(model, width=100):
    return to_text(model.view(), width=width)


def test_initial_state(model):
    assert model.screen is Screen.DASHBOARD
    assert (model.width, model.height) == (0, 0)
    assert model.error is None
    assert not model.quitting


def test_init_loads_health_and_info(model, fakes):
    cmd = model.init()
    assert isinstance(cmd, Batch)
    messages = [inner() for inner in flatten(cmd)]
    assert [type(msg) for msg in messages] == [HealthReady, InfoReady]
    assert fakes.calls == ["info", "diagnostics", "info"]


@pytest.mark.parametrize(
    "keys, expected",
    [
        (["1"], Screen.DASHBOARD),
        (["2"], Screen.HEALTH),
        (["3"], Screen.INFO),
        (["4"], Screen.FLAKE),
        (["2", "4", "3"], Screen.INFO),
        (["3", "1"], Screen.DASHBOARD),
        (["?"], Screen.HELP),
        (["?", "?"], Screen.DASHBOARD),
        (["3", "?", "?"], Screen.DASHBOARD),
        (["4", "?", "2"], Screen.HEALTH),
    ],
)
def test_navigation_lands_on_last_target(model, keys, expected):
    press(model, *keys)
    assert model.screen is expected


def test_help_toggle_does_not_restore_previous_screen(model):
    press(model, "2", "?")
    assert model.screen is Screen.HELP
    press(model, "?")
    assert model.screen is Screen.DASHBOARD


def test_health_and_info_navigation_emit_loads(model):
    health_cmd = press(model, "2")
    assert isinstance(health_cmd(), HealthReady)
    info_cmd = press(model, "3")
    assert isinstance(info_cmd(), InfoReady)


def test_dashboard_and_flake_navigation_emit_nothing(model, fakes):
    assert press(model, "1") is None
    assert press(model, "4") is None
    assert fakes.calls == []


@pytest.mark.parametrize("screen_key", ["1", "?"])
def test_refresh_without_data_source_is_noop(model, screen_key):
    press(model, screen_key)
    assert press(model, "r") is None


def test_refresh_reloads_active_screen(model, fakes):
    fakes.flake_outputs = [FlakeOutput("packages.x86_64-linux.default", "derivation", "hello")]
    press(model, "4")
    cmd = press(model, "r")
    assert model.flake.loading
    msg = cmd()
    assert fakes.calls == [("flake", ".")]
    model.update(msg)
    assert model.flake.outputs == fakes.flake_outputs
    assert not model.flake.loading


def test_resize_updates_every_screen(model):
    press(model, "3")
    model.update(Resize(120, 40))
    assert (model.width, model.height) == (120, 40)
    for screen in (model.dashboard, model.health, model.info, model.flake, model.help):
        assert (screen.width, screen.height) == (120, 40 - HEADER_FOOTER_RESERVE)


def test_resize_smaller_than_frame_clamps_to_zero(model):
    model.update(Resize(30, 2))
    assert model.health.height == 0


def test_health_data_lands_while_info_is_active(model, fakes):
    cmd = press(model, "2")
    press(model, "3")
    model.update(cmd())
    assert model.screen is Screen.INFO
    assert model.health.checks == fakes.checks
    assert not model.health.loading
    press(model, "2")
    output = plain(model)
    assert "Loading health checks" not in output
    assert "Disk space" in output


def test_info_data_lands_regardless_of_active_screen(model, fakes):
    model.update(InfoReady(fakes.snapshot))
    assert model.info.snapshot is fakes.snapshot
    assert not model.info.loading
    press(model, "3")
    assert "devbox" in plain(model)


def test_late_results_apply_in_arrival_order(model):
    first = make_checks()[:1]
    second = make_checks()
    model.update(HealthReady(tuple(second)))
    model.update(HealthReady(tuple(first)))
    assert model.health.checks == first


def test_load_failure_shows_in_footer_and_keeps_data(fakes):
    fakes.info_error = CollectionError("psutil exploded")
    model = DashboardModel(
        fetch_info=fakes.fetch_info, run_diagnostics=fakes.run_diagnostics, fetch_flake=fakes.fetch_flake
    )
    model.update(HealthReady(tuple(fakes.checks)))
    cmd = press(model, "2")
    msg = cmd()
    assert isinstance(msg, LoadFailed)
    assert msg.source is Screen.HEALTH
    model.update(msg)
    assert model.screen is Screen.HEALTH
    assert model.error is msg.error
    assert model.health.checks == fakes.checks
    assert not model.health.loading
    assert "Error: psutil exploded" in plain(model)


def test_flake_failure_clears_loading(model, fakes):
    fakes.flake_error = FlakeError("`nix` was not found on PATH")
    press(model, "4")
    model.update(press(model, "r")())
    assert not model.flake.loading
    assert "nix" in str(model.error)


def test_unexpected_load_error_clears_loading(model, fakes):
    fakes.info_error = RuntimeError("kaboom")
    msg = press(model, "2")()
    assert isinstance(msg, LoadFailed)
    assert msg.source is Screen.HEALTH
    model.update(msg)
    assert not model.health.loading
    output = plain(model)
    assert "Loading health checks" not in output
    assert "Error: kaboom" in output


def test_quit_is_terminal(model):
    assert press(model, "q") is QUIT
    assert model.quitting
    assert press(model, "2") is None
    assert model.screen is Screen.DASHBOARD
    assert model.view() == ""


def test_ctrl_c_quits(model):
    assert press(model, "ctrl+c") is QUIT
    assert model.quitting


def test_unhandled_keys_reach_active_screen(model, fakes):
    model.update(HealthReady(tuple(fakes.checks)))
    press(model, "2")
    assert press(model, "j") is None
    assert model.health.offset == 1
    press(model, "k")
    assert model.health.offset == 0


def test_header_highlights_active_screen(model):
    press(model, "3")
    output = plain(model)
    assert "healthdash" in output
    assert "Info" in output
    assert "1-4: navigate" in output
