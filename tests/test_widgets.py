from factories import to_text

from healthdash.messages import QUIT, ProgressUpdate, SpinnerTick, WidgetDone, WidgetError
from healthdash.widgets import DOT_FRAMES, Progress, Spinner


def test_spinner_tick_advances_frame_and_rearms():
    spinner = Spinner("Collecting")
    cmd = spinner.update(SpinnerTick(spinner.id))
    assert spinner.frame == 1
    assert callable(cmd)
    assert DOT_FRAMES[1] in to_text(spinner.view())


def test_spinner_ignores_ticks_for_other_spinners():
    spinner = Spinner("Collecting")
    other = Spinner("Other")
    assert spinner.update(SpinnerTick(other.id)) is None
    assert spinner.frame == 0


def test_spinner_done_is_terminal():
    spinner = Spinner("Collecting")
    assert spinner.update(WidgetDone()) is QUIT
    assert spinner.update(SpinnerTick(spinner.id)) is None
    assert spinner.frame == 0
    assert to_text(spinner.view()).strip() == "✓ Collecting"


def test_spinner_error_is_terminal_and_shows_cause():
    spinner = Spinner("Collecting")
    spinner.update(SpinnerTick(spinner.id))
    assert spinner.update(WidgetError(RuntimeError("boom"))) is QUIT
    assert spinner.update(SpinnerTick(spinner.id)) is None
    assert spinner.frame == 1
    assert to_text(spinner.view()).strip() == "✗ Collecting: boom"


def test_spinner_init_schedules_first_tick():
    spinner = Spinner("Collecting", interval=0.001)
    cmd = spinner.init()
    assert cmd() == SpinnerTick(spinner.id)


def test_progress_zero_total_reports_no_work():
    progress = Progress("Checks", 0)
    assert progress.total == 1
    assert "Checks (no work to do)" in to_text(progress.view())
    assert progress.update(ProgressUpdate(1)) is None
    assert progress.update(ProgressUpdate(5)) is None
    assert not progress.done
    assert "no work to do" in to_text(progress.view())


def test_progress_in_flight_shows_counter():
    progress = Progress("Checks", 5)
    assert progress.update(ProgressUpdate(2)) is None
    assert not progress.done
    assert progress.fraction == 0.4
    assert "2/5" in to_text(progress.view())


def test_progress_completes_when_current_reaches_total():
    progress = Progress("Checks", 5)
    assert progress.update(ProgressUpdate(5)) is QUIT
    assert progress.done
    assert to_text(progress.view()).strip() == "✓ Checks (5/5)"


def test_progress_overshoot_clamps_fraction():
    progress = Progress("Checks", 5)
    progress.current = 9
    assert progress.fraction == 1.0
    assert progress.update(ProgressUpdate(9)) is QUIT
    assert "(5/5)" in to_text(progress.view())


def test_progress_done_message_jumps_to_total():
    progress = Progress("Checks", 5)
    progress.update(ProgressUpdate(1))
    assert progress.update(WidgetDone()) is QUIT
    assert progress.current == 5
    assert progress.done


def test_progress_error_after_done_wins():
    progress = Progress("Checks", 5)
    progress.update(WidgetDone())
    progress.update(WidgetError(ValueError("disk vanished")))
    assert to_text(progress.view()).strip() == "✗ Checks: disk vanished"


def test_progress_error_independent_of_counter():
    progress = Progress("Checks", 5)
    progress.update(ProgressUpdate(3))
    assert progress.update(WidgetError(ValueError("bad"))) is QUIT
    assert progress.current == 3
    assert "✗ Checks: bad" in to_text(progress.view())


def test_progress_ignores_updates_after_done():
    progress = Progress("Checks", 5)
    progress.update(WidgetDone())
    assert progress.update(ProgressUpdate(2)) is None
    assert progress.current == 5
    assert to_text(progress.view()).strip() == "✓ Checks (5/5)"


def test_progress_ignores_updates_after_error():
    progress = Progress("Checks", 5)
    progress.update(ProgressUpdate(1))
    progress.update(WidgetError(ValueError("bad")))
    assert progress.update(ProgressUpdate(7)) is None
    assert progress.current == 1
    assert "✗ Checks: bad" in to_text(progress.view())


def test_progress_done_after_error_keeps_error():
    progress = Progress("Checks", 5)
    progress.update(ProgressUpdate(2))
    progress.update(WidgetError(ValueError("bad")))
    assert progress.update(WidgetDone()) is None
    assert progress.current == 2
    assert to_text(progress.view()).strip() == "✗ Checks: bad"
