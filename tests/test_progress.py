from countinggame.progress import ProgressMonitor


def test_initial_state_uses_start_time():
    monitor = ProgressMonitor(13, start=100.0)
    assert monitor.last_display == 100.0
    assert monitor.last_count_time == 100.0
    assert monitor.last_rate_reset == 100.0
    assert monitor.total_counts == 0
    assert monitor.fast_mode is False


def test_record_updates_counters_and_time():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(101.5)
    monitor.record(102.0)
    assert monitor.total_counts == 2
    assert monitor.counts_since_last_reset == 2
    assert monitor.last_count_time == 102.0


def test_slow_render_names_student():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(100.5)
    assert monitor.render(14, 100.5) == "\nCount 14 from student 1"
    assert monitor.fast_mode is False


def test_timeout_render_has_prefix():
    monitor = ProgressMonitor(5, start=100.0)
    text = monitor.render(7, 106.0, timeout=True)
    assert text == "\n[timeout] Count 7 from student 2"


def test_negative_count_student_keeps_sign():
    monitor = ProgressMonitor(3, start=100.0)
    assert monitor.render(-1, 101.0).endswith("from student -1")


def test_fast_mode_switch_and_rate_line():
    monitor = ProgressMonitor(13, start=100.0)
    for _ in range(100):
        monitor.record(100.25)
    monitor.render(1, 100.25)
    assert monitor.fast_mode is True
    monitor.record(100.5)
    text = monitor.render(5, 100.5)
    assert text.startswith("\rCurrent count: 5 | Rate: ")
    assert text.endswith(" counts/ms    ")
    assert monitor.counts_since_last_reset == 0
    assert monitor.last_rate_reset == 100.5


def test_should_display_throttles_in_fast_mode():
    monitor = ProgressMonitor(13, start=100.0)
    assert monitor.should_display(100.0)
    monitor.fast_mode = True
    monitor.last_display = 100.0
    assert not monitor.should_display(100.25)
    assert monitor.should_display(100.5)


def test_rate_reset_after_full_round():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(103.0)
    monitor.render(13, 103.0)
    assert monitor.counts_since_last_reset == 0
    assert monitor.last_rate_reset == 103.0


def test_no_rate_reset_mid_round():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(103.0)
    monitor.render(12, 103.0)
    assert monitor.counts_since_last_reset == 1
    assert monitor.last_rate_reset == 100.0


def test_no_rate_reset_within_two_seconds():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(101.0)
    monitor.render(13, 101.0)
    assert monitor.counts_since_last_reset == 1


def test_current_rate_zero_at_reset_instant():
    monitor = ProgressMonitor(13, start=100.0)
    monitor.record(100.0)
    assert monitor.current_rate(100.0) == 0.0
    assert monitor.current_rate(100.5) == 1 / 500