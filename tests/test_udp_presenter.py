import pytest

from countinggame.udp_presenter import UDPCountingPresenter, main


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def test_handle_datagram_records_count(capsys):
    presenter = UDPCountingPresenter(13, clock=FakeClock())
    assert presenter.handle_datagram(b"7") == 7
    assert presenter.current_count == 8
    assert presenter.monitor.total_counts == 1
    assert "\nCount 7 from student 7" in capsys.readouterr().out


def test_handle_datagram_ignores_garbage(capsys):
    presenter = UDPCountingPresenter(13, clock=FakeClock())
    assert presenter.handle_datagram(b"abc") is None
    assert presenter.current_count == 0
    assert presenter.monitor.total_counts == 0
    assert capsys.readouterr().out == ""


def test_handle_datagram_accepts_text():
    presenter = UDPCountingPresenter(13, clock=FakeClock())
    assert presenter.handle_datagram(" 12") == 12
    assert presenter.current_count == 13


def test_tick_quiet_within_timeout():
    clock = FakeClock()
    presenter = UDPCountingPresenter(13, clock=clock)
    assert presenter.tick(clock.now + 5.0) is None


def test_tick_reports_waiting_and_resets_timer(capsys):
    clock = FakeClock()
    presenter = UDPCountingPresenter(13, clock=clock)
    now = clock.now + 5.5
    message = presenter.tick(now)
    assert message == "\n[waiting] Waiting for count 0 from student 0 (timeout: 5.5s)"
    assert message in capsys.readouterr().out
    assert presenter.monitor.last_count_time == now
    assert presenter.tick(now + 0.1) is None


def test_fast_mode_throttles_and_fixes_precision(capsys):
    clock = FakeClock()
    presenter = UDPCountingPresenter(13, clock=clock)

    clock.now = 100.01
    presenter.handle_datagram(b"0")
    assert presenter.monitor.fast_mode is True
    assert "\nCount 0 from student 0" in capsys.readouterr().out

    clock.now = 100.02
    presenter.handle_datagram(b"1")
    assert capsys.readouterr().out == ""
    assert presenter.current_count == 2

    clock.now = 100.6
    presenter.handle_datagram(b"2")
    assert "\rCurrent count: 2 | Rate: " in capsys.readouterr().out

    message = presenter.tick(106.2)
    assert message.endswith("(timeout: 5.600s)")
    assert "Waiting for count 3 from student 3" in message


@pytest.mark.parametrize("argv", [[], ["1", "2"]])
def test_main_usage(argv, capsys):
    assert main(argv) == 1
    assert "Usage:" in capsys.readouterr().out


@pytest.mark.parametrize("value", ["0", "-1", "x"])
def test_main_rejects_non_positive(value, capsys):
    assert main([value]) == 1
    assert "number of students must be positive" in capsys.readouterr().out