import pytest

from flatter.context import ComputationContext
from flatter.monitor import Monitor, finalize, initialize


@pytest.fixture
def logged(tmp_path):
    path = tmp_path / "run.log"
    mon = Monitor()
    mon.set_logfile(path)
    yield mon, path
    mon.stop()


def read_lines(path):
    return path.read_text(encoding="utf-8").splitlines()


def test_get_instance_is_singleton(tmp_path):
    first = Monitor.get_instance()
    second = Monitor.get_instance()
    first.set_logfile(tmp_path / "single.log")
    try:
        assert second.has_logfile is True
    finally:
        second.stop()
    assert first.has_logfile is False


def test_set_logfile_writes_start_line(logged):
    mon, path = logged
    lines = read_lines(path)
    assert len(lines) == 1
    word, stamp = lines[0].split()
    assert word == "Start"
    assert int(stamp) > 0
    assert mon.has_logfile is True


def test_stop_closes_log(logged):
    mon, path = logged
    mon.stop()
    assert mon.has_logfile is False
    mon.profile_reset(7)
    assert len(read_lines(path)) == 1


def test_without_logfile_nothing_is_recorded(tmp_path):
    mon = Monitor()
    mon.log("abc %d\n", 1)
    mon.start_problem("p", "i", "h", "x", ComputationContext(1))
    mon.end_problem(ComputationContext(1))
    assert mon.has_logfile is False


def test_profile_reset_logged(logged):
    mon, path = logged
    mon.profile_reset(12)
    assert read_lines(path)[-1] == f"profile({12})"


def test_profile_update_logs_entries(logged):
    mon, path = logged
    mon.profile_reset(3)
    mon.profile_update([1.0, 2.5, 3.0], 0, 3, [0.5, 0.0, 1.0])
    line = read_lines(path)[-1]
    assert line.startswith("profile(0,3)[")
    entries = line.split("] ", 1)[1].split()
    assert len(entries) == 3
    values = [tuple(float(p) for p in e.split("+")) for e in entries]
    assert values == [(1.0, 0.5), (2.5, 0.0), (3.0, 1.0)]


def test_profile_update_skips_small_blocks(logged):
    mon, path = logged
    mon.profile_reset(100)
    before = len(read_lines(path))
    mon.profile_update([1.0, 2.0], 0, 2)
    assert len(read_lines(path)) == before


def test_precision_update(logged):
    mon, path = logged
    mon.precision_update(128, 0, 4)
    assert read_lines(path)[-1] == "Setting precision to 128"


def test_problem_registration_and_timing(logged):
    mon, path = logged
    cc = ComputationContext(2)
    mon.start_problem("Prob", "Impl", "n:2", "10 20", cc)
    mon.end_problem(cc)
    lines = read_lines(path)
    register = [ln for ln in lines if ln.startswith("R ")]
    timing = [ln for ln in lines if ln.startswith("T ")]
    assert len(register) == 1
    assert register[0].split(" ", 2)[2] == "|Prob|Impl|n:2|"
    label = register[0].split()[1]
    assert len(timing) == 1
    fields = timing[0].split()
    assert fields[1] == label
    assert fields[3] == "00000000"
    assert fields[5] == "2"
    assert "{10 20}" in timing[0]
    assert float(fields[-1]) >= 0.0


def test_label_registered_once_and_parent_reset(logged):
    mon, path = logged
    cc = ComputationContext(1)
    for _ in range(2):
        mon.start_problem("Prob", "Impl", "h", "p", cc)
        mon.end_problem(cc)
    lines = read_lines(path)
    assert sum(ln.startswith("R ") for ln in lines) == 1
    timing = [ln.split() for ln in lines if ln.startswith("T ")]
    assert all(t[3] == "00000000" for t in timing)


def test_end_without_start_raises(logged):
    mon, _ = logged
    with pytest.raises(RuntimeError):
        mon.end_problem(ComputationContext(1))


def test_initialize_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.log"
    monkeypatch.setenv("FLATTER_LOG", str(path))
    initialize()
    try:
        assert Monitor.get_instance().has_logfile is True
    finally:
        finalize()
    assert Monitor.get_instance().has_logfile is False
    assert read_lines(path)[0].startswith("Start ")


def test_initialize_empty_name_does_nothing(monkeypatch):
    monkeypatch.delenv("FLATTER_LOG", raising=False)
    finalize()
    initialize("")
    assert Monitor.get_instance().has_logfile is False