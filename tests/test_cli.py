import matplotlib

matplotlib.use("Agg")

from comchan import cli  # noqa: E402
from comchan.config.runtime import ComChanConfig  # noqa: E402
from comchan.tools import live_chart  # noqa: E402

from conftest import FakePort  # noqa: E402


def _args(*argv):
    return cli._build_arg_parser().parse_args(list(argv))


def test_flags_override_file_settings() -> None:
    file_cfg = ComChanConfig(port="/dev/ttyS1", baud=9600, plot_points=50)
    cfg = cli.merge_config(file_cfg, _args("--baud", "115200", "--plot-points", "20"))
    assert cfg.port == "/dev/ttyS1"
    assert cfg.baud == 115200
    assert cfg.plot_points == 20


def test_plot_flag_is_or_combined_with_file() -> None:
    assert cli.merge_config(ComChanConfig(plot=True), _args()).plot
    assert cli.merge_config(ComChanConfig(), _args("--plot")).plot
    assert not cli.merge_config(ComChanConfig(), _args()).plot


def test_auto_flag_selects_detection() -> None:
    cfg = cli.merge_config(ComChanConfig(port="/dev/ttyS1"), _args("--auto"))
    assert cfg.port == "auto"


def test_unset_booleans_keep_file_values() -> None:
    cfg = cli.merge_config(ComChanConfig(verbose=True, explain=True), _args())
    assert cfg.verbose and cfg.explain


def test_resolve_port_auto_without_devices(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "find_usb_port", lambda: None)
    assert cli.resolve_port(ComChanConfig(port="auto")) is None
    assert "No USB serial ports found" in capsys.readouterr().err


def test_main_exits_nonzero_when_no_port_detected(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(cli, "find_usb_port", lambda: None)
    assert cli.main(["--config", str(tmp_path / "none.yaml"), "--auto"]) == 1


def test_generate_config(tmp_path, capsys) -> None:
    target = tmp_path / "comchan.yaml"
    assert cli.main(["--generate-config", "--config", str(target)]) == 0
    assert target.exists()
    assert str(target) in capsys.readouterr().out


def test_list_ports(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setattr(cli, "describe_ports", lambda: ["All Available Serial Ports:"])
    assert cli.main(["--list-ports", "--config", str(tmp_path / "none.yaml")]) == 0
    assert "All Available Serial Ports:" in capsys.readouterr().out


def test_invalid_link_setting_reports_configuration_error(tmp_path, capsys) -> None:
    argv = ["--port", "/dev/null", "--parity", "mark", "--config", str(tmp_path / "x.yaml")]
    assert cli.main(argv) == 1
    assert "Configuration error" in capsys.readouterr().err


def _unwritable_log(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    return str(blocker / "serial.log")


def test_unwritable_log_closes_port_and_exits_nonzero(monkeypatch, tmp_path, capsys) -> None:
    port = FakePort()
    monkeypatch.setattr(cli, "open_port", lambda cfg, name: port)
    argv = [
        "--port", "/dev/fake",
        "--log", _unwritable_log(tmp_path),
        "--config", str(tmp_path / "none.yaml"),
    ]

    assert cli.main(argv) == 1
    assert port.closed
    assert "Error:" in capsys.readouterr().err


class _FakeChart:
    instances = []

    def __init__(self, title=""):
        self.closed = False
        _FakeChart.instances.append(self)

    def close(self):
        self.closed = True


def test_plot_mode_closes_port_and_chart_on_log_failure(monkeypatch, tmp_path) -> None:
    port = FakePort()
    monkeypatch.setattr(cli, "open_port", lambda cfg, name: port)
    monkeypatch.setattr(live_chart, "LiveChart", _FakeChart)
    _FakeChart.instances.clear()
    argv = [
        "--plot",
        "--port", "/dev/fake",
        "--log", _unwritable_log(tmp_path),
        "--config", str(tmp_path / "none.yaml"),
    ]

    assert cli.main(argv) == 1
    assert port.closed
    assert [c.closed for c in _FakeChart.instances] == [True]


def test_plot_mode_closes_port_when_chart_fails(monkeypatch, tmp_path) -> None:
    port = FakePort()
    monkeypatch.setattr(cli, "open_port", lambda cfg, name: port)

    def _broken_chart(title=""):
        raise OSError("no display")

    monkeypatch.setattr(live_chart, "LiveChart", _broken_chart)
    argv = ["--plot", "--port", "/dev/fake", "--config", str(tmp_path / "none.yaml")]

    assert cli.main(argv) == 1
    assert port.closed
