import pytest

from nrgkick_panel.cli import build_parser


def test_serve_options():
    args = build_parser().parse_args(["serve", "--port", "8080", "--mode", "path"])
    assert args.command == "serve"
    assert args.port == 8080
    assert args.mode == "path"


def test_command_current_within_range():
    args = build_parser().parse_args(["--json", "command", "--ip", "10.0.0.5", "current", "16"])
    assert args.json
    assert args.action == "current"
    assert args.amps == 16
    assert args.ip == "10.0.0.5"


@pytest.mark.parametrize("amps", ["5", "33"])
def test_command_current_out_of_range_rejected(amps):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["command", "current", amps])


def test_phase_choices():
    assert build_parser().parse_args(["command", "phases", "3"]).phases == 3
    with pytest.raises(SystemExit):
        build_parser().parse_args(["command", "phases", "4"])


def test_panel_show_connection_flag():
    args = build_parser().parse_args(["panel", "--proxy-url", "http://localhost:3000", "--show-connection"])
    assert args.show_connection
    assert args.proxy_url == "http://localhost:3000"
