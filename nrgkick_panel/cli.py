# nrgkick_panel/cli.py
import argparse


def _current_limit(raw: str) -> int:
    value = int(raw)
    if not 6 <= value <= 32:
        raise argparse.ArgumentTypeError("current limit must be between 6 and 32 A")
    return value


def _add_device_options(parser):
    parser.add_argument("--ip", help="Charger IP address (overrides NRGKICK_IP)")
    parser.add_argument("--username", help="Basic auth username")
    parser.add_argument("--password", help="Basic auth password")
    parser.add_argument(
        "--proxy-url",
        help="Talk to the charger through a running proxy (e.g. http://localhost:3000)",
    )
    parser.add_argument(
        "--query",
        help="URL-style query string with ip/username/password defaults (e.g. 'ip=192.168.1.100')",
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="nrgkick-panel",
        description="NRGKick EV charger monitor and control panel"
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress log output on stdout"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of human-readable text"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # Proxy server
    cmd_serve = sub.add_parser("serve", help="Run the same-origin API proxy")
    cmd_serve.add_argument("--host", help="Override [proxy] host")
    cmd_serve.add_argument("--port", type=int, help="Override [proxy] port / PORT")
    cmd_serve.add_argument(
        "--mode",
        choices=("fixed", "path"),
        help="fixed: /api/<endpoint> to the configured IP; path: /api/<ip>/<endpoint>",
    )

    # One-shot status read
    cmd_status = sub.add_parser("status", help="Connect once and print the charger status")
    _add_device_options(cmd_status)

    # Continuous polling display
    cmd_panel = sub.add_parser("panel", help="Connect and keep polling the charger")
    _add_device_options(cmd_panel)
    cmd_panel.add_argument(
        "--show-connection",
        action="store_true",
        help="Print the connection details even when the address is pre-configured",
    )
    cmd_panel.add_argument(
        "--duration",
        type=float,
        help="Stop after this many seconds (default: run until interrupted)",
    )

    # Control commands
    cmd_control = sub.add_parser("command", help="Send a control command to the charger")
    _add_device_options(cmd_control)
    actions = cmd_control.add_subparsers(dest="action", required=True)
    actions.add_parser("pause", help="Pause charging (charge_pause=1)")
    actions.add_parser("resume", help="Resume charging (charge_pause=0)")
    cmd_current = actions.add_parser("current", help="Set the current limit (current_set)")
    cmd_current.add_argument("amps", type=_current_limit, help="Current limit in A (6-32)")
    cmd_phases = actions.add_parser("phases", help="Set the phase count (phase_count)")
    cmd_phases.add_argument("phases", type=int, choices=(1, 2, 3), help="Number of phases")

    return parser
