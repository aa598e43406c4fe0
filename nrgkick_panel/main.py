# nrgkick_panel/main.py

import asyncio
import logging
import sys

from .cli import build_parser
from .config import Config, parse_query, resolve_device_config, show_connection_panel
from .logging import ConsoleLog, StructuredLog
from .services.device_client import DeviceClient
from .services.output_formatter import emit_human, emit_json
from .services.session import PanelSession
from .util.logging import quiet_http_loggers
from .web import create_app


def _emitter(args):
    return emit_json if args.json else emit_human


def _user_credentials(args) -> tuple[str | None, str | None]:
    """Credentials typed by the user (flags, then query string); never the server's own."""
    query = parse_query(getattr(args, "query", None))
    username = args.username or query.get("username")
    password = args.password or query.get("password")
    return username, password


def build_session(args, app_cfg, log, structured_log=None, on_update=None):
    device = resolve_device_config(
        app_cfg.device,
        user_input={"ip": args.ip, "username": args.username, "password": args.password},
        query=args.query,
        proxy_url=args.proxy_url or app_cfg.panel.proxy_url,
    )
    client = DeviceClient(device, log, timeout=app_cfg.proxy.timeout)
    session = PanelSession(
        device,
        client,
        log,
        panel=app_cfg.panel,
        structured_log=structured_log,
        on_update=on_update,
    )
    return session, client


async def open_session(session: PanelSession, args) -> bool:
    username, password = _user_credentials(args)
    if session.device.proxy_mode:
        return await session.load_server_config(username, password)
    return await session.connect(username, password)


def run_serve(args, app_cfg, log) -> int:
    proxy_cfg = app_cfg.proxy
    if args.host:
        proxy_cfg.host = args.host
    if args.port:
        proxy_cfg.port = args.port
    if args.mode:
        proxy_cfg.mode = args.mode

    settings = app_cfg.device
    if proxy_cfg.mode == "fixed" and not settings.configured:
        log.error("CONFIGURATION ERROR: NRGKICK_IP environment variable is not set!")
        log.error("Example: NRGKICK_IP=192.168.1.100 nrgkick-panel serve")
        return 1

    log.info("NRGKick proxy listening on http://%s:%s (mode=%s)", proxy_cfg.host, proxy_cfg.port, proxy_cfg.mode)
    if proxy_cfg.mode == "fixed":
        log.info("Forwarding to NRGKick at %s (auth: %s)", settings.ip, "Yes" if settings.has_auth else "No")
    app = create_app(settings, proxy_cfg, log)
    app.run(host=proxy_cfg.host, port=proxy_cfg.port)
    return 0


async def run_status(args, app_cfg, log, structured_log) -> int:
    emit = _emitter(args)
    session, client = build_session(args, app_cfg, log, structured_log)
    async with client:
        ok = await open_session(session, args)
        emit(session.display, session.state, error=session.error)
        session.disconnect()
    return 0 if ok else 2


async def run_panel(args, app_cfg, log, structured_log) -> int:
    emit = _emitter(args)
    session, client = build_session(args, app_cfg, log, structured_log)
    session.on_update = lambda display: emit(display, session.state, error=session.error)

    if show_connection_panel(args.query, configured=session.configured) or args.show_connection:
        target = session.device.proxy_url or session.device.address or "Not configured"
        print(f"Connection: {target}")

    async with client:
        if not await open_session(session, args):
            emit(session.display, session.state, error=session.error)
            return 2
        try:
            if args.duration:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        finally:
            session.disconnect()
    return 0


async def run_command(args, app_cfg, log, structured_log) -> int:
    emit = _emitter(args)
    session, client = build_session(args, app_cfg, log, structured_log)
    async with client:
        if not await open_session(session, args):
            emit(session.display, session.state, error=session.error)
            return 2

        if args.action == "pause":
            ok = await session.stop_charging()
        elif args.action == "resume":
            ok = await session.start_charging()
        elif args.action == "current":
            ok = await session.set_current_limit(args.amps)
        else:
            ok = await session.set_phase_count(args.phases)

        # Let the follow-up refresh land before printing.
        for task in session.scheduler.pending:
            await task.wait()
        emit(session.display, session.state, error=session.error)
        session.disconnect()
    return 0 if ok else 3


def main():
    parser = build_parser()
    args = parser.parse_args()

    app_cfg = Config.load(args.config)
    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    log = console_logger.setup()
    structured_logger = StructuredLog(
        app_cfg.logging.structured_path,
        app_cfg.logging.structured_enabled,
    )
    quiet_http_loggers(logging.INFO if args.debug else logging.WARNING)

    if args.command == "serve":
        sys.exit(run_serve(args, app_cfg, log))

    runners = {
        "status": run_status,
        "panel": run_panel,
        "command": run_command,
    }
    try:
        code = asyncio.run(runners[args.command](args, app_cfg, log, structured_logger))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
