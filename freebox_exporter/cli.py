"""Command line entry point.

Commands:
    register            Register the exporter on the appliance (front-panel confirmation)
    serve               Refresh metrics and serve them on /metrics
    auto                Register if needed, then serve
    session-diagnostic  Log in once and print the session state
    revoke              Close the session and delete the stored token
    dry-run OUTPUT      Fetch every category once and write redacted raw JSON
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from datetime import datetime

from .config import DEFAULT_CONFIG_FILE, Configuration, load_configuration
from .const import DEFAULT_POLLING_INTERVAL, MIN_POLLING_INTERVAL, VERSION
from .context import ExporterContext, pin_appliance_certificate, registration_request
from .core.auth import SessionDiagnostic
from .core.categories import active_categories
from .core.exceptions import (
    ApplianceError,
    CertificateError,
    ConfigurationError,
    NotRegisteredError,
    RegistrationCancelled,
)
from .core.logger import setup_logging
from .core.ssl_adapter import pinned_certificate_path
from .diagnostics import dry_run

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _install_stop_handlers(stop: threading.Event) -> None:
    def handler(signum, _frame):
        _LOGGER.info("Received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def mask_token(token: str | None, show: bool = False) -> str:
    if token is None:
        return "none"
    if show:
        return token
    return f"{token[:4]}…" if len(token) > 8 else "***"


def register(configuration: Configuration, polling_interval: float, stop: threading.Event) -> ExporterContext:
    """Register unless a token is already stored, then check a login works."""
    if configuration.api.ca_file is None and not pinned_certificate_path(configuration.core.data_directory).exists():
        pin_appliance_certificate(configuration, configuration.api.host)

    context = ExporterContext.create(configuration)
    context.resolve_api_url(pin_new_endpoint=True)

    if context.store.exists():
        _LOGGER.info("Already registered (%s)", context.store.path)
    else:
        result = context.authenticator.register(registration_request())
        print("Confirm the registration on the appliance front panel...", flush=True)
        context.authenticator.await_authorization(result.track_id, interval=polling_interval, cancel=stop)

    context.authenticator.open_session()
    return context


def serve(context: ExporterContext, stop: threading.Event, port: int | None = None) -> None:
    """Run the refresh loop and the metrics server until ``stop`` is set."""
    if not context.store.exists():
        raise NotRegisteredError(f"No application token in {context.store.path}; run the register command")

    context.authenticator.open_session()
    mode = context.detect_mode()
    engine = context.build_engine(mode)
    server = context.build_server(port)

    server.start()
    engine.start()
    try:
        stop.wait()
    finally:
        context.shutdown()


def session_diagnostic(context: ExporterContext, show_token: bool = False) -> SessionDiagnostic:
    """Open a session and print what the appliance granted."""
    context.authenticator.open_session()
    diagnostic = context.authenticator.diagnostic()
    print(f"State:       {diagnostic.state.value}")
    print(f"API root:    {context.transport.api_url}")
    print(f"Token:       {mask_token(diagnostic.session_token, show_token)}")
    if diagnostic.opened_at is not None:
        print(f"Opened at:   {datetime.fromtimestamp(diagnostic.opened_at).isoformat(timespec='seconds')}")
    if diagnostic.permissions is not None:
        for name, granted in sorted(diagnostic.permissions.flags.items()):
            print(f"  {name:<20} {'yes' if granted else 'no'}")
    return diagnostic


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freebox-exporter",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--configuration-file",
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    commands = parser.add_subparsers(dest="command", required=True)

    register_parser = commands.add_parser("register", help="Register the exporter on the appliance")
    auto_parser = commands.add_parser("auto", help="Register if needed, then serve")
    for sub in (register_parser, auto_parser):
        sub.add_argument(
            "--polling-interval",
            type=float,
            default=DEFAULT_POLLING_INTERVAL,
            help=f"Seconds between authorization polls (default: {DEFAULT_POLLING_INTERVAL})",
        )

    serve_parser = commands.add_parser("serve", help="Serve metrics")
    for sub in (serve_parser, auto_parser):
        sub.add_argument("--port", type=int, help="Override [core] port")

    diagnostic_parser = commands.add_parser("session-diagnostic", help="Print session state")
    diagnostic_parser.add_argument("--show-token", action="store_true", help="Print the session token in full")

    commands.add_parser("revoke", help="Close the session and delete the stored token")

    dry_run_parser = commands.add_parser("dry-run", help="Write redacted raw responses to a JSON file")
    dry_run_parser.add_argument("output", help="Output JSON file")
    return parser


def run(args: argparse.Namespace, stop: threading.Event) -> int:
    configuration = load_configuration(args.configuration_file)
    setup_logging(configuration.core.data_directory, configuration.log.level, configuration.log.retention)
    _LOGGER.info("freebox-exporter %s starting (%s)", VERSION, args.command)

    if args.command in ("register", "auto"):
        if args.polling_interval < MIN_POLLING_INTERVAL:
            _LOGGER.warning("Polling interval raised to %ss", MIN_POLLING_INTERVAL)
        context = register(configuration, args.polling_interval, stop)
        if args.command == "register":
            _LOGGER.info("Registration complete")
            return EXIT_OK
        serve(context, stop, args.port)
        return EXIT_OK

    context = ExporterContext.create(configuration)
    context.resolve_api_url()

    if args.command == "serve":
        serve(context, stop, args.port)
    elif args.command == "session-diagnostic":
        session_diagnostic(context, args.show_token)
    elif args.command == "revoke":
        context.authenticator.revoke()
    elif args.command == "dry-run":
        mode = context.detect_mode()
        dry_run(context.authenticator, active_categories(configuration.metrics.enabled, mode), args.output)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    stop = threading.Event()
    _install_stop_handlers(stop)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        return run(args, stop)
    except ConfigurationError as err:
        _LOGGER.error("%s", err)
    except CertificateError as err:
        _LOGGER.error("Certificate validation failed: %s", err)
    except RegistrationCancelled:
        _LOGGER.warning("Registration cancelled, stored token discarded")
        return EXIT_INTERRUPTED
    except ApplianceError as err:
        _LOGGER.error("%s: %s", type(err).__name__, err)
    except OSError as err:
        _LOGGER.error("%s", err)
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted")
        return EXIT_INTERRUPTED
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
