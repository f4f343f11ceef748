"""
Entry point for the thermweb-monitor CLI.

Usage:
    thermweb-monitor                       Serve the dashboard and run scheduled health checks
    thermweb-monitor --checks-only         Run scheduled health checks without the web server
    thermweb-monitor --run-once            Run one health check, print the report and exit
    thermweb-monitor --run-once --dry-run  Same, without sending notifications or saving state
    thermweb-monitor --test                Validate configuration and portal access, then exit
    thermweb-monitor --version             Show version and exit

Exit Codes:
    0 - Success
    1 - Configuration error (invalid settings, missing credentials)
    2 - Connection error (portal unreachable or failing)
    3 - Authentication error (portal rejected the session)
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from thermweb_monitor.config import MonitorSettings
    from thermweb_monitor.services import MonitorServices

from thermweb_monitor import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_CONNECTION_ERROR = 2
EXIT_AUTH_ERROR = 3


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="thermweb-monitor",
        description="Edge proxy, dashboard and alerting for a Thermweb sensor portal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Connection error (cannot reach the portal)
  3   Authentication error (portal session rejected)

Environment Variables:
  CONFIG_PATH                   Path to YAML configuration file
  THERM_PORTAL_USER             Portal user id
  THERM_PORTAL_SESSION          Portal session token
  THERMWEB_PORTAL_SESSION_FILE  Path to file containing the session (Docker secrets)
  PUSHOVER_TOKEN                Pushover application token
  PUSHOVER_USER                 Pushover user key
  THERMWEB_THRESHOLDS_PATH      YAML file with threshold overrides
  THERMWEB_SCHEDULE_PRESET      every_minute, every_5_minutes, every_15_minutes, hourly
  THERMWEB_SCHEDULE_CRON        Cron expression (overrides the preset)
  THERMWEB_LOG_LEVEL            Logging level: DEBUG, INFO, WARNING, ERROR
  THERMWEB_LOG_FORMAT           Log format: json or text

Examples:
  # Serve on port 8787 with checks every 5 minutes
  THERM_PORTAL_USER=42 THERM_PORTAL_SESSION=abc thermweb-monitor

  # Check what the next health check would do
  thermweb-monitor --run-once --dry-run
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Test configuration and portal access, then exit",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-once",
        action="store_true",
        help="Run one health check immediately and exit",
    )
    mode.add_argument(
        "--checks-only",
        action="store_true",
        help="Run scheduled health checks without the web server",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --run-once: print notifications instead of sending them and keep stored state unchanged",
    )
    return parser.parse_args(argv)


def print_banner(config: "MonitorSettings") -> None:
    """Print startup banner with version and configuration summary."""
    schedule = config.schedule_cron or config.schedule_preset or "none"
    lines = [
        "",
        f"Thermweb Monitor v{__version__}",
        "=" * 40,
        f"Portal:        {config.portal_base_url}",
        f"Schedule:      {schedule}",
        f"Cache:         {config.cache_backend}",
        f"Thresholds:    {config.thresholds_path or 'defaults'}",
        f"Log Level:     {config.log_level}",
        f"Log Format:    {config.log_format}",
        "=" * 40,
        "",
    ]
    for line in lines:
        print(line)


def dry_run_services(services: "MonitorServices") -> "MonitorServices":
    """Copy of the services that records notifications and writes to a scratch cache."""
    from thermweb_monitor.cache import MemoryEdgeCache
    from thermweb_monitor.notify import RecordingNotifier
    from thermweb_monitor.services import MonitorServices

    scratch = MemoryEdgeCache()
    for key in services.cache.keys():
        value = services.cache.get(key)
        if value is not None:
            scratch.put(key, value)

    return MonitorServices(
        settings=services.settings,
        gateway=services.gateway,
        cache=scratch,
        notifier=RecordingNotifier(),
        threshold_source=services.threshold_source,
        probe_checks=services.probe_checks,
    )


def run_test(services: "MonitorServices") -> int:
    """Fetch the device list once and map the outcome to an exit code."""
    from thermweb_monitor.logging import get_logger
    from thermweb_monitor.portal import ConfigurationError, UpstreamError, devices_from_payload

    log = get_logger(mode="test")
    print_banner(services.settings)

    result = services.gateway.list_devices()
    if result.ok:
        devices = devices_from_payload(result.data)
        print(f"Devices: {len(devices)}")
        for device_id, name in services.settings.known_devices.items():
            status = "reporting" if device_id in devices else "NOT REPORTED"
            print(f"  {name} ({device_id}): {status}")
        print("Configuration and portal access: OK")
        return EXIT_SUCCESS

    error = result.error
    log.error("test_failed", error=error.message)
    print(f"\n{error}", file=sys.stderr)
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIG_ERROR
    if isinstance(error, UpstreamError) and error.status in (401, 403):
        return EXIT_AUTH_ERROR
    return EXIT_CONNECTION_ERROR


def run_once(services: "MonitorServices", dry_run: bool = False) -> int:
    """Run one health check and print its report as JSON."""
    from thermweb_monitor.logging import get_logger

    log = get_logger(mode="run_once")
    print_banner(services.settings)
    log.info("run_once_started", dry_run=dry_run)

    if dry_run:
        services = dry_run_services(services)

    report = services.checker.run()
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))

    if dry_run:
        sent = getattr(services.notifier, "sent", [])
        print(f"\nNotifications ({len(sent)}):")
        for message, title in sent:
            print(f"--- {title}\n{message}")

    return EXIT_SUCCESS if report.succeeded else EXIT_CONNECTION_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for thermweb-monitor.

    Returns:
        Exit code (0=success, 1=config error, 2=connection error, 3=auth error)
    """
    args = parse_args(argv)

    # Import here to allow --help without dependencies
    from thermweb_monitor.config.loader import SettingsError, load_config
    from thermweb_monitor.logging import configure_logging, get_logger
    from thermweb_monitor.scheduler import ScheduledRunner, SchedulerError
    from thermweb_monitor.services import MonitorServices

    if args.dry_run and not args.run_once:
        print("--dry-run requires --run-once", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        config = load_config()
    except SettingsError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except SystemExit as e:
        # Validation errors cause sys.exit(1) in loader
        return e.code if isinstance(e.code, int) else EXIT_CONFIG_ERROR

    configure_logging(log_format=config.log_format, log_level=config.log_level)
    log = get_logger()

    try:
        services = MonitorServices.from_settings(config)
    except (OSError, ValueError) as e:
        log.error("startup_failed", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.test:
            return run_test(services)

        if args.run_once:
            return run_once(services, dry_run=args.dry_run)

        print_banner(config)
        log.info("starting", version=__version__)

        if args.checks_only:
            runner = ScheduledRunner(timezone=config.display_timezone)
            log.info(
                "service_starting",
                mode="checks_only",
                schedule_preset=config.schedule_preset,
                schedule_cron=config.schedule_cron,
            )
            runner.run(
                func=services.checker.run,
                cron_expr=config.schedule_cron,
                preset=config.schedule_preset,
            )
            return EXIT_SUCCESS

        import uvicorn

        from thermweb_monitor.web import create_app

        app = create_app(services)
        log.info(
            "service_starting",
            mode="web",
            host=config.web_host,
            port=config.web_port,
            schedule_preset=config.schedule_preset,
            schedule_cron=config.schedule_cron,
        )
        uvicorn.run(app, host=config.web_host, port=config.web_port, log_config=None)
        return EXIT_SUCCESS

    except SchedulerError as e:
        log.error("scheduler_config_invalid", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        log.info("shutdown", reason="keyboard interrupt")
        print("\nShutdown requested, exiting...")
        return EXIT_SUCCESS
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
