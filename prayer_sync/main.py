import argparse
import json
import logging
import sys

from prayer_sync.core.app import PrayerSyncApp
from prayer_sync.notifications.scheduler import InMemoryAlarmBackend
from prayer_sync.prayer.errors import PrayerSourceError


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        ))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Prayer times sync service')
    parser.add_argument('--config',
                        help='Path to config file (default: ./config.yaml)')
    parser.add_argument('--once', action='store_true',
                        help='Resolve, schedule and write the widget record once, print the result and exit')
    parser.add_argument('--calendar', action='store_true',
                        help='Fetch and print the current Hijri month calendar')
    return parser


def run_once(app: PrayerSyncApp) -> int:
    resolved = app.refresh()
    output = resolved.to_dict()
    output['scheduled'] = app.last_scheduled_count if resolved.ok else 0
    output['notifications'] = [entry.to_dict() for entry in app.scheduler.last_entries]
    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0 if resolved.ok else 1


def print_calendar(app: PrayerSyncApp) -> int:
    try:
        calendar = app.get_calendar(force_fetch=True)
    except PrayerSourceError as e:
        logging.error(f"Calendar unavailable: {e}")
        return 1
    print(json.dumps(calendar.to_dict(), ensure_ascii=False, indent=2))
    return 0


def main(argv=None) -> int:
    setup_basic_logging()

    args = build_parser().parse_args(argv)
    config_path = args.config if args.config else "config.yaml"

    if args.once or args.calendar:
        # Timers would die with the process, so one-shot runs only record the alarms
        app = PrayerSyncApp(config_path=config_path, watch_config=False, alarm_backend=InMemoryAlarmBackend())
        try:
            status = 0
            if args.once:
                status = run_once(app)
            if args.calendar:
                status = print_calendar(app) or status
            return status
        finally:
            app.stop()

    app = PrayerSyncApp(config_path=config_path)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
