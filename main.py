#!/usr/bin/env python3
"""
Collector runner: samples collectors on an interval and ships their values
to Statful as gauges.

    statful-collect --collectors system:disk_path=/ --interval 30 --tags env=prod
"""
import argparse
import importlib
import inspect
import json
import logging
import os
import pkgutil
import sys
import time
from typing import Any, Dict, List, Optional, Tuple, Type

from statful import config as statful_config
from statful.client import Statful
from statful.collector import Collector
from statful.sender import create_sender
from statful.tags import parse_tags

logger = logging.getLogger(__name__)


class CollectorRegistry:
    """Maps collector type names ("system") to Collector subclasses."""

    def __init__(self):
        self.collectors: Dict[str, Type[Collector]] = {}

    def discover_collectors(self) -> None:
        """Import every module under the collectors package and register its collectors."""
        import collectors

        for module_info in pkgutil.walk_packages(collectors.__path__, collectors.__name__ + '.'):
            if module_info.ispkg:
                continue
            try:
                module = importlib.import_module(module_info.name)
            except ImportError as e:
                logger.warning("Skipping collector module %s: %s", module_info.name, e)
                continue
            self._register_module(module)

    def _register_module(self, module) -> None:
        for _, cls in inspect.getmembers(module, inspect.isclass):
            if cls is Collector or not issubclass(cls, Collector) or inspect.isabstract(cls):
                continue
            self.register(cls.__name__.replace('Collector', ''), cls)

    def register(self, collector_type: str, collector_class: Type[Collector]) -> None:
        self.collectors[collector_type.lower()] = collector_class
        logger.debug("Registered collector %s (%s)", collector_type.lower(), collector_class.__name__)

    def get_collector_class(self, collector_type: str) -> Optional[Type[Collector]]:
        return self.collectors.get(collector_type.lower())

    def get_available_collectors(self) -> List[str]:
        return sorted(self.collectors)


collector_registry = CollectorRegistry()


def setup_logging(log_level: str) -> None:
    """
    Configure the root logger.

    Args:
        log_level (str): DEBUG, INFO, WARNING, ERROR or CRITICAL

    Raises:
        ValueError: If the level name is unknown
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(level=level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def create_client(args: argparse.Namespace) -> Statful:
    """
    Build the Statful client the collectors report through.

    Args:
        args (argparse.Namespace): Fully populated arguments

    Returns:
        Statful: The client
    """
    if args.transport == 'udp':
        sender = create_sender('udp', address=args.udp_address)
    else:
        sender = create_sender(
            'http',
            url=args.url,
            token=args.token,
            base_path=args.base_path,
            no_compression=args.no_compression,
            request_timeout=args.request_timeout
        )

    return Statful(
        sender=sender,
        dry_run=args.dry_run,
        flush_size=args.flush_size,
        flush_interval=args.flush_interval,
        tags=parse_tags(args.tags)
    )


def parse_collector_spec(spec: str) -> Tuple[str, Dict[str, Any]]:
    """
    Split "type:key=value,key2=value2" into the type and its keyword arguments.

    A trailing "collector" is dropped from the type, so "SystemCollector" and
    "system" name the same collector. Values stay strings.

    Returns:
        tuple: (collector_type, params)
    """
    collector_type, _, raw_params = spec.partition(':')
    collector_type = collector_type.strip().lower()
    if collector_type.endswith('collector'):
        collector_type = collector_type[:-len('collector')]

    return collector_type, parse_tags(raw_params)


def instantiate_collector(collector_type: str, params: Dict[str, Any]) -> Optional[Collector]:
    collector_class = collector_registry.get_collector_class(collector_type)
    if collector_class is None:
        logger.error("Unknown collector %s, available: %s",
                     collector_type, collector_registry.get_available_collectors() or "none")
        return None

    try:
        return collector_class(**params)
    except (TypeError, ValueError) as e:
        logger.error("Could not create collector %s with %s: %s", collector_type, params, e)
        return None


def load_config_from_file(path: str) -> Dict[str, Any]:
    """
    Read options from a JSON object whose keys are option names ("flush-size" or "flush_size").

    A missing or unreadable file logs an error and yields no options.
    """
    if not os.path.exists(path):
        logger.error("Config file not found: %s", path)
        return {}

    try:
        with open(path, 'r') as f:
            return json.load(f)
    except ValueError as e:
        logger.error("Invalid config file %s: %s", path, e)
        return {}


def merge_config_with_args(config: Dict[str, Any], args: argparse.Namespace) -> argparse.Namespace:
    """
    Fill options left unset (None) in args from config.

    Args:
        config (dict): Options to fall back on
        args (argparse.Namespace): Options already chosen

    Returns:
        argparse.Namespace: A new namespace, args is not modified
    """
    merged = dict(vars(args))
    for key, value in config.items():
        key = key.replace('-', '_')
        if merged.get(key) is None:
            merged[key] = value
    return argparse.Namespace(**merged)


def build_parser() -> argparse.ArgumentParser:
    # Every option defaults to None so parse_args can tell "not given" apart
    parser = argparse.ArgumentParser(description='Sample collectors and send their values to Statful.')

    runner = parser.add_argument_group('runner')
    runner.add_argument('--config-file', help='JSON file with default options')
    runner.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level (default: LOG_LEVEL or INFO)')
    runner.add_argument('--interval', type=float, help='Seconds between collection rounds (default: 60)')
    runner.add_argument('--count', type=int, help='Collection rounds to run, 0 runs forever (default: 0)')
    runner.add_argument('--collectors', nargs='*',
                        help='Collectors as "type:param=value,param2=value2"')

    client = parser.add_argument_group('statful')
    client.add_argument('--dry-run', action='store_true', default=None, help='Log metrics instead of sending them')
    client.add_argument('--transport', choices=['http', 'udp'], help='Transport for metrics')
    client.add_argument('--url', help='Statful API URL')
    client.add_argument('--token', help='Statful API token')
    client.add_argument('--base-path', help='Prefix for API endpoints')
    client.add_argument('--udp-address', help='host:port for the UDP transport')
    client.add_argument('--no-compression', action='store_true', default=None, help='Send HTTP bodies without gzip')
    client.add_argument('--request-timeout', type=float, help='HTTP timeout in seconds')
    client.add_argument('--flush-size', type=int, help='Buffered records that trigger a flush')
    client.add_argument('--flush-interval', type=float, help='Seconds between periodic flushes, 0 disables')
    client.add_argument('--tags', help='Global tags as "key=value,key2=value2"')
    return parser


DEFAULTS = {
    'log_level': statful_config.LOG_LEVEL,
    'interval': 60.0,
    'count': 0,
    'collectors': [],
    'dry_run': statful_config.DRY_RUN,
    'transport': statful_config.TRANSPORT,
    'url': statful_config.SERVER_URL,
    'token': statful_config.API_TOKEN,
    'base_path': statful_config.BASE_PATH,
    'udp_address': statful_config.UDP_ADDRESS,
    'no_compression': statful_config.NO_COMPRESSION,
    'request_timeout': statful_config.REQUEST_TIMEOUT,
    'flush_size': statful_config.FLUSH_SIZE,
    'flush_interval': statful_config.FLUSH_INTERVAL,
    'tags': statful_config.TAGS,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse the command line. Options it leaves out come from --config-file,
    then from DEFAULTS.
    """
    args = build_parser().parse_args(argv)
    if args.config_file:
        args = merge_config_with_args(load_config_from_file(args.config_file), args)
    return merge_config_with_args(DEFAULTS, args)


def run_collectors(client: Statful, collectors: List[Collector]) -> int:
    """
    Run one collection round.

    Returns:
        int: Number of collectors that collected successfully
    """
    return sum(1 for c in collectors if c.collect_and_send(client) is not None)


def run_rounds(client: Statful, collectors: List[Collector], count: int, interval: float) -> None:
    """
    Collect `count` rounds (forever if 0), one every `interval` seconds.

    A round that overruns the interval is followed immediately by the next.
    """
    deadline = time.monotonic()
    done = 0
    while True:
        done += 1
        succeeded = run_collectors(client, collectors)
        logger.info("Round %d: %d/%d collectors succeeded", done, succeeded, len(collectors))

        if count and done >= count:
            return

        deadline += interval
        delay = deadline - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        else:
            logger.warning("Collection round overran the interval by %.1f seconds", -delay)
            deadline = time.monotonic()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    collector_registry.discover_collectors()
    logger.info("Available collectors: %s", collector_registry.get_available_collectors())

    if not args.collectors:
        logger.error("No collectors given, pass them with --collectors")
        return 1

    collectors = []
    for spec in args.collectors:
        collector = instantiate_collector(*parse_collector_spec(spec))
        if collector is not None:
            collectors.append(collector)

    if not collectors:
        logger.error("None of the requested collectors could be created")
        return 1

    client = create_client(args)
    try:
        run_rounds(client, collectors, args.count, args.interval)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        pending = client.get_buffered_count()
        if pending:
            logger.info("Flushing %d buffered records before exit", pending)
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
