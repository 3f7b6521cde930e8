#!/usr/bin/env python
"""
Build the example registry and print what a dispatcher would see.

Usage:
    python describe_registry.py [--sdk-level N] [--all] [--verbose]
"""

import argparse
import sys
from pathlib import Path

from facade_registry import (
    ConfigError, RegistryError, build_registry, configure_console_logging, reset_logger
)

HERE = Path(__file__).parent


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--sdk-level", type=int, default=None, help="override the configured SDK level")
    parser.add_argument("--all", action="store_true", help="include deprecated and unsupported methods")
    parser.add_argument("--verbose", action="store_true", help="log registry construction")
    args = parser.parse_args(argv)

    reset_logger()
    configure_console_logging(level="DEBUG" if args.verbose else "WARNING")
    sys.path.insert(0, str(HERE))

    try:
        registry = build_registry(HERE / "facades.yaml", sdk_level=args.sdk_level)
    except (ConfigError, RegistryError) as e:
        print(f"Registry could not be built: {e}", file=sys.stderr)
        return 1

    print(f"SDK level {registry.get_sdk_level()}: "
          f"{', '.join(f.__name__ for f in registry.get_facade_classes())}")
    print()
    print(registry.help_text(supported_only=not args.all))
    print()
    for kind, events in (("start", registry.collect_start_event_method_descriptors()),
                         ("stop", registry.collect_stop_event_method_descriptors())):
        for event_name, descriptor in events.items():
            print(f"{kind} event {event_name!r} -> {descriptor.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
