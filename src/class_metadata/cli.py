"""
class-metadata command-line interface.

Usage:
    class-metadata warmup --config serializer.yaml          # Warm the metadata cache
    class-metadata warmup --cache-dir var/cache             # Override the cache directory
    class-metadata show app.models.Model --config serializer.yaml
    class-metadata show app.models.Model --format json
    class-metadata list --config serializer.yaml            # Classes known to mapping files
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import yaml

from .config import MappingConfig, build_services, load_config
from .exceptions import ConfigurationError


def _load(args: argparse.Namespace) -> MappingConfig:
    config = load_config(args.config) if args.config else MappingConfig()
    cache_dir = getattr(args, 'cache_dir', None)
    if cache_dir:
        config = replace(config, cache=replace(config.cache, directory=Path(cache_dir), enabled=True))
    return config


def run_warmup(args: argparse.Namespace) -> int:
    config = _load(args)
    # Warming always goes through the cache, whatever the runtime mode
    config = replace(config, debug=False, cache=replace(config.cache, enabled=True))
    services = build_services(config)
    warmed = services.warmer.warm_up(config.cache.directory)
    print(f"Warmed {len(warmed)} classes")
    return 0


def run_show(args: argparse.Namespace) -> int:
    services = build_services(_load(args))
    data = services.factory.get_class_metadata(args.class_name).to_dict()
    if args.format == 'json':
        print(json.dumps(data, indent=2))
    else:
        print(yaml.safe_dump(data, sort_keys=False), end='')
    return 0


def run_list(args: argparse.Namespace) -> int:
    services = build_services(_load(args))
    for class_name in services.loader.enumerate_known_classes():
        print(class_name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='class-metadata',
        description='Resolve and cache serializer class metadata.'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-c', '--config', help='YAML configuration file')

    warmup = subparsers.add_parser('warmup', parents=[common], help='Warm the metadata cache')
    warmup.add_argument('--cache-dir', help='Cache directory (overrides the configuration)')
    warmup.set_defaults(func=run_warmup)

    show = subparsers.add_parser('show', parents=[common], help='Print the metadata of a class')
    show.add_argument('class_name', help='Fully-qualified class name')
    show.add_argument('--format', choices=['yaml', 'json'], default='yaml')
    show.set_defaults(func=run_show)

    list_cmd = subparsers.add_parser('list', parents=[common], help='List mapped classes')
    list_cmd.set_defaults(func=run_list)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
