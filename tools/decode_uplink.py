#!/usr/bin/env python3
"""
decode_uplink.py - Decode a mioty uplink from the command line

Usage:
    python tools/decode_uplink.py 01020001140400000bb8 --metadata '{"EUI": "AABBCCDD"}'
    python tools/decode_uplink.py 01020001140400000bb8 --metadata @meta.json --json
    python tools/decode_uplink.py --request uplink.json --config decoder.yaml
    cat uplink.json | python tools/decode_uplink.py --request - --lenient

A request file holds {"payload": ..., "metadata": {...}} where payload is any
shape the decoder accepts (hex string, byte array, wrapping object).

Exit codes: 0 decoded, 1 decode error, 2 bad config or arguments.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, Any

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent))
from decoder_config import DecoderConfig, PROFILES, load_config
from mioty_decoder import DecodeRequest, DecodedMessage, MiotyDecoder
from uplink_errors import ConfigError, DecodeError
from uplink_metadata import IdentityPolicy


def read_json_arg(value: str) -> Any:
    """Parse inline JSON, '@path' to a JSON file, or '-' for stdin."""
    if value == '-':
        return json.load(sys.stdin)
    if value.startswith('@'):
        with open(value[1:]) as f:
            return json.load(f)
    return json.loads(value)


def build_config(args) -> DecoderConfig:
    config = load_config(args.config) if args.config else DecoderConfig()
    if args.profile:
        config = config.with_profile(args.profile)
    if args.strict:
        config = replace(config, identity_policy=IdentityPolicy.STRICT)
    elif args.lenient:
        config = replace(config, identity_policy=IdentityPolicy.LENIENT)
    return config


def print_result(result: DecodedMessage, config: DecoderConfig):
    """Print decoded uplink in human-readable form."""
    print(f"Device: {result.device_name}")
    print(f"Type: {result.device_type}")
    print(f"Group: {result.group_name}")
    attrs = result.attributes
    print(f"Firmware: {attrs['firmware_major']}.{attrs['firmware_minor']}, "
          f"hardware: {attrs['hardware_version']}")
    if result.customer_name is not None:
        print(f"Customer: {result.customer_name}")
    print(f"Sensor byte order: {config.sensor_endian.value}, "
          f"TX power: {config.txpower.value}")
    print("-" * 50)
    print("Attributes:")
    for k, v in result.attributes.items():
        print(f"  {k}: {v}")
    print("Telemetry:")
    for k, v in result.telemetry.items():
        print(f"  {k}: {v}")
    for warning in result.warnings:
        print(f"WARNING: {warning}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Decode a mioty temperature node uplink'
    )
    parser.add_argument('payload', nargs='?', help='Payload as hex string')
    parser.add_argument('-m', '--metadata',
                        help="Metadata as JSON, or @file.json")
    parser.add_argument('-r', '--request',
                        help="JSON request file with payload and metadata ('-' for stdin)")
    parser.add_argument('-c', '--config', help='Decoder config YAML file')
    parser.add_argument('-p', '--profile', choices=sorted(PROFILES),
                        help='Byte order / TX power profile')
    policy = parser.add_mutually_exclusive_group()
    policy.add_argument('--strict', action='store_true',
                        help='Reject uplinks without a device EUI')
    policy.add_argument('--lenient', action='store_true',
                        help="Accept uplinks without a device EUI as 'unknown'")
    parser.add_argument('--json', action='store_true',
                        help='Output the platform record as JSON')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    if args.payload is None and args.request is None:
        parser.error('either a payload or --request is required')

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    try:
        if args.request:
            request = DecodeRequest.from_dict(read_json_arg(args.request))
        else:
            metadata: Dict[str, Any] = read_json_arg(args.metadata) if args.metadata else {}
            request = DecodeRequest(payload=args.payload, metadata=metadata)
    except (OSError, ValueError) as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 2

    try:
        result = MiotyDecoder(config).decode_request(request)
    except DecodeError as e:
        print(f"Decode error ({type(e).__name__}): {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result, config)
    return 0


if __name__ == '__main__':
    sys.exit(main())
