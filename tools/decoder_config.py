"""
decoder_config.py - Deployment configuration for the mioty uplink decoder

Two field variants of the node firmware disagree on the temperature byte order
and on whether byte 4 (TX power) is signed. Neither is assumed: both are
explicit settings, and PROFILES names the two observed combinations.

Config file (YAML):

    profile: big-endian-unsigned-tx   # optional preset
    sensor_endian: big                # big | little
    txpower: signed                   # signed | unsigned
    identity_policy: strict           # strict | lenient
    device_name_prefix: mioty-node-
    device_type: mioty-temperature-sensor
    group_name: Temperature Nodes
    customer_name: MyCustomer         # null to omit
    manufacturer: mioty Alliance

Keys given explicitly override the profile.
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from uplink_errors import ConfigError
from uplink_header import Endian, TxPowerPolicy
from uplink_metadata import IdentityPolicy


PROFILES: Dict[str, Dict[str, str]] = {
    # Field decoder shipped with the node samples
    'little-endian-signed-tx': {'sensor_endian': 'little', 'txpower': 'signed'},
    # Byte order documented in the firmware payload header
    'big-endian-unsigned-tx': {'sensor_endian': 'big', 'txpower': 'unsigned'},
}

_ENUM_FIELDS = {
    'sensor_endian': Endian,
    'txpower': TxPowerPolicy,
    'identity_policy': IdentityPolicy,
}


@dataclass(frozen=True)
class DecoderConfig:
    """Explicit decoding choices plus the fixed naming constants."""
    sensor_endian: Endian = Endian.BIG
    txpower: TxPowerPolicy = TxPowerPolicy.SIGNED
    identity_policy: IdentityPolicy = IdentityPolicy.STRICT
    device_name_prefix: str = 'mioty-node-'
    device_type: str = 'mioty-temperature-sensor'
    group_name: str = 'Temperature Nodes'
    customer_name: Optional[str] = 'MyCustomer'
    manufacturer: str = 'mioty Alliance'
    profile: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DecoderConfig':
        """Build a config from a mapping (e.g. parsed YAML)."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        profile = data.get('profile')
        values: Dict[str, Any] = {}
        if profile is not None:
            if profile not in PROFILES:
                raise ConfigError(
                    f"Unknown profile '{profile}', expected one of: "
                    f"{', '.join(sorted(PROFILES))}"
                )
            values.update(PROFILES[profile])
        values.update(data)

        for key, enum_cls in _ENUM_FIELDS.items():
            if key in values:
                values[key] = _coerce_enum(key, values[key], enum_cls)

        for key in ('device_name_prefix', 'device_type', 'group_name', 'manufacturer'):
            if key in values and not isinstance(values[key], str):
                raise ConfigError(f"'{key}' must be a string")
        if values.get('customer_name') is not None and not isinstance(values['customer_name'], str):
            raise ConfigError("'customer_name' must be a string or null")

        return cls(**values)

    def with_profile(self, profile: str) -> 'DecoderConfig':
        """Copy of this config with a profile's decoding choices applied."""
        if profile not in PROFILES:
            raise ConfigError(f"Unknown profile '{profile}'")
        overrides = {k: _coerce_enum(k, v, _ENUM_FIELDS[k])
                     for k, v in PROFILES[profile].items()}
        return replace(self, profile=profile, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if f.name in _ENUM_FIELDS else value
        return result


def _coerce_enum(key: str, value: Any, enum_cls):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ', '.join(e.value for e in enum_cls)
        raise ConfigError(f"Invalid value for '{key}': {value!r} (expected {allowed})")


def load_config(path: Union[str, Path]) -> DecoderConfig:
    """Load a DecoderConfig from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config {path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a YAML mapping")
    return DecoderConfig.from_dict(data)
