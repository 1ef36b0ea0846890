"""
uplink_metadata.py - Extract radio and identity fields from uplink metadata

Network servers disagree on key names and nesting: signal quality may be per
gateway (gws[0]) or top level, the frame counter has five known spellings,
and the EUI may be upper or lower case. extract_metadata() tries each in a
fixed order.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from uplink_errors import UnknownDeviceIdentity


logger = logging.getLogger(__name__)

UNKNOWN_EUI = 'unknown'
DEFAULT_PROTOCOL = 'mioty'
DEFAULT_CMD = 'rx'

# U+0421 is a Cyrillic capital Es, sent in place of the Latin C by some servers
FCNT_KEYS = ('fcnt', 'fCnt', 'f\u0421nt', 'frameCounter', 'frame_counter')
EUI_KEYS = ('EUI', 'eui')


class IdentityPolicy(Enum):
    """What to do with an uplink whose EUI cannot be resolved."""
    STRICT = 'strict'
    LENIENT = 'lenient'


@dataclass(frozen=True)
class DeviceMetadata:
    eui: str
    fcnt: Any
    seqno: Any = None
    rssi: Optional[float] = None
    snr: Optional[float] = None
    protocol: str = DEFAULT_PROTOCOL
    cmd: str = DEFAULT_CMD
    ts: Any = None
    integration_name: Any = None

    @property
    def eui_known(self) -> bool:
        return self.eui != UNKNOWN_EUI


def _first_present(metadata: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = metadata.get(key)
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _gateway_value(key: str, gateway: Mapping[str, Any], metadata: Mapping[str, Any]) -> Any:
    value = gateway.get(key)
    return metadata.get(key) if value is None else value


def gateway_quality(metadata: Mapping[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    """(rssi, snr) from the first gateway entry, else from the top level.

    Each value falls back separately, so a gateway entry without 'rssi' still
    picks up a top-level 'rssi'.
    """
    gws = metadata.get('gws')
    if isinstance(gws, (list, tuple)) and gws and isinstance(gws[0], Mapping):
        gateway = gws[0]
    else:
        gateway = {}
    return (_to_float(_gateway_value('rssi', gateway, metadata)),
            _to_float(_gateway_value('snr', gateway, metadata)))


def resolve_eui(metadata: Mapping[str, Any]) -> str:
    eui = _first_present(metadata, EUI_KEYS)
    if eui is None or eui == '':
        return UNKNOWN_EUI
    return str(eui)


def resolve_fcnt(metadata: Mapping[str, Any]) -> Any:
    fcnt = _first_present(metadata, FCNT_KEYS)
    return 0 if fcnt is None else fcnt


def now_ms() -> int:
    return int(time.time() * 1000)


def extract_metadata(metadata: Mapping[str, Any],
                     policy: IdentityPolicy = IdentityPolicy.STRICT) -> DeviceMetadata:
    """
    Build DeviceMetadata from a canonical metadata map.

    Raises UnknownDeviceIdentity under the strict policy when no EUI is
    present.
    """
    eui = resolve_eui(metadata)
    if eui == UNKNOWN_EUI:
        if policy == IdentityPolicy.STRICT:
            raise UnknownDeviceIdentity(
                "Device EUI missing from metadata (expected 'EUI' or 'eui')"
            )
        logger.info("Accepting uplink from unidentified device")

    rssi, snr = gateway_quality(metadata)
    ts = metadata.get('ts')

    return DeviceMetadata(
        eui=eui,
        fcnt=resolve_fcnt(metadata),
        seqno=metadata.get('seqno'),
        rssi=rssi,
        snr=snr,
        protocol=metadata.get('protocol') or DEFAULT_PROTOCOL,
        cmd=metadata.get('cmd') or DEFAULT_CMD,
        ts=ts if ts is not None else now_ms(),
        integration_name=metadata.get('integrationName'),
    )
