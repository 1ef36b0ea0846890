"""
uplink_header.py - Fixed header and sensor field of the mioty node payload

Payload layout (10 bytes, extra bytes are ignored):

    Byte 0   payload version
    Byte 1   firmware major
    Byte 2   firmware minor
    Byte 3   hardware version
    Byte 4   TX power in dBm (signed or unsigned, see TxPowerPolicy)
    Byte 5   trigger type (TriggerType)
    Byte 6   reserved
    Byte 7   reserved
    Byte 8-9 internal temperature, int16, 0.01 C per LSB (byte order per Endian)

Usage:
    from uplink_header import decode_header, build_payload, Endian

    header, reading = decode_header(payload, Endian.BIG)
    payload = build_payload(23.45, trigger_type=TriggerType.BUTTON)
"""

from dataclasses import dataclass, asdict
from enum import Enum, IntEnum
from typing import Dict, Any, Tuple, Union

from uplink_errors import PayloadTooShort


HEADER_SIZE = 8
PAYLOAD_SIZE = 10
PAYLOAD_VERSION = 1
TEMPERATURE_MULTIPLIER = 100


class Endian(Enum):
    BIG = 'big'
    LITTLE = 'little'


class TxPowerPolicy(Enum):
    """How byte 4 is interpreted."""
    SIGNED = 'signed'
    UNSIGNED = 'unsigned'


class TriggerType(IntEnum):
    """Reason the node sent the uplink."""
    TIMER = 0x01
    BUTTON = 0x02
    SENSOR_THRESHOLD = 0x03
    BATTERY_LOW = 0x04
    ERROR_CONDITION = 0x05
    MANUAL = 0x06
    RFU_1 = 0x07
    RFU_2 = 0x08


def trigger_type_name(code: int) -> str:
    """Symbolic name for a trigger code, 'UNKNOWN' when out of table."""
    try:
        return TriggerType(code).name
    except ValueError:
        return 'UNKNOWN'


@dataclass(frozen=True)
class PayloadHeader:
    version: int
    firmware_major: int
    firmware_minor: int
    hardware_version: int
    tx_power_dbm: int
    trigger_type: int
    reserved1: int
    reserved2: int

    @property
    def trigger_type_name(self) -> str:
        return trigger_type_name(self.trigger_type)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['trigger_type_name'] = self.trigger_type_name
        return data


@dataclass(frozen=True)
class SensorReading:
    raw: int
    temperature_c: float


def decode_header(payload: Union[bytes, bytearray],
                  endian: Endian = Endian.BIG,
                  txpower: TxPowerPolicy = TxPowerPolicy.SIGNED
                  ) -> Tuple[PayloadHeader, SensorReading]:
    """
    Decode the 8-byte header and the temperature field.

    Raises PayloadTooShort if fewer than PAYLOAD_SIZE bytes are given.
    """
    if len(payload) < PAYLOAD_SIZE:
        raise PayloadTooShort(len(payload), PAYLOAD_SIZE)

    buf = bytes(payload[:PAYLOAD_SIZE])
    tx_power = int.from_bytes(buf[4:5], 'big',
                              signed=txpower == TxPowerPolicy.SIGNED)

    header = PayloadHeader(
        version=buf[0],
        firmware_major=buf[1],
        firmware_minor=buf[2],
        hardware_version=buf[3],
        tx_power_dbm=tx_power,
        trigger_type=buf[5],
        reserved1=buf[6],
        reserved2=buf[7],
    )

    # int16 two's complement: 0x8000 -> -327.68, 0xFFFF -> -0.01
    raw = int.from_bytes(buf[HEADER_SIZE:PAYLOAD_SIZE], endian.value, signed=True)
    reading = SensorReading(raw=raw, temperature_c=raw / float(TEMPERATURE_MULTIPLIER))

    return header, reading


def build_payload(temperature_c: float,
                  trigger_type: int = TriggerType.TIMER,
                  tx_power_dbm: int = 14,
                  version: int = PAYLOAD_VERSION,
                  firmware_major: int = 1,
                  firmware_minor: int = 0,
                  hardware_version: int = 1,
                  endian: Endian = Endian.BIG) -> bytes:
    """
    Assemble a node payload the way the firmware does.

    Temperature is stored as fixed point with TEMPERATURE_MULTIPLIER. TX power
    is accepted in either signed (-128..127) or unsigned (0..255) range and
    written as a single byte.
    """
    raw = int(round(temperature_c * TEMPERATURE_MULTIPLIER))
    if raw < -32768 or raw > 32767:
        raise ValueError(f"Temperature out of int16 range: {temperature_c}")
    if tx_power_dbm < -128 or tx_power_dbm > 255:
        raise ValueError(f"TX power does not fit in one byte: {tx_power_dbm}")

    for name, value in (('version', version),
                        ('firmware_major', firmware_major),
                        ('firmware_minor', firmware_minor),
                        ('hardware_version', hardware_version),
                        ('trigger_type', trigger_type)):
        if not 0 <= value <= 255:
            raise ValueError(f"{name} does not fit in u8: {value}")

    header = bytes([
        version,
        firmware_major,
        firmware_minor,
        hardware_version,
        tx_power_dbm & 0xFF,
        int(trigger_type),
        0,
        0,
    ])
    return header + raw.to_bytes(2, endian.value, signed=True)
