#!/usr/bin/env python3
"""
mioty_decoder.py - Decode mioty temperature node uplinks into platform records

Ties the pipeline together:

    normalize_input()   (payload, metadata) -> CanonicalMessage
    decode_header()     CanonicalMessage.payload -> PayloadHeader, SensorReading
    extract_metadata()  CanonicalMessage.metadata -> DeviceMetadata
    build_result()      all of the above -> DecodedMessage

Usage:
    from mioty_decoder import MiotyDecoder

    decoder = MiotyDecoder()
    message = decoder.decode("01020001140400000bb8", {"EUI": "AABBCCDD"})
    record = message.to_dict()
    # record['telemetry']['temperature'] == 30.0

Decoding holds no state between calls; one MiotyDecoder can be shared.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional

from decoder_config import DecoderConfig
from uplink_header import PayloadHeader, SensorReading, decode_header, build_payload
from uplink_metadata import DeviceMetadata, UNKNOWN_EUI, extract_metadata
from uplink_normalizer import CanonicalMessage, normalize_input, bytes_to_hex


@dataclass(frozen=True)
class DecodeRequest:
    """One uplink as handed over by the network server."""
    payload: Any
    metadata: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'DecodeRequest':
        if not isinstance(data, Mapping):
            raise ValueError("Request must be an object with 'payload' and 'metadata'")
        return cls(payload=data.get('payload'), metadata=data.get('metadata'))


@dataclass
class DecodedMessage:
    """Result of decoding an uplink."""
    device_name: str
    device_type: str
    group_name: str
    attributes: Dict[str, Any]
    telemetry: Dict[str, Any]
    customer_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Record in the shape the receiving platform expects."""
        record = {
            'deviceName': self.device_name,
            'deviceType': self.device_type,
            'groupName': self.group_name,
        }
        if self.customer_name is not None:
            record['customerName'] = self.customer_name
        record['attributes'] = dict(self.attributes)
        record['telemetry'] = dict(self.telemetry)
        return record


def device_name_for(eui: str, prefix: str = 'mioty-node-') -> str:
    """Node name from the last four EUI characters."""
    if eui == UNKNOWN_EUI:
        return prefix + UNKNOWN_EUI
    return prefix + eui[-4:]


def build_result(header: PayloadHeader, reading: SensorReading,
                 meta: DeviceMetadata, config: DecoderConfig) -> DecodedMessage:
    attributes = {
        'payload_version': header.version,
        'firmware_major': header.firmware_major,
        'firmware_minor': header.firmware_minor,
        'hardware_version': header.hardware_version,
        'txpower': header.tx_power_dbm,
        'trigger_type': header.trigger_type,
        'trigger_type_name': header.trigger_type_name,
        'reserved1': header.reserved1,
        'reserved2': header.reserved2,
        'device_eui': meta.eui,
        'fcnt': meta.fcnt,
        'sequence_number': meta.seqno,
        'rssi': meta.rssi,
        'snr': meta.snr,
        'protocol': meta.protocol,
        'message_type': meta.cmd,
        'integrationName': meta.integration_name,
        'manufacturer': config.manufacturer,
    }
    telemetry = {
        'temperature': reading.temperature_c,
        'rssi': meta.rssi,
        'snr': meta.snr,
        'fcnt': meta.fcnt,
        'ts': meta.ts,
    }
    return DecodedMessage(
        device_name=device_name_for(meta.eui, config.device_name_prefix),
        device_type=config.device_type,
        group_name=config.group_name,
        customer_name=config.customer_name,
        attributes=attributes,
        telemetry=telemetry,
    )


class MiotyDecoder:
    """
    Decoder for the 10-byte mioty temperature node payload.

    Byte order of the temperature field, signedness of the TX power byte and
    the identity policy all come from the DecoderConfig.
    """

    def __init__(self, config: Optional[DecoderConfig] = None):
        self.config = config or DecoderConfig()

    def normalize(self, payload: Any, metadata: Optional[Mapping[str, Any]] = None) -> CanonicalMessage:
        return normalize_input(payload, metadata)

    def decode(self, payload: Any, metadata: Optional[Mapping[str, Any]] = None) -> DecodedMessage:
        """
        Decode one uplink.

        Raises a DecodeError subclass on failure; nothing is returned partially.
        """
        message = self.normalize(payload, metadata)
        header, reading = decode_header(
            message.payload, self.config.sensor_endian, self.config.txpower
        )
        meta = extract_metadata(message.metadata, self.config.identity_policy)

        result = build_result(header, reading, meta, self.config)
        result.warnings.extend(message.warnings)
        return result

    def decode_request(self, request: DecodeRequest) -> DecodedMessage:
        return self.decode(request.payload, request.metadata)


def decode_uplink(payload: Any, metadata: Optional[Mapping[str, Any]] = None,
                  config: Optional[DecoderConfig] = None) -> Dict[str, Any]:
    """Convenience function returning the platform record."""
    return MiotyDecoder(config).decode(payload, metadata).to_dict()


if __name__ == '__main__':
    # Demo
    print("=== mioty Uplink Decoder Demo ===\n")

    payload = build_payload(23.45, trigger_type=2, tx_power_dbm=14)
    metadata = {
        'EUI': '70b3d59cd0000a1b',
        'fcnt': 42,
        'gws': [{'rssi': -97.5, 'snr': 8.25}],
        'cmd': 'rx',
        'ts': 1760000000000,
    }

    print(f"Payload: {bytes_to_hex(payload, upper=True)}")
    print(f"Payload length: {len(payload)} bytes\n")

    result = MiotyDecoder().decode(payload, metadata)
    print(f"Device: {result.device_name} ({result.device_type})")
    print("Attributes:")
    for k, v in result.attributes.items():
        print(f"  {k}: {v}")
    print("Telemetry:")
    for k, v in result.telemetry.items():
        print(f"  {k}: {v}")
