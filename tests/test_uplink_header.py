"""
Tests for the fixed payload header and temperature field.
"""

import pytest
import sys
from pathlib import Path

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'tools'))

from uplink_header import (
    decode_header, build_payload, trigger_type_name,
    Endian, TxPowerPolicy, TriggerType, PayloadHeader,
    HEADER_SIZE, PAYLOAD_SIZE,
)
from uplink_errors import PayloadTooShort, DecodeError


def payload_with_temp(b8, b9, tx=20, trigger=1):
    return bytes([1, 2, 0, 1, tx, trigger, 0, 0, b8, b9])


class TestHeaderFields:
    """Bytes 0-7 map positionally to the header."""

    def test_positional_fields(self, be_payload):
        header, _ = decode_header(be_payload)

        assert header.version == 1
        assert header.firmware_major == 2
        assert header.firmware_minor == 0
        assert header.hardware_version == 1
        assert header.tx_power_dbm == 20
        assert header.trigger_type == 4
        assert header.reserved1 == 0
        assert header.reserved2 == 0

    def test_reserved_bytes_passed_through(self):
        payload = bytes([1, 1, 0, 1, 14, 1, 0xAA, 0x55, 0, 0])
        header, _ = decode_header(payload)
        assert header.reserved1 == 0xAA
        assert header.reserved2 == 0x55

    def test_to_dict_includes_trigger_name(self, be_payload):
        header, _ = decode_header(be_payload)
        data = header.to_dict()
        assert data['trigger_type_name'] == 'BATTERY_LOW'
        assert data['tx_power_dbm'] == 20

    def test_extra_bytes_ignored(self, be_payload):
        header, reading = decode_header(be_payload + b'\xff\xff\xff')
        assert header.trigger_type == 4
        assert reading.temperature_c == 30.0

    def test_header_is_immutable(self, be_payload):
        header, _ = decode_header(be_payload)
        with pytest.raises(AttributeError):
            header.version = 9


class TestTxPowerPolicy:
    """Byte 4 is read according to an explicit policy."""

    def test_signed_negative(self):
        header, _ = decode_header(payload_with_temp(0, 0, tx=0xF6),
                                  txpower=TxPowerPolicy.SIGNED)
        assert header.tx_power_dbm == -10

    def test_unsigned_keeps_high_values(self):
        header, _ = decode_header(payload_with_temp(0, 0, tx=0xF6),
                                  txpower=TxPowerPolicy.UNSIGNED)
        assert header.tx_power_dbm == 246

    def test_policies_agree_below_128(self):
        signed, _ = decode_header(payload_with_temp(0, 0, tx=14), txpower=TxPowerPolicy.SIGNED)
        unsigned, _ = decode_header(payload_with_temp(0, 0, tx=14), txpower=TxPowerPolicy.UNSIGNED)
        assert signed.tx_power_dbm == unsigned.tx_power_dbm == 14

    def test_signed_boundary(self):
        header, _ = decode_header(payload_with_temp(0, 0, tx=0x80))
        assert header.tx_power_dbm == -128


class TestTriggerType:

    @pytest.mark.parametrize("code,name", [
        (1, 'TIMER'),
        (2, 'BUTTON'),
        (3, 'SENSOR_THRESHOLD'),
        (4, 'BATTERY_LOW'),
        (5, 'ERROR_CONDITION'),
        (6, 'MANUAL'),
        (7, 'RFU_1'),
        (8, 'RFU_2'),
    ])
    def test_known_codes(self, code, name):
        assert trigger_type_name(code) == name

    @pytest.mark.parametrize("code", [0, 9, 0x7F, 0xFF])
    def test_unknown_codes(self, code):
        assert trigger_type_name(code) == 'UNKNOWN'

    def test_header_property(self):
        header, _ = decode_header(payload_with_temp(0, 0, trigger=9))
        assert header.trigger_type == 9
        assert header.trigger_type_name == 'UNKNOWN'


class TestTemperature:
    """int16, 0.01 C per LSB, byte order per Endian."""

    def test_big_endian(self, be_payload):
        _, reading = decode_header(be_payload, Endian.BIG)
        assert reading.raw == 3000
        assert reading.temperature_c == 30.0

    def test_little_endian(self, le_payload):
        _, reading = decode_header(le_payload, Endian.LITTLE)
        assert reading.temperature_c == 30.0

    def test_wrong_byte_order_gives_other_value(self, be_payload):
        _, reading = decode_header(be_payload, Endian.LITTLE)
        # 0xB80B as int16
        assert reading.raw == -18421

    @pytest.mark.parametrize("raw,expected", [
        (0x0000, 0.0),
        (0x7FFF, 327.67),
        (0x8000, -327.68),
        (0xFFFF, -0.01),
    ])
    def test_sign_correction_boundaries(self, raw, expected):
        be = payload_with_temp(raw >> 8, raw & 0xFF)
        le = payload_with_temp(raw & 0xFF, raw >> 8)

        _, reading_be = decode_header(be, Endian.BIG)
        _, reading_le = decode_header(le, Endian.LITTLE)

        assert reading_be.temperature_c == pytest.approx(expected)
        assert reading_le.temperature_c == pytest.approx(expected)


class TestLength:

    def test_nine_bytes_rejected(self):
        with pytest.raises(PayloadTooShort) as exc_info:
            decode_header(bytes(9))
        assert exc_info.value.length == 9
        assert exc_info.value.expected == PAYLOAD_SIZE

    def test_ten_bytes_accepted(self):
        header, reading = decode_header(bytes(10))
        assert header.version == 0
        assert reading.temperature_c == 0.0

    def test_too_short_is_decode_error(self):
        with pytest.raises(DecodeError):
            decode_header(b'')

    def test_layout_constants(self):
        assert HEADER_SIZE == 8
        assert PAYLOAD_SIZE == 10


class TestBuildPayload:
    """Payload assembly as done by the node firmware."""

    def test_default_header(self):
        payload = build_payload(23.45)
        assert len(payload) == PAYLOAD_SIZE
        assert payload[:8] == bytes([1, 1, 0, 1, 14, 1, 0, 0])
        assert payload[8:] == bytes([0x09, 0x29])  # 2345 big-endian

    def test_little_endian(self):
        payload = build_payload(23.45, endian=Endian.LITTLE)
        assert payload[8:] == bytes([0x29, 0x09])

    def test_negative_temperature(self):
        payload = build_payload(-0.01)
        assert payload[8:] == b'\xff\xff'

    def test_negative_tx_power(self):
        payload = build_payload(0.0, tx_power_dbm=-10)
        assert payload[4] == 0xF6

    def test_trigger_type(self):
        payload = build_payload(0.0, trigger_type=TriggerType.MANUAL)
        assert payload[5] == 6

    def test_decodes_back(self):
        payload = build_payload(-12.34, trigger_type=TriggerType.BUTTON,
                                tx_power_dbm=-3, firmware_major=3, firmware_minor=7)
        header, reading = decode_header(payload)
        assert (header.firmware_major, header.firmware_minor) == (3, 7)
        assert header.tx_power_dbm == -3
        assert header.trigger_type_name == 'BUTTON'
        assert reading.temperature_c == pytest.approx(-12.34)

    @pytest.mark.parametrize("temperature", [327.68, -327.69, 1000.0])
    def test_temperature_out_of_range(self, temperature):
        with pytest.raises(ValueError, match="int16"):
            build_payload(temperature)

    @pytest.mark.parametrize("tx", [-129, 256])
    def test_tx_power_out_of_range(self, tx):
        with pytest.raises(ValueError, match="TX power"):
            build_payload(20.0, tx_power_dbm=tx)

    def test_header_byte_out_of_range(self):
        with pytest.raises(ValueError, match="firmware_major"):
            build_payload(20.0, firmware_major=256)
