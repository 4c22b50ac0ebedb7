import pytest

from patientbeacon.gatt.known import (
    KNOWN_CHARACTERISTICS,
    KNOWN_DESCRIPTORS,
    KNOWN_SERVICES,
    KnownUUID,
    attribute_name,
    characteristic_name,
    descriptor_name,
    service_name,
)
from patientbeacon.gatt.uuid import parse_uuid, uuid16


def test_service_name_battery():
    assert service_name(uuid16(0x180F)) == "Battery Service"


def test_characteristic_name_device_name():
    assert characteristic_name(uuid16(0x2A00)) == "Device Name"


def test_descriptor_name_cccd():
    assert descriptor_name(uuid16(0x2902)) == "Client Characteristic Configuration"


def test_attribute_name_primary_service():
    assert attribute_name(uuid16(0x2800)) == "Primary Service"


def test_string_lookup_is_case_insensitive():
    assert service_name("180A") == "Device Information"


def test_unknown_uuid_has_empty_name():
    u = parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b")
    assert service_name(u) == ""
    assert characteristic_name(u) == ""
    assert descriptor_name(u) == ""
    assert attribute_name(u) == ""


def test_tables_are_separate():
    assert service_name(uuid16(0x2A00)) == ""
    assert characteristic_name(uuid16(0x1800)) == ""


def test_type_field():
    key = str(uuid16(0x180F))
    assert key == "180f"
    assert KNOWN_SERVICES[key].type == "org.bluetooth.service.battery_service"
    assert KNOWN_SERVICES[key].name == service_name(uuid16(0x180F))


@pytest.mark.parametrize("table", [KNOWN_SERVICES, KNOWN_CHARACTERISTICS, KNOWN_DESCRIPTORS])
def test_keys_are_lowercase_16bit(table):
    for key, entry in table.items():
        assert len(key) == 4
        assert key == key.lower()
        assert isinstance(entry, KnownUUID)
        assert entry.type.startswith("org.bluetooth.")