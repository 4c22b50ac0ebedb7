import pytest

from patientbeacon.gatt.constants import (
    ATT_RSP_FOR,
    ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID,
    ATTR_PRIMARY_SERVICE_UUID,
    AttError,
    AttErrorCode,
    AttOp,
    att_error_response,
)
from patientbeacon.gatt.uuid import uuid16


def test_error_response_unsupported_request():
    assert att_error_response(0xFF, 0x0000, AttErrorCode.REQ_NOT_SUPP) == bytes.fromhex(
        "01ff000006"
    )


def test_error_response_attr_not_found():
    assert att_error_response(
        AttOp.READ_BY_TYPE_REQ, 4, AttErrorCode.ATTR_NOT_FOUND
    ) == bytes.fromhex("010804000a")


def test_error_response_unsupported_group_type():
    assert att_error_response(
        AttOp.READ_BY_GROUP_REQ, 1, AttErrorCode.UNSUPP_GRP_TYPE
    ) == bytes.fromhex("0110010010")


def test_error_response_handle_is_little_endian():
    rsp = att_error_response(AttOp.READ_REQ, 0x1234, AttErrorCode.INVALID_HANDLE)
    assert rsp[2:4] == (0x1234).to_bytes(2, "little")
    assert rsp[0] == AttOp.ERROR


def test_describe_known_codes():
    assert AttErrorCode.ATTR_NOT_FOUND.describe() == "attribute not found"
    assert AttErrorCode.REQ_NOT_SUPP.describe() == "request not supported"


@pytest.mark.parametrize("code", [0x12, 0x7F, 0x80, 0x9F, 0xA0, 0xDF])
def test_reserved_codes(code):
    assert str(AttError(code)) == "reserved error code"


@pytest.mark.parametrize("code", [0xE0, 0xFF])
def test_profile_codes(code):
    assert str(AttError(code)) == "profile or service error"


def test_att_error_wraps_known_code():
    err = AttError(0x02)
    assert err.code is AttErrorCode.READ_NOT_PERM
    assert str(err) == "read not permitted"
    with pytest.raises(AttError):
        raise err


def test_every_response_is_request_plus_one():
    for req, rsp in ATT_RSP_FOR.items():
        assert rsp == req + 1


def test_well_known_uuids():
    assert ATTR_PRIMARY_SERVICE_UUID == uuid16(0x2800)
    assert ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID == uuid16(0x2902)
    assert str(uuid16(0x2800)) == "2800"