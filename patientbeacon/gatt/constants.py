"""ATT protocol constants and error codes from the BLE specification."""

from __future__ import annotations

from enum import IntEnum

from .uuid import uuid16

__all__ = [
    "AttOp",
    "AttErrorCode",
    "AttError",
    "att_error_response",
    "ATT_RSP_FOR",
    "GATT_CCC_NOTIFY_FLAG",
    "GATT_CCC_INDICATE_FLAG",
]

ATTR_GAP_UUID = uuid16(0x1800)
ATTR_GATT_UUID = uuid16(0x1801)

ATTR_PRIMARY_SERVICE_UUID = uuid16(0x2800)
ATTR_SECONDARY_SERVICE_UUID = uuid16(0x2801)
ATTR_INCLUDE_UUID = uuid16(0x2802)
ATTR_CHARACTERISTIC_UUID = uuid16(0x2803)

ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID = uuid16(0x2902)
ATTR_SERVER_CHARACTERISTIC_CONFIG_UUID = uuid16(0x2903)

ATTR_DEVICE_NAME_UUID = uuid16(0x2A00)
ATTR_APPEARANCE_UUID = uuid16(0x2A01)
ATTR_PERIPHERAL_PRIVACY_UUID = uuid16(0x2A02)
ATTR_RECONNECTION_ADDR_UUID = uuid16(0x2A03)
ATTR_PREFERRED_PARAMS_UUID = uuid16(0x2A04)
ATTR_SERVICE_CHANGED_UUID = uuid16(0x2A05)

GATT_CCC_NOTIFY_FLAG = 0x0001
GATT_CCC_INDICATE_FLAG = 0x0002


class AttOp(IntEnum):
    """ATT protocol opcodes."""

    ERROR = 0x01
    MTU_REQ = 0x02
    MTU_RSP = 0x03
    FIND_INFO_REQ = 0x04
    FIND_INFO_RSP = 0x05
    FIND_BY_TYPE_VALUE_REQ = 0x06
    FIND_BY_TYPE_VALUE_RSP = 0x07
    READ_BY_TYPE_REQ = 0x08
    READ_BY_TYPE_RSP = 0x09
    READ_REQ = 0x0A
    READ_RSP = 0x0B
    READ_BLOB_REQ = 0x0C
    READ_BLOB_RSP = 0x0D
    READ_MULTI_REQ = 0x0E
    READ_MULTI_RSP = 0x0F
    READ_BY_GROUP_REQ = 0x10
    READ_BY_GROUP_RSP = 0x11
    WRITE_REQ = 0x12
    WRITE_RSP = 0x13
    WRITE_CMD = 0x52
    PREP_WRITE_REQ = 0x16
    PREP_WRITE_RSP = 0x17
    EXEC_WRITE_REQ = 0x18
    EXEC_WRITE_RSP = 0x19
    HANDLE_NOTIFY = 0x1B
    HANDLE_IND = 0x1D
    HANDLE_CNF = 0x1E
    SIGNED_WRITE_CMD = 0xD2


_ERROR_NAMES = {
    0x00: "success",
    0x01: "invalid handle",
    0x02: "read not permitted",
    0x03: "write not permitted",
    0x04: "invalid PDU",
    0x05: "insufficient authentication",
    0x06: "request not supported",
    0x07: "invalid offset",
    0x08: "insufficient authorization",
    0x09: "prepare queue full",
    0x0A: "attribute not found",
    0x0B: "attribute not long",
    0x0C: "insufficient encryption key size",
    0x0D: "invalid attribute value length",
    0x0E: "unlikely error",
    0x0F: "insufficient encryption",
    0x10: "unsupported group type",
    0x11: "insufficient resources",
}


def _describe(code: int) -> str:
    if code < 0x11:
        return _ERROR_NAMES[code]
    if 0x12 <= code <= 0x7F or 0x80 <= code <= 0x9F or 0xA0 <= code <= 0xDF:
        return "reserved error code"
    if 0xE0 <= code <= 0xFF:
        return "profile or service error"
    return "unknown error"


class AttErrorCode(IntEnum):
    """ATT error response codes."""

    SUCCESS = 0x00
    INVALID_HANDLE = 0x01
    READ_NOT_PERM = 0x02
    WRITE_NOT_PERM = 0x03
    INVALID_PDU = 0x04
    AUTHENTICATION = 0x05
    REQ_NOT_SUPP = 0x06
    INVALID_OFFSET = 0x07
    AUTHORIZATION = 0x08
    PREP_QUEUE_FULL = 0x09
    ATTR_NOT_FOUND = 0x0A
    ATTR_NOT_LONG = 0x0B
    INSUFF_ENCR_KEY_SIZE = 0x0C
    INVAL_ATTR_VALUE_LEN = 0x0D
    UNLIKELY = 0x0E
    INSUFF_ENC = 0x0F
    UNSUPP_GRP_TYPE = 0x10
    INSUFF_RESOURCES = 0x11

    def describe(self) -> str:
        """Human-readable description of the error code."""
        return _describe(int(self))


class AttError(Exception):
    """An ATT error reported by the remote side."""

    def __init__(self, code: int) -> None:
        try:
            self.code: int = AttErrorCode(code)
        except ValueError:
            self.code = code
        super().__init__(_describe(int(code)))


ATT_RSP_FOR = {
    AttOp.MTU_REQ: AttOp.MTU_RSP,
    AttOp.FIND_INFO_REQ: AttOp.FIND_INFO_RSP,
    AttOp.FIND_BY_TYPE_VALUE_REQ: AttOp.FIND_BY_TYPE_VALUE_RSP,
    AttOp.READ_BY_TYPE_REQ: AttOp.READ_BY_TYPE_RSP,
    AttOp.READ_REQ: AttOp.READ_RSP,
    AttOp.READ_BLOB_REQ: AttOp.READ_BLOB_RSP,
    AttOp.READ_MULTI_REQ: AttOp.READ_MULTI_RSP,
    AttOp.READ_BY_GROUP_REQ: AttOp.READ_BY_GROUP_RSP,
    AttOp.WRITE_REQ: AttOp.WRITE_RSP,
    AttOp.PREP_WRITE_REQ: AttOp.PREP_WRITE_RSP,
    AttOp.EXEC_WRITE_REQ: AttOp.EXEC_WRITE_RSP,
}


def att_error_response(op: int, handle: int, code: int) -> bytes:
    """Encode an ATT error response PDU for request op at the given handle."""
    return bytes(
        [AttOp.ERROR, op & 0xFF, handle & 0xFF, (handle >> 8) & 0xFF, int(code) & 0xFF]
    )