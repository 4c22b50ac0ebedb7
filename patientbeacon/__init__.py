"""Central node for a BLE patient beacon network: patient lookup, peer tracking and GATT tools."""

__version__ = "0.1.0"