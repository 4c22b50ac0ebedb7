"""Bluetooth Low Energy GATT building blocks: UUIDs, advertising, attribute table, ATT client and server."""