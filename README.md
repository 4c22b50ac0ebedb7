# patientbeacon

The central node of a small patient-tracking network. Beacon UUIDs reach
the node either on standard input or as UDP broadcasts from peer nodes;
the node looks each one up in a local patient directory and prints the
matching patient record. It also keeps track of which peers are online.

The package also holds the pieces of a GATT stack that such nodes are
built from: BLE UUIDs, advertising packets, the attribute table, an ATT
server for remote centrals and an ATT client for remote peripherals.

## Installing

    pip install .

To run the tests:

    pip install .[test]
    pytest

## Running the central node

    patientbeacon [--directory FILE] [--ip ADDRESS] [--offline]

- `--directory` is the patient directory file (default `UUIDdir.json`).
- `--ip` is this node's address; when omitted it is discovered with
  `patientbeacon.network.localip.local_ip()` (an empty address is used if
  that fails).
- `--offline` keeps the node from talking to peers.

Each non-empty line on standard input is taken as a beacon UUID. Unless
`--offline` is given, the node also announces itself to peers on UDP port
20004, follows which peers appear and go silent, and accepts UUID strings
broadcast on UDP port 15647. For every UUID found in the directory it
prints the record as `{NAME ID UUID LOCATION TIMESTAMP}`. The command
returns once standard input ends and the UUIDs read so far have been
handled.

## The patient directory

The directory is a JSON file of the form

    {"Users": [{"NAME": "Jane Doe", "ID": "0001", "UUID": "feed",
                "LOCATION": "Ward A", "TIMESTAMP": "2000-01-01T00:00:00"}]}

Field names are matched without regard to case.

- `patientbeacon.records.find_patient(uuid, path)` returns the `Patient`
  with that UUID, or `None` if there is none or the file cannot be read.
- `patientbeacon.records.write_patient(patient, path)` writes a single
  `Patient` as a JSON object (not wrapped in a `Users` list).
- `patientbeacon.lookup.UUIDHandler` takes `PeerStatus` values and UUID
  strings from a queue, updates the status of peer slots, and prints the
  patient behind each UUID.

`patientbeacon.records` also defines the `Message`, `AcknowledgeMessage`
and `PeerStatus` records.

## Network helpers

- `patientbeacon.network.localip.local_ip()` finds this host's outward
  IPv4 address (cached after the first success).
- `patientbeacon.network.conn.dial_broadcast_udp(port)` opens a UDP socket
  bound to the port with broadcast and address reuse enabled.
- `patientbeacon.network.peers.transmit` broadcasts a node id every 50 ms;
  `receive` turns heartbeats into `PeerUpdate` values, and a peer silent
  for about a second is reported lost. `PeerTracker` does the bookkeeping
  without sockets.
- `patientbeacon.network.bcast.encode` / `decode` write and read
  type-tagged JSON (`string`, `bool`, `int`, `float64` or a dataclass's
  name, followed by the JSON body); `transmit` and `receive` carry them
  over UDP broadcast.
- `patientbeacon.network.repeat.broadcast_message(message, send)` calls
  `send` every 30 ms for 150 ms.
- `patientbeacon.network.sync.sync(incoming, online_status, local_ip,
  stop_event)` joins these into a stream of received UUID strings and peer
  `PeerStatus` changes; `peer_statuses(update)` converts one `PeerUpdate`.

## GATT toolkit

    >>> from patientbeacon.gatt.uuid import uuid16, parse_uuid
    >>> str(uuid16(0x1800))
    '1800'
    >>> str(parse_uuid("34DA3AD1-7110-41A1-B1EF-4430F509CDE7"))
    '34da3ad1711041a1b1ef4430f509cde7'

- `patientbeacon.gatt.adv.AdvPacket` builds advertising and scan-response
  packets of at most 31 bytes; `Advertisement.unmarshal` parses them.
- `patientbeacon.gatt.common` defines `Service`, `Characteristic` and
  `Descriptor`, with static values or read, write and notify handlers.
- `patientbeacon.gatt.attr.generate_attributes(services, base)` lays the
  services out as an `AttributeRange`.
- `patientbeacon.gatt.server.RemoteCentral` answers ATT requests from a
  connected central over any object with `read`, `write` and `close`.
- `patientbeacon.gatt.client.RemotePeripheral` discovers, reads, writes
  and subscribes to the attributes of a connected peripheral over such a
  connection; its `run()` must be running for requests to complete.
- `patientbeacon.gatt.l2cap.L2capWriter` builds MTU-bounded responses.
- `patientbeacon.gatt.constants` holds ATT opcodes and error codes.
- `patientbeacon.gatt.known` names the services, characteristics and
  descriptors assigned by the Bluetooth specification.
- `patientbeacon.gatt.ioctl` encodes Linux ioctl request numbers.

## What the package does not do

It does not open a Bluetooth adapter, scan for beacons or accept BLE
connections itself: there is no HCI transport. Beacon UUIDs have to be
fed in on standard input or broadcast by peers, and the GATT client and
server work over whatever byte connection the caller supplies.