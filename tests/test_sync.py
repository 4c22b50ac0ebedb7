import queue
import threading

from patientbeacon.network.peers import PeerUpdate
from patientbeacon.network.sync import _forward, peer_statuses
from patientbeacon.records import PeerStatus


def test_new_peer_comes_first():
    update = PeerUpdate(peers=["10.0.0.2"], new="10.0.0.2", lost=["10.0.0.3", "10.0.0.4"])
    assert peer_statuses(update) == [
        PeerStatus("10.0.0.2", True),
        PeerStatus("10.0.0.3", False),
        PeerStatus("10.0.0.4", False),
    ]


def test_only_lost_peers():
    update = PeerUpdate(peers=[], new="", lost=["10.0.0.3"])
    assert peer_statuses(update) == [PeerStatus("10.0.0.3", False)]


def test_empty_update_yields_nothing():
    assert peer_statuses(PeerUpdate()) == []


def test_forward_puts_statuses():
    updates = queue.Queue()
    online = queue.Queue()
    stop = threading.Event()
    updates.put(PeerUpdate(peers=["10.0.0.5"], new="10.0.0.5", lost=["10.0.0.6"]))
    t = threading.Thread(target=_forward, args=(updates, online, stop), daemon=True)
    t.start()
    first = online.get(timeout=2)
    second = online.get(timeout=2)
    stop.set()
    t.join(timeout=2)
    assert (first, second) == (PeerStatus("10.0.0.5", True), PeerStatus("10.0.0.6", False))
    assert not t.is_alive()