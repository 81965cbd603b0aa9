import time
import unittest

from fastapi.testclient import TestClient

from app import app
from backend import presence_backend
from realtime.events import SEARCHING_MESSAGE, RealtimeHub


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class WebSocketFlowTests(unittest.TestCase):
    def setUp(self):
        presence_backend.reset()
        self.hub = RealtimeHub(presence_backend, enforce_pairing=False, notify_failures=False)
        app.state.hub = self.hub
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def connect(self):
        ws = self.client.websocket_connect("/ws")
        session = ws.__enter__()
        welcome = session.receive_json()
        self.assertEqual(welcome["type"], "system")
        return ws, session, welcome["connection_id"]

    def test_pairing_and_matched_signaling(self):
        ws1, s1, c1 = self.connect()
        ws2, s2, c2 = self.connect()
        try:
            s1.send_json({"type": "request-pair"})
            self.assertEqual(s1.receive_json(), {"type": "match-status", "message": SEARCHING_MESSAGE})

            s2.send_json({"type": "request-pair"})
            self.assertEqual(s2.receive_json(), {"type": "partner-found", "partner": c1})
            self.assertEqual(s1.receive_json(), {"type": "partner-found", "partner": c2})

            s1.send_json({"type": "offer-m", "data": {"payload": {"sdp": "v=0"}, "target": c2}})
            self.assertEqual(s2.receive_json(), {"type": "offer-m", "payload": {"sdp": "v=0"}, "from": c1})

            s2.send_json({"type": "answer-m", "data": {"payload": {"sdp": "v=0"}, "target": c1}})
            self.assertEqual(s1.receive_json(), {"type": "answer-m", "payload": {"sdp": "v=0"}, "from": c2})
        finally:
            ws2.__exit__(None, None, None)
            ws1.__exit__(None, None, None)

    def test_waiting_connection_disconnect_clears_slot(self):
        ws1, s1, c1 = self.connect()
        s1.send_json({"type": "request-pair"})
        s1.receive_json()
        self.assertEqual(self.hub.rendezvous.waiting, c1)
        ws1.__exit__(None, None, None)

        self.assertTrue(wait_for(lambda: self.hub.rendezvous.waiting is None))

        ws2, s2, c2 = self.connect()
        try:
            s2.send_json({"type": "request-pair"})
            self.assertEqual(s2.receive_json(), {"type": "match-status", "message": SEARCHING_MESSAGE})
            self.assertEqual(self.hub.rendezvous.waiting, c2)
        finally:
            ws2.__exit__(None, None, None)

    def test_bad_messages_keep_socket_open(self):
        ws1, s1, c1 = self.connect()
        try:
            s1.send_text("definitely not json")
            s1.send_json({"type": "offer-m", "data": {"payload": "sdp", "target": "missing"}})
            s1.send_json({"type": "request-pair"})
            # Nothing came back for the dropped events
            self.assertEqual(s1.receive_json(), {"type": "match-status", "message": SEARCHING_MESSAGE})
        finally:
            ws1.__exit__(None, None, None)

    def test_go_live_presence_and_direct_signaling(self):
        ws1, s1, c1 = self.connect()
        ws2, s2, c2 = self.connect()
        try:
            s1.send_json({"type": "go-live", "data": "acct-1"})
            # request-pair is answered only after go-live has been handled
            s1.send_json({"type": "request-pair"})
            s1.receive_json()
            self.assertTrue(wait_for(lambda: presence_backend.is_live("acct-1")))

            response = self.client.get("/presence/acct-1")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), {"account_id": "acct-1", "is_live": True})

            s2.send_json({"type": "join-stream", "data": {"account_id": "acct-2", "target_account_id": "acct-1"}})
            self.assertEqual(s1.receive_json(), {"type": "viewer-joined", "account_id": "acct-2"})

            s2.send_json({"type": "ice-candidate", "data": {"payload": {"candidate": "c"}, "target_account_id": "acct-1"}})
            self.assertEqual(s1.receive_json(), {"type": "ice-candidate", "payload": {"candidate": "c"}, "from": c2})
        finally:
            ws2.__exit__(None, None, None)
            ws1.__exit__(None, None, None)

        self.assertTrue(wait_for(lambda: not presence_backend.is_live("acct-1")))


class HttpRoutesTests(unittest.TestCase):
    def setUp(self):
        presence_backend.reset()
        app.state.hub = RealtimeHub(presence_backend, enforce_pairing=False, notify_failures=False)
        self.client = TestClient(app)

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "success")

    def test_presence_defaults_to_not_live(self):
        response = self.client.get("/presence/unknown")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_live"])

    def test_match_status(self):
        app.state.hub.rendezvous.request_pair("c1")
        response = self.client.get("/match/status")
        self.assertEqual(response.json(), {"waiting": True, "local_connections": 0})


if __name__ == "__main__":
    unittest.main()
