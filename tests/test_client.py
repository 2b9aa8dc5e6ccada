import unittest
from unittest import mock

import requests

from smartcal.client import TimetableClient
from smartcal.errors import FetchError, FetchSetupError, NoResponseError, UpstreamHTTPError


def _response(status: int = 200, payload=None, text: str = "") -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    resp.reason = "Not Found" if status == 404 else "OK"
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class TestTimetableClient(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock(spec=requests.Session)
        self.session.headers = {}
        self.client = TimetableClient(timeout=10.0, user_agent="UA", session=self.session)

    def test_sends_timeout_and_headers(self) -> None:
        self.session.get.return_value = _response(payload=[{"title": "A"}])
        data = self.client.fetch_events("https://example.com/t")

        self.assertEqual(data, [{"title": "A"}])
        _, kwargs = self.session.get.call_args
        self.assertEqual(kwargs["timeout"], 10.0)
        self.assertEqual(kwargs["headers"]["Accept"], "application/json")
        self.assertEqual(self.session.headers["User-Agent"], "UA")

    def test_http_error_status(self) -> None:
        self.session.get.return_value = _response(status=404)
        with self.assertRaises(UpstreamHTTPError) as ctx:
            self.client.fetch_events("https://example.com/t")
        self.assertEqual(ctx.exception.status, 404)

    def test_timeout_is_no_response(self) -> None:
        self.session.get.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(NoResponseError):
            self.client.fetch_events("https://example.com/t")

    def test_connection_error_is_no_response(self) -> None:
        self.session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(NoResponseError):
            self.client.fetch_events("https://example.com/t")

    def test_bad_url_is_setup_error(self) -> None:
        self.session.get.side_effect = requests.exceptions.MissingSchema("no schema")
        with self.assertRaises(FetchSetupError):
            self.client.fetch_events("example.com")

    def test_invalid_json(self) -> None:
        self.session.get.return_value = _response(payload=None)
        with self.assertRaises(FetchError):
            self.client.fetch_json("https://example.com/t")

    def test_non_list_payload_means_no_events(self) -> None:
        self.session.get.return_value = _response(payload={"error": "x"})
        self.assertEqual(self.client.fetch_events("https://example.com/t"), [])


if __name__ == "__main__":
    unittest.main()
