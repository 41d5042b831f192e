import base64
import unittest
from unittest.mock import Mock

import requests

from producecheck.api.client import ProduceCheckClient


def _response(payload: dict) -> Mock:
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class ProduceCheckClientTests(unittest.TestCase):
    def test_classify_posts_base64_image(self) -> None:
        session = Mock()
        session.request.return_value = _response({"id": "abc", "saved": True})
        client = ProduceCheckClient(base_url="http://localhost:8000/", session=session)

        result = client.classify(b"image-bytes", location={"latitude": 1.0, "longitude": 2.0})

        self.assertEqual(result["id"], "abc")
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        self.assertEqual(method, "POST")
        self.assertEqual(url, "http://localhost:8000/v1/classify")
        self.assertEqual(kwargs["json"]["image_base64"], base64.b64encode(b"image-bytes").decode("ascii"))
        self.assertEqual(kwargs["json"]["location"], {"latitude": 1.0, "longitude": 2.0})
        self.assertEqual(kwargs["timeout"], 20.0)

    def test_toggle_favorite_and_threshold(self) -> None:
        session = Mock()
        session.request.side_effect = [
            _response({"id": "abc", "is_favorite": True}),
            _response({"confidence_threshold": 0.45}),
        ]
        client = ProduceCheckClient(base_url="http://api", session=session)

        self.assertTrue(client.toggle_favorite("abc"))
        self.assertEqual(client.set_confidence_threshold(0.45), 0.45)
        self.assertEqual(session.request.call_args_list[0].args, ("POST", "http://api/v1/history/abc/favorite"))

    def test_request_errors_are_wrapped(self) -> None:
        session = Mock()
        session.request.side_effect = requests.ConnectionError("refused")
        client = ProduceCheckClient(base_url="http://api", session=session)

        with self.assertRaises(RuntimeError) as ctx:
            client.history()
        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)


if __name__ == "__main__":
    unittest.main()
