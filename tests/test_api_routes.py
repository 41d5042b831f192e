import base64
import io
import json
import random
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from PIL import Image

from producecheck.ai.heuristic import HeuristicQualityModel
from producecheck.api.config_loader import AppConfig, ClassifierSettings, StorageSettings
from producecheck.api.server import create_app
from producecheck.api.service import ClassificationEngine
from producecheck.history.storage import FileBlobStore
from producecheck.history.store import SNAPSHOT_KEY, ResultStore


def _encode_image(color: tuple[int, int, int], size: tuple[int, int] = (300, 300)) -> str:
    img = Image.new("RGB", size, color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


class ApiRoutesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp.name)
        self.config = AppConfig(
            storage=StorageSettings(state_dir=self.tmp_path / "state"),
            classifier=ClassifierSettings(seed=1, noise_amplitude=0.0),
        )

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_classify_saves_to_history_and_favorites(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            response = client.post("/v1/classify", json={"image_base64": _encode_image((230, 130, 10))})
            self.assertEqual(response.status_code, 200)
            verdict = response.json()
            self.assertTrue(verdict["saved"])
            self.assertEqual(verdict["primary_result"]["label"], "Good Quality")
            self.assertEqual(verdict["badge"], "Good Quality")
            self.assertTrue(verdict["image_ref"].startswith("bytes:"))

            history = client.get("/v1/history").json()
            self.assertEqual(history["count"], 1)
            self.assertEqual(history["entries"][0]["id"], verdict["id"])

            favorite = client.post(f"/v1/history/{verdict['id']}/favorite").json()
            self.assertEqual(favorite, {"id": verdict["id"], "is_favorite": True})
            self.assertEqual(client.get("/v1/favorites").json(), {"favorites": [verdict["id"]]})

            notes = client.patch(f"/v1/history/{verdict['id']}", json={"notes": "crate 7"})
            self.assertEqual(notes.status_code, 200)
            self.assertEqual(notes.json()["notes"], "crate 7")

            self.assertEqual(client.delete(f"/v1/history/{verdict['id']}").json(), {"count": 0})
            self.assertEqual(client.get("/v1/favorites").json(), {"favorites": []})

        snapshot = json.loads((self.tmp_path / "state" / f"{SNAPSHOT_KEY}.json").read_text(encoding="utf-8"))
        self.assertEqual(snapshot["history"], [])

    def test_auto_save_disabled_skips_history(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            settings = client.patch("/v1/settings", json={"auto_save": False}).json()
            self.assertFalse(settings["auto_save"])
            self.assertTrue(settings["location_tracking"])

            response = client.post(
                "/v1/classify",
                json={
                    "image_base64": _encode_image((230, 130, 10)),
                    "location": {"latitude": 37.4, "longitude": -122.1, "address": "Farm"},
                },
            )
            self.assertFalse(response.json()["saved"])
            self.assertEqual(response.json()["location"]["address"], "Farm")
            self.assertEqual(client.get("/v1/history").json()["count"], 0)

    def test_unreadable_image_is_reported_as_data(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            response = client.post("/v1/classify", json={"image_path": str(self.tmp_path / "missing.jpg")})
            self.assertEqual(response.status_code, 200)
            verdict = response.json()
            self.assertEqual(verdict["primary_result"]["confidence"], 0.0)
            self.assertTrue(verdict["fallback_result"]["reason"])
            self.assertFalse(verdict["image_quality"]["is_valid"])

            check = client.post("/v1/quality-check", json={"image_path": str(self.tmp_path / "missing.jpg")})
            self.assertEqual(check.status_code, 200)
            self.assertFalse(check.json()["is_valid"])

    def test_quality_check_reports_small_image(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            report = client.post(
                "/v1/quality-check", json={"image_base64": _encode_image((5, 5, 5), size=(100, 100))}
            ).json()

        self.assertFalse(report["is_valid"])
        self.assertEqual(report["resolution"], {"width": 100, "height": 100})
        self.assertIn("Image too small: 100x100 (minimum: 224x224)", report["issues"])

    def test_request_validation(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            self.assertEqual(client.post("/v1/classify", json={}).status_code, 422)
            both = {"image_path": "a.jpg", "image_base64": _encode_image((1, 2, 3))}
            self.assertEqual(client.post("/v1/classify", json=both).status_code, 422)
            bad = client.post("/v1/classify", json={"image_base64": "not base64!!"})
            self.assertEqual(bad.status_code, 400)
            self.assertEqual(client.get("/v1/history/unknown").status_code, 404)
            self.assertEqual(client.patch("/v1/history/unknown", json={"notes": "x"}).status_code, 404)

    def test_threshold_update_is_clamped_and_persisted(self) -> None:
        app = create_app(config=self.config)

        with TestClient(app) as client:
            response = client.put("/v1/confidence-threshold", json={"threshold": 1.5})
            self.assertEqual(response.json(), {"confidence_threshold": 1.0})
            self.assertEqual(client.get("/v1/model").json()["confidence_threshold"], 1.0)
            self.assertEqual(client.get("/v1/settings").json()["confidence_threshold"], 1.0)

        restarted = create_app(config=self.config)
        self.assertEqual(restarted.state.engine.confidence_threshold, 1.0)

    def test_theme_toggle_and_clear(self) -> None:
        store = ResultStore(FileBlobStore(self.tmp_path / "custom"))
        engine = ClassificationEngine(
            classifier=HeuristicQualityModel(rng=random.Random(3), noise_amplitude=0.0)
        )
        app = create_app(config=self.config, engine=engine, store=store)

        with TestClient(app) as client:
            self.assertEqual(client.get("/health").json(), {"status": "ok"})
            self.assertEqual(client.post("/v1/theme/toggle").json(), {"theme": "dark"})
            self.assertEqual(client.get("/v1/settings").json()["theme"], "dark")
            client.post("/v1/classify", json={"image_base64": _encode_image((230, 130, 10))})
            client.post("/v1/classify", json={"image_base64": _encode_image((20, 60, 200))})
            self.assertEqual(client.get("/v1/history").json()["count"], 2)
            self.assertEqual(client.delete("/v1/history").json(), {"count": 0})

        self.assertEqual(store.history, ())
        self.assertEqual(store.theme, "dark")


if __name__ == "__main__":
    unittest.main()
