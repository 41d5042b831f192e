from __future__ import annotations

import base64
import binascii
import logging
import random
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException

from ..ai.features import ImageFeatureProbe
from ..ai.heuristic import HeuristicQualityModel
from ..capture.source import ImageRef
from ..history.storage import FileBlobStore
from ..history.store import SNAPSHOT_KEY, ResultStore
from .config_loader import AppConfig
from .quality_gate import QualityGate
from .schemas import (
    ClassifyRequest,
    FavoriteResponse,
    ImagePayload,
    NotesUpdate,
    SettingsUpdate,
    ThresholdUpdate,
)
from .service import ClassificationEngine
from .verdict import Location


logger = logging.getLogger(__name__)


def build_engine(config: AppConfig) -> ClassificationEngine:
    probe = ImageFeatureProbe()
    cfg = config.classifier
    model = HeuristicQualityModel(
        probe=probe,
        labels_path=cfg.labels_path,
        rng=random.Random(cfg.seed),
        noise_amplitude=cfg.noise_amplitude,
    )
    gate_cfg = config.quality_gate
    gate = QualityGate(
        probe=probe,
        min_width=gate_cfg.min_width,
        min_height=gate_cfg.min_height,
        min_brightness=gate_cfg.min_brightness,
        max_blur=gate_cfg.max_blur,
    )
    return ClassificationEngine(
        classifier=model,
        probe=probe,
        quality_gate=gate,
        confidence_threshold=cfg.confidence_threshold,
    )


def _decode_image(payload: ImagePayload) -> ImageRef:
    if payload.image_base64:
        try:
            return base64.b64decode(payload.image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=400, detail="Invalid base64 image payload") from exc
    return Path(payload.image_path or "")


def create_app(
    config: AppConfig | None = None,
    engine: ClassificationEngine | None = None,
    store: ResultStore | None = None,
) -> FastAPI:
    cfg = config or AppConfig()
    selected_engine = engine or build_engine(cfg)
    if store is None:
        backend = FileBlobStore(root=Path(cfg.storage.state_dir))
        store = ResultStore(backend=backend, key=cfg.storage.snapshot_key or SNAPSHOT_KEY)
    result_store = store

    selected_engine.initialize()
    # A restored snapshot carries the user's threshold; otherwise seed it from config.
    if result_store.restored:
        selected_engine.set_confidence_threshold(result_store.settings.confidence_threshold)
    elif result_store.settings.confidence_threshold != selected_engine.confidence_threshold:
        result_store.update_settings(confidence_threshold=selected_engine.confidence_threshold)

    app = FastAPI(title="ProduceCheck API", version="0.1.0")
    app.state.engine = selected_engine
    app.state.store = result_store

    logger.info(
        "API server initialised model=%s threshold=%.2f history=%d",
        selected_engine.model_version,
        selected_engine.confidence_threshold,
        len(result_store.history),
    )

    def _entry_or_404(entry_id: str) -> dict[str, Any]:
        entry = result_store.get(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Unknown history entry {entry_id}")
        return entry.to_dict()

    @app.get("/health", response_model=dict[str, str])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/v1/model")
    def model_info() -> dict[str, Any]:
        return selected_engine.model_info()

    @app.post("/v1/classify")
    def classify(request: ClassifyRequest) -> dict[str, Any]:
        image_ref = _decode_image(request)
        location = (
            Location(
                latitude=request.location.latitude,
                longitude=request.location.longitude,
                address=request.location.address,
            )
            if request.location is not None
            else None
        )
        verdict = selected_engine.classify(image_ref, location=location)
        saved = False
        if result_store.settings.auto_save:
            result_store.append(verdict)
            saved = True
        logger.info(
            "Classify request id=%s label=%s saved=%s",
            verdict.id,
            verdict.primary_result.label,
            saved,
        )
        return {**verdict.to_dict(), "saved": saved}

    @app.post("/v1/quality-check")
    def quality_check(request: ImagePayload) -> dict[str, Any]:
        return selected_engine.check_quality(_decode_image(request)).to_dict()

    @app.put("/v1/confidence-threshold")
    def set_confidence_threshold(update: ThresholdUpdate) -> dict[str, float]:
        selected_engine.set_confidence_threshold(update.threshold)
        result_store.update_settings(confidence_threshold=selected_engine.confidence_threshold)
        return {"confidence_threshold": selected_engine.get_confidence_threshold()}

    @app.get("/v1/history")
    def list_history() -> dict[str, Any]:
        entries = [entry.to_dict() for entry in result_store.history]
        return {"count": len(entries), "entries": entries}

    @app.delete("/v1/history")
    def clear_history() -> dict[str, int]:
        result_store.clear()
        return {"count": 0}

    @app.get("/v1/history/{entry_id}")
    def get_history_entry(entry_id: str) -> dict[str, Any]:
        return _entry_or_404(entry_id)

    @app.patch("/v1/history/{entry_id}")
    def update_history_entry(entry_id: str, update: NotesUpdate) -> dict[str, Any]:
        if result_store.update_entry(entry_id, notes=update.notes) is None:
            raise HTTPException(status_code=404, detail=f"Unknown history entry {entry_id}")
        return _entry_or_404(entry_id)

    @app.delete("/v1/history/{entry_id}")
    def remove_history_entry(entry_id: str) -> dict[str, int]:
        result_store.remove(entry_id)
        return {"count": len(result_store.history)}

    @app.post("/v1/history/{entry_id}/favorite", response_model=FavoriteResponse)
    def toggle_favorite(entry_id: str) -> FavoriteResponse:
        return FavoriteResponse(id=entry_id, is_favorite=result_store.toggle_favorite(entry_id))

    @app.get("/v1/favorites")
    def list_favorites() -> dict[str, Any]:
        return {"favorites": list(result_store.favorites)}

    @app.get("/v1/settings")
    def read_settings() -> dict[str, Any]:
        return {**result_store.settings.to_dict(), "theme": result_store.theme}

    @app.patch("/v1/settings")
    def update_settings(update: SettingsUpdate) -> dict[str, Any]:
        changes = update.model_dump(exclude_none=True)
        try:
            settings = result_store.update_settings(changes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        selected_engine.set_confidence_threshold(settings.confidence_threshold)
        return {**settings.to_dict(), "theme": result_store.theme}

    @app.post("/v1/theme/toggle")
    def toggle_theme() -> dict[str, str]:
        return {"theme": result_store.toggle_theme()}

    return app


__all__ = ["build_engine", "create_app"]
