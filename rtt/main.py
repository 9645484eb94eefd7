from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, settings
from .core.errors import AnalysisInProgressError
from .core.state import ApplicationState, StateStore
from .core.telemetry import Telemetry
from .ui.session import AnalysisSession
from .vision.overlay import draw_price_levels
from .vision.pipeline import AnalysisClient
from .vision.preprocess import first_image_item
from .vision.prompt import PromptProvider
from .vision.schema import Language

STATIC_DIR = Path(__file__).parent / "static"

logger = logging.getLogger("rtt")


def build_session(s: Settings) -> AnalysisSession:
    try:
        language = Language(s.default_language)
    except ValueError:
        language = Language.EN
    return AnalysisSession(
        store=StateStore(ApplicationState(language=language)),
        prompts=PromptProvider(s.prompt_path, s.knowledge_files, s.knowledge_dir),
        analyzer=AnalysisClient.from_settings(s),
        telemetry=Telemetry(s.log_endpoint),
    )


def create_app(session: AnalysisSession | None = None, s: Settings = settings) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="RTT Chart Analyzer")
    app.state.session = session or build_session(s)
    app.state.settings = s
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    def _session(request: Request) -> AnalysisSession:
        return request.app.state.session

    async def _read_capped(upload: UploadFile) -> bytes:
        # one byte past the cap is enough to tell it was exceeded
        raw = await upload.read(s.max_upload_bytes + 1)
        if len(raw) > s.max_upload_bytes:
            raise HTTPException(status_code=413, detail=f"Upload too large (max {s.max_upload_bytes} bytes)")
        return raw

    async def _read_upload(upload: UploadFile, field: str) -> bytes:
        raw = await _read_capped(upload)
        if not raw:
            raise HTTPException(status_code=400, detail=f"Empty image upload ({field})")
        return raw

    @app.get("/")
    def root():
        return FileResponse(STATIC_DIR / "index.html")

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/v1/view")
    def view(request: Request):
        return _session(request).view()

    @app.post("/v1/image")
    async def select_image(request: Request, image: UploadFile = File(...)):
        raw = await _read_upload(image, "image")
        try:
            return await _session(request).select_image(raw, image.content_type, image.filename)
        except AnalysisInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.post("/v1/paste")
    async def paste_image(request: Request, items: List[UploadFile] = File(...)):
        """Clipboard paste: only the first image item is used."""
        candidates = []
        for it in items:
            candidates.append((it.content_type or "", await _read_capped(it)))
        picked = first_image_item(candidates)
        if picked is None:
            raise HTTPException(status_code=400, detail="Clipboard contains no image")

        mime, raw = picked
        try:
            return await _session(request).select_image(raw, mime, "clipboard")
        except AnalysisInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.post("/v1/analyze")
    async def analyze(request: Request, context: str = Form("")):
        sess = _session(request)
        if sess.store.get().selected_image is None:
            raise HTTPException(status_code=400, detail="No image selected")
        try:
            return await sess.submit(context)
        except AnalysisInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.post("/v1/language")
    def language(request: Request, lang: str | None = Form(None)):
        sess = _session(request)
        if lang in (None, ""):
            return sess.toggle_language()
        try:
            return sess.set_language(lang)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unsupported language: {lang}")

    @app.get("/v1/share")
    async def share(request: Request):
        sess = _session(request)
        text = sess.share()
        if text is None:
            raise HTTPException(status_code=404, detail="No analysis to share")
        await sess.telemetry.log("Analysis copied to clipboard", "SUCCESS")
        return {"text": text}

    @app.get("/v1/overlay.png")
    def overlay(request: Request):
        state = _session(request).store.get()
        if state.selected_image is None or state.last_result is None:
            raise HTTPException(status_code=404, detail="No analysed image")
        levels = state.last_result.structured_fields.priceLevels
        if not levels:
            raise HTTPException(status_code=404, detail="Analysis has no price levels")
        return Response(content=draw_price_levels(state.selected_image, levels), media_type="image/png")

    @app.post("/v1/reset")
    def reset(request: Request):
        try:
            return _session(request).reset()
        except AnalysisInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.post("/log")
    async def collect_log(request: Request):
        """Sink for XML log records posted by the telemetry logger."""
        body = (await request.body()).decode("utf-8", errors="replace").strip()
        if not body:
            raise HTTPException(status_code=400, detail="Empty log record")
        log_path = Path(s.log_file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write(body + "\n")
        return {"ok": True}

    return app


app = create_app()
