from fastapi import FastAPI, BackgroundTasks, HTTPException
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel
from typing import List
import uuid
import os

from playlist_card_forge.backend.deck import CardRecord, DeckImportError, extract_playlist_id, fetch_spotify_playlist
from playlist_card_forge.backend.engine import (
    CardEngine, DEFAULT_CUT_LINE_COLOR, DEFAULT_CUT_LINE_THICKNESS_MM, DEFAULT_FILENAME,
)
from playlist_card_forge.backend.layout import PAGE_PADDING_MM, SheetGeometry

OUTPUT_DIR = os.path.join(os.getcwd(), "Output")

app = FastAPI()

# In-memory job store
jobs = {}

class JobStatus:
    def __init__(self):
        self.status = "pending"
        self.messages = []
        self.progress = 0
        self.result_files = []

    def update(self, message):
        self.messages.append(message)
        # Simple heuristic progress update
        self.progress = min(99, self.progress + 2)

    def complete(self, files):
        self.status = "completed"
        self.progress = 100
        self.result_files = files

    def fail(self, error):
        self.status = "failed"
        self.messages.append(f"Error: {str(error)}")

class GenerateRequest(BaseModel):
    cards: List[CardRecord]
    padding: float = PAGE_PADDING_MM
    filename: str = DEFAULT_FILENAME
    cut_line_color: str = DEFAULT_CUT_LINE_COLOR
    cut_line_thickness: float = DEFAULT_CUT_LINE_THICKNESS_MM

class PlaylistRequest(BaseModel):
    playlist: str
    access_token: str

def build_engine(request: GenerateRequest, progress_callback=None):
    try:
        geometry = SheetGeometry(padding=request.padding)
        return CardEngine(
            progress_callback=progress_callback,
            geometry=geometry,
            cut_line_color=request.cut_line_color,
            cut_line_thickness_mm=request.cut_line_thickness,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

def run_engine_task(job_id: str, request: GenerateRequest, engine: CardEngine):
    job = jobs[job_id]
    job.status = "running"
    try:
        path = engine.write_pdf(request.cards, os.path.join(OUTPUT_DIR, job_id), os.path.basename(request.filename))
        job.complete([path] if path else [])
    except Exception as e:
        job.fail(e)

@app.post("/api/generate")
async def generate_cards(request: GenerateRequest, background_tasks: BackgroundTasks):
    job_id = str(uuid.uuid4())
    jobs[job_id] = JobStatus()
    engine = build_engine(request, progress_callback=jobs[job_id].update)
    background_tasks.add_task(run_engine_task, job_id, request, engine)
    return {"job_id": job_id}

@app.post("/api/pdf")
async def generate_pdf(request: GenerateRequest):
    engine = build_engine(request, progress_callback=lambda msg: None)
    try:
        pdf_bytes = await engine.generate(request.cards)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if pdf_bytes is None:
        raise HTTPException(status_code=400, detail="No cards to print")
    filename = os.path.basename(request.filename)
    return Response(content=pdf_bytes, media_type="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})

@app.post("/api/preview")
async def preview_cards(request: GenerateRequest):
    engine = build_engine(request, progress_callback=lambda msg: None)
    try:
        return {"pages": engine.get_deck_structure(request.cards)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.post("/api/import/playlist")
def import_playlist(request: PlaylistRequest):
    playlist_id = extract_playlist_id(request.playlist)
    if not playlist_id:
        raise HTTPException(status_code=400, detail="Invalid playlist URL or ID")
    try:
        cards, meta = fetch_spotify_playlist(playlist_id, request.access_token, log=lambda msg: None)
    except DeckImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"name": meta['name'], "author": meta['author'],
            "cards": [card.model_dump(by_alias=True) for card in cards]}

@app.get("/api/status/{job_id}")
async def get_status(job_id: str):
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    job = jobs[job_id]
    return {
        "status": job.status,
        "progress": job.progress,
        "messages": job.messages,
        "files": [os.path.basename(f) for f in job.result_files] if job.result_files else []
    }

@app.get("/api/download/{job_id}/{filename}")
async def download_file(job_id: str, filename: str):
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    # Only files the job itself produced
    for path in jobs[job_id].result_files:
        if os.path.basename(path) == filename and os.path.isfile(path):
            return FileResponse(path, filename=filename, media_type="application/pdf")
    raise HTTPException(status_code=404, detail="File not found")
