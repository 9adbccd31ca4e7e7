import logging
from dataclasses import asdict
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from starlette.requests import Request

from learner.board import board_from_cells, board_from_fen
from learner.config import Settings
from learner.learner import Learner, document_summary, export_filename

logger = logging.getLogger(__name__)

settings = Settings()
learner = Learner.from_settings(settings)

app = FastAPI(title="Rchess Learner")


# --- Request/Response models ---

class StartRequest(BaseModel):
    players: dict[str, str] | None = None


class PositionRequest(BaseModel):
    board: list[list[dict[str, Any] | None]] | None = None
    fen: str | None = None
    side_to_move: Literal["white", "black"] = "white"
    move: str | None = None


class EndRequest(BaseModel):
    result: str


def _game_dict(game) -> dict | None:
    return game.to_dict() if game is not None else None


# --- Endpoints ---

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/status")
async def status():
    return document_summary(learner)


@app.post("/api/game/start")
async def start_game(req: StartRequest | None = None):
    game = learner.start_game(req.players if req else None)
    return {"game": game.to_dict()}


@app.post("/api/game/position")
async def record_position(req: PositionRequest):
    try:
        if req.fen is not None:
            board, side = board_from_fen(req.fen)
        elif req.board is not None:
            board, side = board_from_cells(req.board), req.side_to_move
        else:
            raise ValueError("Either board or fen is required")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    key = learner.record_position(board, side, req.move)
    return {"hash": key, "game_id": learner.session.current_game.id}


@app.post("/api/game/end")
async def end_game(req: EndRequest):
    try:
        game = learner.end_game(req.result)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"game": _game_dict(game)}


@app.get("/api/positions/{key}")
async def position_stats(key: str):
    record = learner.position_stats(key)
    if record is None:
        raise HTTPException(status_code=404, detail="Position not found")
    return record.to_dict()


@app.get("/api/positions/{key}/suggestions")
async def suggestions(key: str, side: Literal["white", "black"] = "white"):
    return [asdict(s) for s in learner.suggest_moves(key, side)]


@app.get("/api/inconsistencies")
async def inconsistencies(threshold: float | None = None):
    if threshold is None:
        threshold = settings.inconsistency_threshold
    return [asdict(i) for i in learner.find_inconsistencies(threshold)]


@app.get("/api/openings")
async def openings(depth: int | None = None, limit: int | None = None):
    try:
        lines = learner.opening_tree(
            depth if depth is not None else settings.opening_depth,
            min(limit if limit is not None else settings.opening_limit, settings.opening_limit),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [asdict(line) for line in lines]


@app.get("/api/patterns")
async def patterns():
    return [asdict(s) for s in learner.pattern_summary()]


@app.get("/api/export")
async def export():
    return Response(
        content=learner.export(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@app.post("/api/import")
async def import_document(request: Request):
    text = (await request.body()).decode("utf-8", errors="replace")
    if not learner.import_document(text):
        logger.warning("Import of %d bytes failed", len(text))
        raise HTTPException(status_code=400, detail="Import failed")
    return document_summary(learner)


@app.post("/api/reset")
async def reset():
    saved = learner.reset()
    return {"saved": saved, **document_summary(learner)}
