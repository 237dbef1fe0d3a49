import logging
import random
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from prepigo.consts import VERSION
from prepigo.domain.errors import ConfigError, ContainerNotFound

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("prepigo.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"prepigo server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("prepigo server shutting down...")


app = FastAPI(
    title="prepigo server",
    description="Study-queue and due-count service for prepigo collections.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


def _open_repository(collection_path: str | None):
    from prepigo.application.config import resolve_config
    from prepigo.application.factory import get_collection_repository

    config = resolve_config({"collection_path": collection_path})
    return config, get_collection_repository(config)


class QueueRequest(BaseModel):
    # If None, every root container of `kind` is studied.
    container_ids: list[str] | None = None
    kind: Literal["deck", "bank"] = "deck"
    collection_path: str | None = None
    seed: int | None = None
    include_exams: bool = True


class QueueEntry(BaseModel):
    id: str
    exam: str | None = None


class QueueResponse(BaseModel):
    items: list[QueueEntry]
    new_count: int
    review_count: int
    learning_count: int


@app.post("/queue", response_model=QueueResponse)
async def build_queue(req: QueueRequest):
    """
    Build the current study queue for a collection.
    """
    from prepigo.application.queue_builder import build_session_queue
    from prepigo.application.tree import find_container

    logger.info(f"Queue requested via API: {req}")

    try:
        config, repo = _open_repository(req.collection_path)
        now = datetime.now(timezone.utc)

        forest = repo.load_forest(req.kind)
        selected = (
            [find_container(forest, cid) for cid in req.container_ids]
            if req.container_ids
            else forest
        )
        seed = req.seed if req.seed is not None else config.seed
        result = build_session_queue(
            selected,
            forest,
            repo.load_settings(),
            repo.load_introduced_today(now.date()),
            repo.load_exams() if req.include_exams else [],
            now=now,
            rng=random.Random(seed) if seed is not None else None,
        )

        return QueueResponse(
            items=[
                QueueEntry(
                    id=item.id,
                    exam=result.exam_attribution[item.id].name
                    if item.id in result.exam_attribution
                    else None,
                )
                for item in result.items
            ],
            new_count=result.new_count,
            review_count=result.review_count,
            learning_count=result.learning_count,
        )
    except ContainerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Queue build failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e


class CountsEntry(BaseModel):
    id: str
    name: str
    new: int
    learn: int
    due: int


@app.get("/counts", response_model=list[CountsEntry])
async def get_counts(kind: Literal["deck", "bank"] = "deck", collection_path: str | None = None):
    """New / learning / due counts for every container, parents before children."""
    from prepigo.application.due_counts import get_due_counts
    from prepigo.application.tree import iter_containers

    try:
        _, repo = _open_repository(collection_path)
        forest = repo.load_forest(kind)
        settings = repo.load_settings()
        now = datetime.now(timezone.utc)

        entries = []
        for node in iter_containers(forest):
            c = get_due_counts(node, forest, settings, now)
            entries.append(
                CountsEntry(
                    id=node.id, name=node.name, new=c.new_count, learn=c.learn_count, due=c.due_count
                )
            )
        return entries
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Counts failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e
