"""FastAPI league API - events, entries, roster sync and public standings."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from league.models.base import init_db
from league.services.errors import LeagueError, classify_db_error
from league.services.revalidate import Revalidator

from web.api.routes import router as api_router
from web.api.standings_routes import router as standings_router

logger = logging.getLogger("league.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="League Roster API", lifespan=lifespan)
app.state.revalidator = Revalidator()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
app.include_router(standings_router)


@app.exception_handler(LeagueError)
async def league_error_handler(request: Request, exc: LeagueError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    err = classify_db_error(exc, "complete the request")
    return JSONResponse(status_code=err.status_code, content={"detail": err.message})


@app.get("/api/health")
async def health():
    return {"status": "ok"}
