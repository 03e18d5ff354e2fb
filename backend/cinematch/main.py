from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
import logging

from cinematch.core.config import settings
from cinematch.core.database import SessionLocal, init_db
from cinematch.utils.logger import logger  # noqa: F401  (configures the cinematch logger)
from cinematch.utils.timezone import utc_now

from cinematch.api import auth, genres, movies, preferences, ratings, sync
from cinematch.api.user_lists import favorites_router, watchlist_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="CineMatch API", version="1.0.0", lifespan=lifespan)

# Add GZip compression middleware for better transfer performance
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(movies.router, prefix="/api/movies", tags=["Movies"])
app.include_router(sync.router, prefix="/api/tmdb", tags=["TMDB Sync"])
app.include_router(genres.router, prefix="/api", tags=["Genres"])
app.include_router(watchlist_router, prefix="/api/watchlist", tags=["Watchlist"])
app.include_router(favorites_router, prefix="/api/favorites", tags=["Favorites"])
app.include_router(ratings.router, prefix="/api/ratings", tags=["Ratings"])
app.include_router(preferences.router, prefix="/api/preferences", tags=["Preferences"])


@app.get("/")
def root():
    return {"status": "CineMatch API Running"}


@app.get("/health")
def health_check():
    """Simple health check endpoint for load balancers/monitoring"""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "timestamp": utc_now().isoformat()}
    except Exception as e:
        logging.getLogger(__name__).error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unhealthy")
    finally:
        db.close()
