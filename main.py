import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import CORS_ORIGINS, LOG_LEVEL, UPLOAD_DIR
from db import init_db
from errors import MarketError
from routers import auth, chats, listings, users, wishlist

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tableturn")

app = FastAPI(title="TableTurn")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("database ready")


@app.exception_handler(MarketError)
async def market_error_handler(request: Request, exc: MarketError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(listings.router)
app.include_router(chats.router)
app.include_router(chats.ws_router)
app.include_router(wishlist.router)
