"""Ultramagnus report chat server."""

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from repo root (src/ultramagnus/main.py -> .env) before reading config
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)

from ultramagnus import config  # noqa: E402
from ultramagnus.api import router  # noqa: E402
from ultramagnus.conversation import ConversationError  # noqa: E402

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ultramagnus", version="0.1.0")

# Allow frontend to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConversationError)
async def conversation_error_handler(request: Request, exc: ConversationError) -> JSONResponse:
    if exc.status >= 500:
        logger.error("request.failed path=%s code=%s", request.url.path, exc.code)
    content = {"detail": exc.message, "code": exc.code}
    if exc.text is not None:
        content["text"] = exc.text
    return JSONResponse(status_code=exc.status, content=content)


app.include_router(router)
