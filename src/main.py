import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
import uvicorn

from src.api.routes import (
    audio_extractor_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    router,
    validation_exception_handler,
)
from src.config import get_settings
from src.utils.errors import AudioExtractorError

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Audio Extractor API")

# Extraction job routes
app.include_router(router, prefix="/api")

app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(AudioExtractorError, audio_extractor_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if __name__ == "__main__":
    uvicorn.run("src.main:app", host="0.0.0.0", port=3000, reload=True)
