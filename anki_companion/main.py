import json
import logging
import math

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from anki_companion import config
from anki_companion.errors import CompanionError, RateLimitedError
from anki_companion.logs import setup_logging
from anki_companion.models import CardRequest, Draft, TranslationRequest
from anki_companion.rate_limit import SlidingWindowLimiter, client_key
from anki_companion.services.card_generator import generate_card
from anki_companion.services.sense_resolver import request_translation_entry

load_dotenv()

logger = logging.getLogger(__name__)


class InvalidRequestError(Exception):
    def __init__(self, message: str, details):
        super().__init__(message)
        self.details = details


def _build_limiter() -> SlidingWindowLimiter | None:
    requests, window = config.get_rate_limit()
    if requests <= 0:
        logger.warning("Rate limiting disabled (RATE_LIMIT_REQUESTS=%s)", requests)
        return None
    return SlidingWindowLimiter(limit=requests, window=window)


async def _parse_body(request: Request, model: type[BaseModel], message: str):
    try:
        payload = await request.json()
    except ValueError as err:
        # JSONDecodeError and UnicodeDecodeError
        raise InvalidRequestError(message, {"body": f"Invalid JSON: {err}"}) from err
    try:
        return model.model_validate(payload if payload is not None else {})
    except PydanticValidationError as err:
        raise InvalidRequestError(message, json.loads(err.json(include_url=False))) from err


def enforce_rate_limit(request: Request, response: Response) -> None:
    limiter: SlidingWindowLimiter | None = request.app.state.limiter
    if limiter is None:
        return
    key = client_key(request.headers, request.client.host if request.client else None)
    result = limiter.hit(key)
    response.headers.update(result.headers())


def create_app(limiter: SlidingWindowLimiter | None = None, allowed_origins: list[str] | None = None) -> FastAPI:
    setup_logging()

    app = FastAPI(title="anki-companion")
    app.state.limiter = limiter if limiter is not None else _build_limiter()

    origins = allowed_origins if allowed_origins is not None else config.get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(request: Request, err: InvalidRequestError):
        return JSONResponse(status_code=400, content={"error": str(err), "details": err.details})

    @app.exception_handler(RateLimitedError)
    async def handle_rate_limited(request: Request, err: RateLimitedError):
        headers = {
            "X-RateLimit-Limit": str(err.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(math.ceil(err.reset_at)),
            "Retry-After": str(err.retry_after_seconds),
        }
        return JSONResponse(
            status_code=429,
            content={"error": str(err), "retryAfterSeconds": err.retry_after_seconds},
            headers=headers,
        )

    @app.exception_handler(CompanionError)
    async def handle_companion_error(request: Request, err: CompanionError):
        logger.error("%s %s failed: %s", request.method, request.url.path, err)
        return JSONResponse(status_code=500, content={"error": str(err)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/translations", dependencies=[Depends(enforce_rate_limit)])
    async def api_translations(request: Request):
        body = await _parse_body(request, TranslationRequest, "Invalid translation request")
        entry = await run_in_threadpool(
            request_translation_entry, body.raw_input, body.source_language
        )
        return entry.model_dump(mode="json")

    @app.post("/api/cards/generate", dependencies=[Depends(enforce_rate_limit)])
    async def api_generate_card(request: Request):
        body = await _parse_body(request, CardRequest, "Invalid card generation request")
        draft = Draft.model_validate(body.draft.model_dump(by_alias=True))
        card = await run_in_threadpool(generate_card, draft)
        return card.model_dump(mode="json", by_alias=True)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("anki_companion.main:app", host="0.0.0.0", port=8000, reload=True)
