"""FastAPI application entrypoints for the emoji language.

This module exposes the HTTP endpoints used by the landing page and tests. It
keeps handlers intentionally small: each `/run` request lexes the submitted
code and evaluates it with a fresh `Interpreter`, so no state is shared
between requests. Server-side caps are enforced to prevent clients from
overriding the step and call-depth limits.

Configuration is read from the environment at import time:

    API_URL                   base URL the landing page posts to (default: same origin)
    EMOJILANG_MAX_STEPS       server-side ceiling on tokens processed per run
    EMOJILANG_MAX_CALL_DEPTH  server-side ceiling on nested function calls
    EMOJILANG_LOG_LEVEL       logging level applied at startup
    HOST, PORT                listener used when run as a script
"""

import logging
import math
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from ..emojilang.errors import EvaluationError
from ..emojilang.interpreter import Interpreter
from ..emojilang.lexer import tokenize

API_URL = os.environ.get("API_URL", "")
MAX_STEPS = int(os.environ.get("EMOJILANG_MAX_STEPS", "1000000"))
MAX_CALL_DEPTH = int(os.environ.get("EMOJILANG_MAX_CALL_DEPTH", "32"))
LOG_LEVEL = os.environ.get("EMOJILANG_LOG_LEVEL", "WARNING")
TEMPLATE_PATH = Path(__file__).parent / "templates" / "index.html"

logger = logging.getLogger("emojilang.app")

app = FastAPI(title="Emoji Language API", version="0.1")


def _cap_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Enforce server-side safe caps for runtime limits.

    Clients may include a `settings` object asking for a smaller step budget
    or call depth. Requested values are clamped between 1 and the server's
    ceilings; anything missing or null falls back to the ceiling itself.

    Returns a dict with `max_steps` and `max_call_depth`.
    """
    safe = {"max_steps": MAX_STEPS, "max_call_depth": MAX_CALL_DEPTH}
    if not settings:
        return safe
    for key, ceiling in safe.items():
        value = settings.get(key)
        if value is not None:
            safe[key] = max(1, min(int(value), ceiling))
    return safe


def format_number(value: float) -> str:
    """Render a float the way results are reported to clients.

    Integral values drop the fractional part, exponents are expanded, and the
    non-finite values read `inf`, `-inf` and `NaN`.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@app.on_event("startup")
def startup():
    """FastAPI startup event: configure logging for the service."""
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class RunRequest(BaseModel):
    """Pydantic model for the `/run` request body.

    Fields:
        code: emoji source text.
        settings: optional runtime limits; will be capped server-side.
    """
    code: str
    settings: Optional[Dict[str, Any]] = None


@app.post("/run")
async def run_code(req: RunRequest):
    """Evaluate the submitted code and return the result as a JSON string.

    Language errors (malformed literals, undefined functions, exceeded limits)
    produce a 400 response and anything unexpected a 500, both with an
    `errors` object of the same shape so callers can rely on it.
    """
    try:
        capped = _cap_settings(req.settings)
        it = Interpreter(tokenize(req.code), **capped)
        result = it.evaluate()
    except EvaluationError as e:
        logger.info("run failed: %s", e)
        return JSONResponse(status_code=400, content={"errors": e.to_dict()})
    except Exception as e:
        logger.exception("unexpected error while running code")
        return JSONResponse(
            status_code=500,
            content={"errors": {"code": "SERVER_ERROR", "message": str(e)}},
        )
    return format_number(result)


@app.get("/", response_class=HTMLResponse)
async def index():
    """Serve the landing page with the API base URL filled in."""
    page = TEMPLATE_PATH.read_text(encoding="utf-8")
    return page.replace("API_URL_PLACEHOLDER", API_URL)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))
