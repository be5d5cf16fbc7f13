import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.routes.slack import router as slack_router
from app.routes.slack_oauth import router as slack_oauth_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("calendar-status-backend")

app = FastAPI(title="calendar status backend", version="0.1.0")


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning("http_error request_id=%s path=%s detail=%s", request_id, request.url.path, exc.detail)
    message = exc.detail if isinstance(exc.detail, str) else "The request could not be processed."
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"message": message, "request_id": request_id}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("unhandled_error request_id=%s path=%s", request_id, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error. Please try again shortly.",
                "request_id": request_id,
            }
        },
    )


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


app.include_router(slack_router)
app.include_router(slack_oauth_router)
