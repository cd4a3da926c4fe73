import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lostfound.api.routes.disputes import router as disputes_router
from lostfound.api.routes.work_requests import router as work_requests_router
from lostfound.errors import (
    ConcurrencyConflict,
    InvalidState,
    NotFound,
    Unauthorized,
    ValidationError,
    WorkflowError,
)

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Lost & Found Work Request API",
    description="Cross-organization approval workflows for lost and found items",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(work_requests_router, prefix="/api", tags=["Work Requests"])
app.include_router(disputes_router, prefix="/api", tags=["Disputes"])


def status_code_for(error: WorkflowError) -> int:
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, Unauthorized):
        return 403
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, (InvalidState, ConcurrencyConflict)):
        return 409
    return 400


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = status_code_for(exc)
    if status_code >= 409:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    content = {"detail": str(exc), "error": type(exc).__name__, "request_id": exc.request_id}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code, content=content)


@app.get("/health")
def health():
    return {"status": "Up and running!"}
