from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from schoolgen import __version__
from schoolgen.api.routes import archive, assets, jobs, tasks
from schoolgen.config import get_settings
from schoolgen.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler, workflow_exception_handler
from schoolgen.core.json import UnicodeJSONResponse
from schoolgen.core.lifespan import lifespan
from schoolgen.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from schoolgen.jobs.errors import WorkflowError

settings = get_settings()

app = FastAPI(title="schoolgen", version=__version__, default_response_class=UnicodeJSONResponse, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=False, allow_methods=["GET", "POST", "DELETE", "OPTIONS"], allow_headers=["content-type"], expose_headers=["content-length"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(WorkflowError, workflow_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
app.include_router(archive.router, prefix="/archive", tags=["archive"])
app.include_router(assets.router, prefix="/assets", tags=["assets"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
