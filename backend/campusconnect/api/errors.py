"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campusconnect.obs import logging as obs_logging
from campusconnect.search.exceptions import SearchError


def get_request_id(request: Request) -> str:
	return getattr(request.state, "request_id", None) or obs_logging.current_request_id()


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(SearchError)
	async def search_exc_handler(request: Request, exc: SearchError):  # type: ignore[override]
		payload = {"error": exc.detail, "request_id": get_request_id(request)}
		if exc.message is not None:
			payload["message"] = exc.message
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"error": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {"error": "validation_error", "errors": exc.errors(), "request_id": get_request_id(request)}
		return JSONResponse(status_code=422, content=payload)


__all__ = ["get_request_id", "install_error_handlers"]
