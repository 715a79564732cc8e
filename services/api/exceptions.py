from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from services.agent.filter_errors import FilterError


def setup_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(FilterError)
	async def handle_filter_error(request: Request, exc: FilterError):  # noqa: ANN001
		logging.getLogger(__name__).warning(f"{type(exc).__name__}: {exc.message}")
		return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
