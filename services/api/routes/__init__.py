from fastapi import FastAPI

from services.api.routes.system import router as system_router
from services.api.routes.captures import router as captures_router
from services.api.routes.filters import router as filters_router


def register_all_routers(app: FastAPI):
	app.include_router(system_router)
	app.include_router(captures_router)
	app.include_router(filters_router)
