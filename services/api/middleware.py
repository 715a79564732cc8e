from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.api.config import CORS_ORIGINS


def setup_cors(app: FastAPI) -> None:
	app.add_middleware(
		CORSMiddleware,
		allow_origins=CORS_ORIGINS,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
