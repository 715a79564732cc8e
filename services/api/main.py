from fastapi import FastAPI
from services.api.config import API_TITLE, API_VERSION
from services.api.exceptions import setup_exception_handlers
from services.api.middleware import setup_cors
from services.api.routes import register_all_routers

app = FastAPI(title=API_TITLE, version=API_VERSION)
setup_cors(app)
setup_exception_handlers(app)

register_all_routers(app)
