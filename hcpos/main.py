import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from hcpos.config import settings
from hcpos.db import Base, engine
from hcpos.errors import PosError
from hcpos.middleware import RequestIdMiddleware
from hcpos.services.notifications import NotificationSink
from hcpos.util.logs import configure_logging
import hcpos.models  # noqa: F401  (registers tables)

from hcpos.routers import admin, inventory, loyalty, notifications, orders, payments

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="HC POS API", version="0.1.0")
app.state.notifications = NotificationSink(maxlen=settings.NOTIFICATION_LOG_SIZE)

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)

# Error mapping: {success: false, error} with the error's status
@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc)})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "invalid request"))
    return JSONResponse(status_code=400, content={"success": False, "error": detail})

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("storage error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Database error"})

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(inventory.router)
app.include_router(loyalty.router)
app.include_router(notifications.router)
app.include_router(admin.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
