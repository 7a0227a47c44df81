import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from consumables.api import products, stock, stock_logs
from consumables.config import settings
from consumables.database import init_db
from consumables.errors import StockServiceError, ValidationError
from consumables.schemas.validation import FORM_ERRORS_KEY

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Consumable Stock API",
    description="Consumable product catalog, stock balances and the restock/usage transaction log",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(StockServiceError)
async def stock_error_handler(request: Request, exc: StockServiceError):
    """Structured body for expected failures: kind, message and optional payload."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Query, path and header checks reported with the same field map as payload checks."""
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        # Drop the leading "query" / "path" / "header" / "body" segment
        key = ".".join(str(part) for part in err["loc"][1:]) or FORM_ERRORS_KEY
        fields.setdefault(key, []).append(err["msg"])
    error = ValidationError(fields)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions so frontend can parse error."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"kind": "internal", "message": str(exc)})


app.include_router(products.router, prefix="/api/v1")
app.include_router(stock.router, prefix="/api/v1")
app.include_router(stock_logs.router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
