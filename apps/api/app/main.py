import uuid

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import Response

from .logging_setup import configure_logging
from .routers.health import router as health_router
from .routers.reception import router as reception_router

configure_logging()

app = FastAPI(title="ReceptionFlow API", version="0.1.0")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[override]
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(health_router)
app.include_router(reception_router)
