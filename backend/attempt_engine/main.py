from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attempt_engine.api.v1.router import api_router
from attempt_engine.core.config import settings
from attempt_engine.core.errors import AttemptEngineError


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info('Attempt engine starting (environment=%s)', settings.APP_ENV)
    yield


app = FastAPI(
    title='Learner Attempt & Auto-Grading API',
    version='0.1.0',
    openapi_url='/api/v1/openapi.json',
    docs_url='/api/v1/docs',
    redoc_url='/api/v1/redoc',
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.exception_handler(AttemptEngineError)
async def attempt_engine_error_handler(_: Request, exc: AttemptEngineError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.message, 'code': exc.code})


app.include_router(api_router, prefix='/api/v1')


@app.get('/')
def root() -> dict[str, str]:
    return {'service': 'attempt-engine-api', 'status': 'running'}
