from fastapi import APIRouter

from attempt_engine.core.config import settings


router = APIRouter(tags=['health'])


@router.get('/health')
def health() -> dict[str, str]:
    return {'status': 'ok', 'environment': settings.APP_ENV}
