from fastapi import APIRouter, Depends
from sqlalchemy import select, func

from quiz_app.api.deps import Services, get_services
from quiz_app.core.security import require_admin
from quiz_app.db.models import User

router = APIRouter(prefix="/stats", tags=["stats"], dependencies=[Depends(require_admin)])

@router.get("/signups")
async def signups(services: Services = Depends(get_services)):
    out = services.guard.metrics.snapshot()
    # row count only exists for the local store
    session_factory = getattr(services.records, "session_factory", None)
    if session_factory is not None:
        async with session_factory() as s:
            out["users"] = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    return out
