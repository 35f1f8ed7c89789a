from __future__ import annotations

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from finance_planner.core.database import get_db
from finance_planner import models


def get_owner(user_id: int = Query(..., ge=1), db: Session = Depends(get_db)) -> models.User:
    """Resolve the owning user passed as ``?user_id=``.

    Authentication lives outside this service; the id is trusted as given.
    """
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
