from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..domain.errors import InvalidAdjustment
from ..infrastructure.repositories import (
    SqlAlchemyAdjustmentRepository,
    SqlAlchemyLayoutResolver,
    SqlAlchemyReservationRepository,
)
from ..schemas import OccupancyRead
from ..usecases import reservations as reservation_usecase

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("/{table}/occupancy", response_model=List[OccupancyRead])
async def get_occupancy(
    table: str,
    day: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
) -> list[OccupancyRead]:
    table_id = await SqlAlchemyLayoutResolver(session).resolve_table(table)
    if table_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="table not found")
    try:
        items = await reservation_usecase.table_occupancy(
            SqlAlchemyReservationRepository(session),
            SqlAlchemyAdjustmentRepository(session),
            day=day,
            table_id=table_id,
        )
    except InvalidAdjustment as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"kind": exc.kind, **exc.detail})
    return [OccupancyRead.from_domain(item) for item in items]
