# src/repositories/medicines.py
from __future__ import annotations

from typing import List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db.database import get_db
from src.models.medicine import Medicine


class MedicineRepository:
    """Medicine storage: find / upsert / soft_delete over one session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find(self, owner_uid: Optional[str] = None, *, active_only: bool = True) -> List[Medicine]:
        stmt = select(Medicine).order_by(Medicine.id.asc())
        if owner_uid is not None:
            stmt = stmt.where(Medicine.owner_uid == owner_uid)
        if active_only:
            stmt = stmt.where(Medicine.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def get(self, owner_uid: str, medicine_id: int, *, active_only: bool = True) -> Optional[Medicine]:
        stmt = select(Medicine).where(
            Medicine.owner_uid == owner_uid,
            Medicine.id == medicine_id,
        )
        if active_only:
            stmt = stmt.where(Medicine.is_active.is_(True))
        return self.db.execute(stmt).scalars().first()

    def upsert(self, medicine: Medicine) -> Medicine:
        self.db.add(medicine)
        self.db.commit()
        self.db.refresh(medicine)
        return medicine

    def soft_delete(self, owner_uid: str, medicine_id: int) -> bool:
        medicine = self.get(owner_uid, medicine_id)
        if medicine is None:
            return False
        medicine.is_active = False
        self.db.commit()
        return True


def get_medicine_repository(db: Session = Depends(get_db)) -> MedicineRepository:
    return MedicineRepository(db)
