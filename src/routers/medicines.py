# src/routers/medicines.py
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status

from src.auth.dependencies import get_current_user
from src.models.medicine import Medicine
from src.models.users import User
from src.repositories.medicines import MedicineRepository, get_medicine_repository
from src.repositories.reminders import ReminderRepository, get_reminder_repository
from src.schemas.schema_medicine import (
    CreateMedicine,
    DeleteMedicineResponse,
    Dosage,
    MedicineDetail,
    MedicineItem,
    MedicineListResponse,
    MedicineResponse,
    UpdateMedicine,
)
from src.services.adherence import MEDICINE_ADHERENCE_WINDOW_DAYS, summarize_medicine_adherence
from src.services.clock import current_time
from src.services.medicine import (
    MedicineValidationError,
    create_medicine,
    delete_medicine,
    medicine_alerts,
    update_medicine,
)

router = APIRouter(prefix="/api/medicines", tags=["medicines"])


def to_medicine_item(medicine: Medicine, today: date) -> MedicineItem:
    return MedicineItem(
        id=medicine.id,
        name=medicine.name,
        dosage=Dosage(amount=medicine.dosage_amount, unit=medicine.dosage_unit),
        type=medicine.medicine_type,
        frequency=medicine.frequency,
        reminder_times=medicine.reminder_times or [],
        days=medicine.days or [],
        start_date=medicine.start_date,
        end_date=medicine.end_date,
        instructions=medicine.instructions,
        notes=medicine.notes,
        priority=medicine.priority,
        stock_quantity=medicine.stock_quantity,
        is_active=medicine.is_active,
        adherence_rate=medicine.adherence_rate,
        alerts=medicine_alerts(medicine, today),
        created_at=medicine.created_at,
    )


@router.get("", response_model=MedicineListResponse)
def list_medicines(
    current_user: User = Depends(get_current_user),
    repo: MedicineRepository = Depends(get_medicine_repository),
    now: datetime = Depends(current_time),
):
    medicines = repo.find(current_user.uid)
    items = [to_medicine_item(m, now.date()) for m in medicines]
    return MedicineListResponse(count=len(items), medicines=items)


@router.get("/{medicine_id}", response_model=MedicineDetail)
def get_medicine(
    medicine_id: int,
    current_user: User = Depends(get_current_user),
    repo: MedicineRepository = Depends(get_medicine_repository),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    medicine = repo.get(current_user.uid, medicine_id)
    if medicine is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")

    reminders = reminder_repo.find(
        current_user.uid,
        medicine_id=medicine.id,
        start=now - timedelta(days=MEDICINE_ADHERENCE_WINDOW_DAYS),
        end=now,
    )
    item = to_medicine_item(medicine, now.date())
    return MedicineDetail(
        **item.model_dump(),
        adherence=summarize_medicine_adherence(reminders, now),
    )


@router.post("", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def add_medicine(
    body: CreateMedicine,
    current_user: User = Depends(get_current_user),
    repo: MedicineRepository = Depends(get_medicine_repository),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    try:
        medicine = create_medicine(repo, reminder_repo, current_user.uid, body, now)
    except MedicineValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return MedicineResponse(
        message="Medicine added successfully",
        medicine=to_medicine_item(medicine, now.date()),
    )


@router.put("/{medicine_id}", response_model=MedicineResponse)
def edit_medicine(
    medicine_id: int,
    body: UpdateMedicine,
    current_user: User = Depends(get_current_user),
    repo: MedicineRepository = Depends(get_medicine_repository),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    try:
        medicine = update_medicine(repo, reminder_repo, current_user.uid, medicine_id, body, now)
    except MedicineValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if medicine is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")

    return MedicineResponse(
        message="Medicine updated successfully",
        medicine=to_medicine_item(medicine, now.date()),
    )


@router.delete("/{medicine_id}", response_model=DeleteMedicineResponse)
def remove_medicine(
    medicine_id: int,
    current_user: User = Depends(get_current_user),
    repo: MedicineRepository = Depends(get_medicine_repository),
):
    if not delete_medicine(repo, current_user.uid, medicine_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found")
    return DeleteMedicineResponse(message="Medicine deleted successfully", id=medicine_id)
