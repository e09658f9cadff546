# src/models/__init__.py
from src.models.users import User
from src.models.medicine import Medicine, MedicineType, Frequency, Priority
from src.models.reminder import Reminder
from src.models.fcm_token import FcmToken
