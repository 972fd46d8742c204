from app.models.user import User
from app.models.medicine import Medicine
from app.models.transaction import Transaction
from app.models.prescription import Prescription, PrescriptionItem
from app.models.reorder_request import ReorderRequest

__all__ = ["User", "Medicine", "Transaction", "Prescription", "PrescriptionItem", "ReorderRequest"]
