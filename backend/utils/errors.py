"""
Domain errors raised by routers and helpers
All of them are HTTPExceptions so the usual `except HTTPException: raise` lets them through
"""
from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional


class NotFoundError(HTTPException):
    def __init__(self, entity: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity} not found"
        )
        self.entity = entity


class ValidationFailedError(HTTPException):
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": message, "errors": errors or []}
        )


class InsufficientStockError(HTTPException):
    def __init__(self, material_id: Any, material_name: str, available_quantity: int, **extra):
        detail: Dict[str, Any] = {
            "error": f"Insufficient stock for {material_name}. Available: {available_quantity}",
            "material_id": str(material_id),
            "available_quantity": available_quantity,
        }
        detail.update(extra)
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        self.material_id = material_id
        self.available_quantity = available_quantity


class InvalidTransitionError(HTTPException):
    def __init__(self, message: str, current_status: str, requested_status: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": message,
                "current_status": current_status,
                "requested_status": requested_status,
            }
        )
        self.current_status = current_status
        self.requested_status = requested_status
