# 预约模块

from .routes import router as reservations_router
from .models import CreateReservationRequest

__all__ = [
    "reservations_router",
    "CreateReservationRequest"
]
