from fastapi import APIRouter
from .user.user_routes import router as user_router
from .clinics.clinic_routes import router as clinic_router
from .visits.visit_routes import router as visit_router
from .payments.payment_routes import router as payment_router

router = APIRouter()


router.include_router(user_router)
router.include_router(clinic_router)
router.include_router(visit_router)
router.include_router(payment_router)
