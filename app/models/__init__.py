from .clinic_model import Clinic
from .user_model import (
    User,
    Mother,
    HealthWorker,
    Administrator,
)
from .visit_model import Visit
from .payment_model import PaymentRecord
