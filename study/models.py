# Django discovers models through this module.
from .data.models import CardSchedule, ReviewLog  # noqa: F401
