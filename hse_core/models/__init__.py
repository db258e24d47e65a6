from .core import (
    AttachmentRecord,
    AuditLog,
    TimeStampedModel,
    TransitionAuditEntry,
    UserRole,
)
from .hazards import Hazard, MitigationAction, RiskAssessment
from .licenses import License, LicenseCondition, LicenseRenewal
from .trainings import Training, TrainingParticipant

__all__ = [
    "AttachmentRecord",
    "AuditLog",
    "Hazard",
    "License",
    "LicenseCondition",
    "LicenseRenewal",
    "MitigationAction",
    "RiskAssessment",
    "TimeStampedModel",
    "Training",
    "TrainingParticipant",
    "TransitionAuditEntry",
    "UserRole",
]
