# hse_core/choices.py
from __future__ import annotations

from django.db import models


# ===============================================================
# Ordinal scales (stored as integers, reported by name)
# ===============================================================

class Severity(models.IntegerChoices):
    NEGLIGIBLE = 1, "Negligible"
    MINOR = 2, "Minor"
    MODERATE = 3, "Moderate"
    MAJOR = 4, "Major"
    CATASTROPHIC = 5, "Catastrophic"


class Priority(models.IntegerChoices):
    LOW = 1, "Low"
    MEDIUM = 2, "Medium"
    HIGH = 3, "High"
    CRITICAL = 4, "Critical"


class RiskLevel(models.IntegerChoices):
    VERY_LOW = 1, "Very low"
    LOW = 2, "Low"
    MEDIUM = 3, "Medium"
    HIGH = 4, "High"
    CRITICAL = 5, "Critical"


HIGH_RISK_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)
HIGH_PRIORITIES = (Priority.HIGH, Priority.CRITICAL)


def risk_level_for_score(score: int) -> int:
    """Band a probability x severity score (1..25) into a RiskLevel."""
    if score >= 20:
        return RiskLevel.CRITICAL
    if score >= 15:
        return RiskLevel.HIGH
    if score >= 10:
        return RiskLevel.MEDIUM
    if score >= 5:
        return RiskLevel.LOW
    return RiskLevel.VERY_LOW


# Months until the next review, per risk level
REVIEW_INTERVAL_MONTHS = {
    RiskLevel.VERY_LOW: 24,
    RiskLevel.LOW: 12,
    RiskLevel.MEDIUM: 6,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 1,
}


def enum_name(enum_cls, value) -> str:
    try:
        return enum_cls(value).name
    except ValueError:
        return str(value)


def parse_enum(enum_cls, raw):
    """
    Accepts a member name ("MAJOR"), a label ("Major") or the integer value.
    Returns None when nothing matches.
    """
    text = str(raw if raw is not None else "").strip()
    if not text:
        return None
    if text.lstrip("-").isdigit():
        value = int(text)
        return value if value in enum_cls.values else None
    key = text.upper().replace(" ", "_").replace("-", "_")
    for member in enum_cls:
        if member.name == key:
            return member.value
    return None


# ===============================================================
# Categorical fields
# ===============================================================

class HazardCategory(models.TextChoices):
    PHYSICAL = "PHYSICAL", "Physical"
    CHEMICAL = "CHEMICAL", "Chemical"
    BIOLOGICAL = "BIOLOGICAL", "Biological"
    ERGONOMIC = "ERGONOMIC", "Ergonomic"
    PSYCHOLOGICAL = "PSYCHOLOGICAL", "Psychological"
    ENVIRONMENTAL = "ENVIRONMENTAL", "Environmental"
    FIRE = "FIRE", "Fire"
    ELECTRICAL = "ELECTRICAL", "Electrical"
    MECHANICAL = "MECHANICAL", "Mechanical"
    RADIATION = "RADIATION", "Radiation"


class HazardType(models.TextChoices):
    SLIP = "SLIP", "Slip"
    TRIP = "TRIP", "Trip"
    FALL = "FALL", "Fall"
    CUT = "CUT", "Cut"
    BURN = "BURN", "Burn"
    EXPOSURE = "EXPOSURE", "Exposure"
    COLLISION = "COLLISION", "Collision"
    ENTRAPMENT = "ENTRAPMENT", "Entrapment"
    EXPLOSION = "EXPLOSION", "Explosion"
    OTHER = "OTHER", "Other"


class LicenseType(models.TextChoices):
    ENVIRONMENTAL = "ENVIRONMENTAL", "Environmental"
    SAFETY = "SAFETY", "Safety"
    HEALTH = "HEALTH", "Health"
    CONSTRUCTION = "CONSTRUCTION", "Construction"
    OPERATING = "OPERATING", "Operating"
    TRANSPORT = "TRANSPORT", "Transport"
    WASTE = "WASTE", "Waste"
    RADIATION = "RADIATION", "Radiation"
    CHEMICAL = "CHEMICAL", "Chemical"
    FIRE = "FIRE", "Fire"
    OTHER = "OTHER", "Other"


class TrainingType(models.TextChoices):
    INDUCTION = "INDUCTION", "Induction"
    SAFETY = "SAFETY", "Safety"
    FIRST_AID = "FIRST_AID", "First aid"
    FIRE_SAFETY = "FIRE_SAFETY", "Fire safety"
    EQUIPMENT = "EQUIPMENT", "Equipment"
    COMPLIANCE = "COMPLIANCE", "Compliance"
    REFRESHER = "REFRESHER", "Refresher"
    OTHER = "OTHER", "Other"


class TrainingCategory(models.TextChoices):
    MANDATORY = "MANDATORY", "Mandatory"
    RECOMMENDED = "RECOMMENDED", "Recommended"
    OPTIONAL = "OPTIONAL", "Optional"
    CERTIFICATION = "CERTIFICATION", "Certification"


class DeliveryMethod(models.TextChoices):
    CLASSROOM = "CLASSROOM", "Classroom"
    ONLINE = "ONLINE", "Online"
    BLENDED = "BLENDED", "Blended"
    ON_THE_JOB = "ON_THE_JOB", "On the job"


# ===============================================================
# Sub-entity states
# ===============================================================

class MitigationStatus(models.TextChoices):
    PLANNED = "PLANNED", "Planned"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class MitigationType(models.TextChoices):
    ELIMINATION = "ELIMINATION", "Elimination"
    SUBSTITUTION = "SUBSTITUTION", "Substitution"
    ENGINEERING = "ENGINEERING", "Engineering controls"
    ADMINISTRATIVE = "ADMINISTRATIVE", "Administrative controls"
    PPE = "PPE", "Personal protective equipment"


class ConditionStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    WAIVED = "WAIVED", "Waived"


class ParticipantStatus(models.TextChoices):
    ENROLLED = "ENROLLED", "Enrolled"
    ATTENDING = "ATTENDING", "Attending"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
    NO_SHOW = "NO_SHOW", "No show"
    WITHDRAWN = "WITHDRAWN", "Withdrawn"


# Sub-entity states that stop the "overdue" clock
MITIGATION_DONE = (MitigationStatus.COMPLETED, MitigationStatus.CANCELLED)
CONDITION_DONE = (ConditionStatus.COMPLETED, ConditionStatus.WAIVED)
PARTICIPANT_DONE = (
    ParticipantStatus.COMPLETED,
    ParticipantStatus.FAILED,
    ParticipantStatus.NO_SHOW,
    ParticipantStatus.WITHDRAWN,
)
