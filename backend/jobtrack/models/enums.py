from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "Admin"
    USER = "User"


class StatusType(str, Enum):
    APPLIED = "Applied"
    TEST = "Test"
    INTERVIEW = "Interview"
    OFFER_AWARDED = "OfferAwarded"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


class TestType(str, Enum):
    __test__ = False  # keep pytest from collecting this as a test class

    TECHNICAL = "Technical"
    ENGLISH = "English"
    OTHER = "Other"


class InterviewType(str, Enum):
    HR = "Hr"
    BEHAVIOURAL = "Behavioural"
    TECHNICAL = "Technical"
    OTHER = "Other"


class ApplicationType(str, Enum):
    DIRECT = "Direct"
    EMAIL = "Email"
    WEBSITE = "Website"
    REFERRAL = "Referral"
    RECRUITER = "Recruiter"


class TokenPurpose(str, Enum):
    VERIFY = "verify"
    RESET = "reset"
    SESSION = "session"
