from enum import Enum


class Perception(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


class VerificationStatus(str, Enum):
    VERIFIED_TRUE = "Verified True"
    VERIFIED_FALSE = "Verified False"
    PENDING = "Pending"
    TRUE_WITHOUT_VERIFICATION = "True without Verification"
    QUESTION_MARK = "Question Mark"
    CLOSED_UNVERIFIED = "Closed - Past/Unverified"


class NoteStatus(str, Enum):
    OPEN = "Open"
    NEEDS_WATCH = "Needs Watch"
    RESOLVED = "Resolved"


class TimelineFilter(str, Enum):
    """Structural filter over the parent/sub-event hierarchy"""

    ALL = "all"
    PARENTS = "parents"
    SUBS = "subs"
