from __future__ import annotations

from enum import Enum


class EmploymentStatus(str, Enum):
    WAITING = "대기"
    ACTIVE = "재직"
    DISPATCHED = "파견중"
    RESIGNED = "퇴사"


class AssignmentStatus(str, Enum):
    IN_PROGRESS = "진행중"
    ENDED = "종료"


class SiteStatus(str, Enum):
    PENDING = "예정"
    IN_PROGRESS = "진행중"
    ENDED = "종료"
