from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
import os

from admission import AdmissionControl
from instructors import InstructorService
from intervals import utc_now
from lessons import LessonService
from lifecycle import RequestService
from repository import Repository
from scheduling import AvailabilityService
from students import StudentService

# CONFIG
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

ADMIN = "admin"
INSTRUCTOR = "instructor"
STUDENT = "student"

security = HTTPBearer()

# ---------- SERVICES ----------
@dataclass
class Services:
    instructors: InstructorService
    students: StudentService
    availability: AvailabilityService
    lessons: LessonService
    requests: RequestService

def build_services(repository: Repository, clock: Callable[[], datetime] = utc_now) -> Services:
    """Wire every service once; the result lives on ``app.state``."""
    availability = AvailabilityService(repository, clock=clock)
    admission = AdmissionControl(repository, availability, clock=clock)
    return Services(
        instructors=InstructorService(repository),
        students=StudentService(repository),
        availability=availability,
        lessons=LessonService(repository, admission, clock=clock),
        requests=RequestService(repository, admission, clock=clock),
    )

def get_services(request: Request) -> Services:
    return request.app.state.services

# ---------- JWT ----------
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    try:
        payload = jwt.decode(
            credentials.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if "sub" not in payload or payload.get("role") not in (ADMIN, INSTRUCTOR, STUDENT):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload

def require_role(*roles: str):
    allowed = set(roles) | {ADMIN}

    def checker(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in allowed:
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(sorted(allowed))}")
        return user

    return checker
