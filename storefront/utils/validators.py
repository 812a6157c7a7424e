import re
import uuid

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def validate_required(v: str | None, message: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(message)
    return v

def validate_email(v: str | None) -> str:
    v = (v or "").strip()
    if not EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v

def validate_phone(v: str | None) -> str:
    v = (v or "").strip()
    if len(v) < 6:
        raise ValueError("Phone number is required")
    return v

def is_uuid(v: str | None) -> bool:
    try:
        uuid.UUID(str(v))
        return True
    except (ValueError, TypeError, AttributeError):
        return False
