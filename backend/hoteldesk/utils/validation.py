from __future__ import annotations
"""Boundary validation helpers.

Request bodies and query strings are turned into typed input objects here so the
lifecycle controller only ever receives well-formed values. All failures raise
ValidationFailed (400).
"""
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional
from hoteldesk.errors import ValidationFailed

MIN_DESCRIPTION = 10
MIN_DESCRIPTION_HIGH_URGENCY = 20
MAX_DESCRIPTION = 1000
MAX_ROOM = 64
MAX_IMAGES = 5

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
# Latin and Thai letters plus spaces
_NAME_RE = re.compile(r'^[a-zA-Zก-๙\s]+$')


def validate_choice(value: Any, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that value is one of allowed.

    Returns the value (to enable inline usage) or raises ValidationFailed.
    """
    if value not in tuple(allowed):
        raise ValidationFailed(f"{field_name} invalid")
    return value


def optional_choice(value: Optional[str], allowed: Iterable[str], field_name: str) -> Optional[str]:
    if value is None or value == '':
        return None
    return validate_choice(value, allowed, field_name)


def require_str(data: dict, key: str, min_len: int = 1, max_len: Optional[int] = None) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f'{key} required')
    value = value.strip()
    if len(value) < min_len:
        raise ValidationFailed(f'{key} must be at least {min_len} characters')
    if max_len is not None and len(value) > max_len:
        raise ValidationFailed(f'{key} must be at most {max_len} characters')
    return value


def validate_description(description: str, urgency: str):
    from hoteldesk.models.repair import Repair
    minimum = MIN_DESCRIPTION_HIGH_URGENCY if urgency == Repair.URGENCY_HIGH else MIN_DESCRIPTION
    if len(description) < minimum:
        if urgency == Repair.URGENCY_HIGH:
            raise ValidationFailed(f'High urgency repairs require a detailed description (min {minimum} characters)')
        raise ValidationFailed(f'description must be at least {minimum} characters')
    if len(description) > MAX_DESCRIPTION:
        raise ValidationFailed(f'description must be at most {MAX_DESCRIPTION} characters')


@dataclass
class RepairInput:
    room: str
    category: str
    urgency: str
    description: str
    images: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Optional[dict]) -> 'RepairInput':
        from hoteldesk.models.repair import Repair
        if not isinstance(data, dict):
            raise ValidationFailed('JSON object body required')
        room = require_str(data, 'room', max_len=MAX_ROOM)
        category = validate_choice(data.get('category'), Repair.CATEGORIES, 'category')
        urgency = validate_choice(data.get('urgency'), Repair.URGENCIES, 'urgency')
        description = data.get('description')
        if not isinstance(description, str):
            raise ValidationFailed('description required')
        description = description.strip()
        images = data.get('images') or []
        if not isinstance(images, list) or any(not isinstance(i, str) or not i for i in images):
            raise ValidationFailed('images must be a list of URLs')
        if len(images) > MAX_IMAGES:
            raise ValidationFailed(f'at most {MAX_IMAGES} images allowed')
        return cls(room=room, category=category, urgency=urgency, description=description, images=list(images))


@dataclass
class UserInput:
    name: str
    email: str
    password: str
    role: str
    language: str = 'en'
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_json(cls, data: Optional[dict]) -> 'UserInput':
        from hoteldesk.constants.permissions import ALL_ROLES, LANGUAGES
        if not isinstance(data, dict):
            raise ValidationFailed('JSON object body required')
        name = require_str(data, 'name', min_len=2, max_len=100)
        if not _NAME_RE.match(name):
            raise ValidationFailed('name may only contain letters and spaces')
        email = require_str(data, 'email', max_len=255).lower()
        if not _EMAIL_RE.match(email):
            raise ValidationFailed('email invalid')
        password = data.get('password')
        if not isinstance(password, str) or len(password) < 8:
            raise ValidationFailed('password must be at least 8 characters')
        if not (re.search(r'[a-z]', password) and re.search(r'[A-Z]', password) and re.search(r'\d', password)):
            raise ValidationFailed('password must contain lower case, upper case and digit characters')
        role = validate_choice(data.get('role'), ALL_ROLES, 'role')
        language = validate_choice(data.get('language') or 'en', LANGUAGES, 'language')
        first_name = data.get('first_name') or None
        last_name = data.get('last_name') or None
        for key, value in (('first_name', first_name), ('last_name', last_name)):
            if value is not None and (not isinstance(value, str) or len(value) > 64):
                raise ValidationFailed(f'{key} invalid')
        return cls(name=name, email=email, password=password, role=role, language=language,
                   first_name=first_name, last_name=last_name)


def parse_bool(value: Optional[str], field_name: str) -> Optional[bool]:
    if value is None or value == '':
        return None
    lowered = value.lower()
    if lowered in ('true', '1'):
        return True
    if lowered in ('false', '0'):
        return False
    raise ValidationFailed(f'{field_name} must be true or false')


__all__ = ['validate_choice', 'optional_choice', 'require_str', 'validate_description',
           'RepairInput', 'UserInput', 'parse_bool']
