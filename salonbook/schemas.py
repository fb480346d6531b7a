"""
Validated request payloads.

Each operation receives one of these instead of the raw JSON dict. Parsing
and validation happen once in ``from_dict``; services trust the values.
"""
from dataclasses import dataclass, field
from datetime import date, time, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from salonbook.exceptions import ValidationError
from salonbook.models import BookingOrigin, BookingStatus


def _clean_str(data: Dict[str, Any], key: str) -> Optional[str]:
    """Strip a string field, turning blanks into None."""
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_int(data: Dict[str, Any], key: str, required: bool = False) -> Optional[int]:
    value = data.get(key)
    if value is None or value == '':
        if required:
            raise ValidationError(f"{key} is required", field=key)
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer", field=key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", field=key)


def _parse_bool(data: Dict[str, Any], key: str, default: Optional[bool]) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if str(value).lower() in ('true', '1', 'yes', 'on'):
        return True
    if str(value).lower() in ('false', '0', 'no', 'off'):
        return False
    raise ValidationError(f"{key} must be a boolean", field=key)


def parse_date(value: Any, key: str = 'date') -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a date in YYYY-MM-DD format", field=key)


def parse_time(value: Any, key: str = 'time') -> time:
    if isinstance(value, time):
        return value
    raw = str(value).strip() if value is not None else ''
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"{key} must be a time in HH:MM format", field=key)


MAX_DURATION_MINUTES = 1440


def check_duration(value: Optional[int]) -> None:
    if value is None:
        return
    if value <= 0:
        raise ValidationError("duration_minutes must be greater than 0", field='duration_minutes')
    if value > MAX_DURATION_MINUTES:
        raise ValidationError(f"duration_minutes cannot exceed {MAX_DURATION_MINUTES}", field='duration_minutes')


def _optional_date(data: Dict[str, Any], key: str) -> Optional[date]:
    value = data.get(key)
    if value in (None, ''):
        return None
    return parse_date(value, key)


def _parse_id_list(data: Dict[str, Any], key: str) -> Optional[List[int]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{key} must be a list", field=key)
    try:
        ids = [int(v) for v in value]
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must contain integer ids", field=key)
    # Preserve order, drop duplicates
    return list(dict.fromkeys(ids))


@dataclass
class BookingInput:
    """Payload for creating a booking."""
    booking_date: date
    booking_time: time
    user_id: Optional[int] = None
    service_id: Optional[int] = None
    staff_id: Optional[int] = None
    service_name_manual: Optional[str] = None
    manual_duration_minutes: Optional[int] = None
    origin: str = BookingOrigin.CUSTOMER.value
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.service_id is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BookingInput':
        if 'booking_date' not in data:
            raise ValidationError("booking_date is required", field='booking_date')
        if 'booking_time' not in data:
            raise ValidationError("booking_time is required", field='booking_time')

        origin = _clean_str(data, 'origin') or BookingOrigin.CUSTOMER.value
        if origin not in {o.value for o in BookingOrigin}:
            raise ValidationError(f"origin must be one of: {', '.join(o.value for o in BookingOrigin)}", field='origin')

        payload = cls(
            booking_date=parse_date(data['booking_date'], 'booking_date'),
            booking_time=parse_time(data['booking_time'], 'booking_time'),
            user_id=parse_int(data, 'user_id'),
            service_id=parse_int(data, 'service_id'),
            staff_id=parse_int(data, 'staff_id'),
            service_name_manual=_clean_str(data, 'service_name_manual'),
            manual_duration_minutes=parse_int(data, 'duration_minutes'),
            origin=origin,
            full_name=_clean_str(data, 'full_name'),
            phone=_clean_str(data, 'phone'),
            email=_clean_str(data, 'email'),
            notes=_clean_str(data, 'notes'),
        )

        if payload.is_manual:
            if not payload.service_name_manual:
                raise ValidationError("service_id or service_name_manual is required", field='service_id')
            if not payload.manual_duration_minutes:
                raise ValidationError("duration_minutes is required for manual bookings", field='duration_minutes')
        check_duration(payload.manual_duration_minutes)
        return payload


@dataclass
class TransitionInput:
    """Payload for a status change, optionally assigning staff at the same time."""
    status: str
    staff_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransitionInput':
        status = _clean_str(data, 'status')
        valid = {s.value for s in BookingStatus}
        if status not in valid:
            raise ValidationError(f"status must be one of: {', '.join(sorted(valid))}", field='status')
        return cls(status=status, staff_id=parse_int(data, 'staff_id'))


@dataclass
class StaffInput:
    """
    Payload for creating or updating a staff member.

    On update, fields left as None keep their stored value; ``service_ids``
    of None means "leave assignments alone" while [] clears them.
    """
    display_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    specializations: Optional[List[str]] = None
    role: Optional[str] = None
    commission_percentage: Optional[int] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None
    service_ids: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], partial: bool = False) -> 'StaffInput':
        display_name = _clean_str(data, 'display_name')
        if not partial and not display_name:
            raise ValidationError("display_name is required", field='display_name')

        commission = parse_int(data, 'commission_percentage')
        if commission is not None and not 0 <= commission <= 100:
            raise ValidationError("commission_percentage must be between 0 and 100", field='commission_percentage')

        role = _clean_str(data, 'role')
        if role is not None and role not in ('staff', 'manager'):
            raise ValidationError("role must be 'staff' or 'manager'", field='role')

        specializations = data.get('specializations')
        if isinstance(specializations, str):
            specializations = [s for s in specializations.split(',')]
        if specializations is not None:
            specializations = [str(s).strip() for s in specializations if str(s).strip()]

        password = data.get('password') or None
        if password is not None and len(password) < 6:
            raise ValidationError("password must be at least 6 characters", field='password')

        return cls(
            display_name=display_name,
            email=_clean_str(data, 'email'),
            phone=_clean_str(data, 'phone'),
            avatar_url=_clean_str(data, 'avatar_url'),
            specializations=specializations,
            role=role if role is not None or partial else 'staff',
            commission_percentage=commission if commission is not None or partial else 0,
            is_active=_parse_bool(data, 'is_active', None if partial else True),
            password=password,
            service_ids=_parse_id_list(data, 'service_ids'),
        )


@dataclass
class ServiceInput:
    """Payload for creating or updating a service."""
    name: Optional[str] = None
    duration_minutes: Optional[int] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], partial: bool = False) -> 'ServiceInput':
        name = _clean_str(data, 'name')
        if not partial and not name:
            raise ValidationError("name is required", field='name')

        duration = parse_int(data, 'duration_minutes', required=not partial)
        check_duration(duration)

        price = None
        if data.get('price') not in (None, ''):
            try:
                price = Decimal(str(data['price'])).quantize(Decimal('0.01'))
            except InvalidOperation:
                raise ValidationError("price must be a number", field='price')
            if price < 0:
                raise ValidationError("price cannot be negative", field='price')
        elif not partial:
            price = Decimal('0.00')

        return cls(
            name=name,
            duration_minutes=duration,
            price=price,
            category=_clean_str(data, 'category'),
            description=_clean_str(data, 'description'),
            is_active=_parse_bool(data, 'is_active', None if partial else True),
        )


PROFILE_TEXT_FIELDS = ('full_name', 'phone', 'email', 'avatar_url', 'skin_type', 'skin_issues', 'allergy_records')

TREATMENT_TEXT_FIELDS = (
    'service_name_manual', 'treatment_details', 'products_used', 'skin_reaction',
    'improvement_notes', 'recommended_next_treatment', 'post_treatment_instructions',
    'marketing_notes', 'before_photo_url', 'after_photo_url',
)


@dataclass
class ProfileInput:
    """CRM profile fields; every field is replaced on upsert."""
    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProfileInput':
        values = {key: _clean_str(data, key) for key in PROFILE_TEXT_FIELDS}
        values['date_of_birth'] = _optional_date(data, 'date_of_birth')
        return cls(values=values)


@dataclass
class TreatmentInput:
    """Treatment record payload; keyed by booking when one is given."""
    booking_id: Optional[int] = None
    user_id: Optional[int] = None
    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TreatmentInput':
        booking_id = parse_int(data, 'booking_id')
        user_id = parse_int(data, 'user_id')
        if booking_id is None and user_id is None:
            raise ValidationError("booking_id or user_id is required", field='booking_id')

        values = {key: _clean_str(data, key) for key in TREATMENT_TEXT_FIELDS}
        values['record_date'] = _optional_date(data, 'record_date')
        values['follow_up_reminder_date'] = _optional_date(data, 'follow_up_reminder_date')
        return cls(booking_id=booking_id, user_id=user_id, values=values)
