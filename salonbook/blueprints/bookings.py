"""Booking endpoints for customers and salon staff."""
from flask import Blueprint, jsonify, request, g, current_app

from salonbook.blueprints import json_body
from salonbook.database import get_session
from salonbook.exceptions import NotFoundError, UnauthorizedError, ValidationError
from salonbook.middleware import is_customer, require_login, require_tenant
from salonbook.models import BookingOrigin
from salonbook.schemas import BookingInput, TransitionInput, parse_date, parse_time, parse_int
from salonbook.services import booking_service
from salonbook.services.booking_service import Actor

bookings_bp = Blueprint('bookings', __name__, url_prefix='/api/bookings')


def _enforce_qualification():
    return not current_app.config.get('BOOKING_ALLOW_UNQUALIFIED_STAFF', False)


def _actor():
    role = 'customer' if is_customer() else (g.user_role or '').lower()
    return Actor(role=role, user_id=g.user_id)


@bookings_bp.route('', methods=['POST'])
@require_login
@require_tenant
def create_booking():
    """Book an appointment at the current salon."""
    payload = json_body()
    if is_customer():
        # Customers always book for themselves
        payload['user_id'] = g.user_id
        payload['origin'] = BookingOrigin.CUSTOMER.value
    else:
        payload.setdefault('origin', BookingOrigin.STAFF_ENTERED.value)

    data = BookingInput.from_dict(payload)
    booking = booking_service.create_booking(
        get_session(), g.tenant_id, data,
        enforce_qualification=_enforce_qualification()
    )
    return jsonify({'status': 'success', 'booking': booking.to_dict()}), 201


@bookings_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_bookings():
    """Salon calendar for staff; own bookings for customers."""
    args = request.args
    user_id = g.user_id if is_customer() else parse_int(args, 'user_id')

    bookings = booking_service.list_bookings(
        get_session(), g.tenant_id,
        user_id=user_id,
        staff_id=parse_int(args, 'staff_id'),
        status=args.get('status') or None,
        booking_date=parse_date(args['date'], 'date') if args.get('date') else None,
        start_date=parse_date(args['start_date'], 'start_date') if args.get('start_date') else None,
        end_date=parse_date(args['end_date'], 'end_date') if args.get('end_date') else None,
    )
    return jsonify({'bookings': [b.to_dict() for b in bookings]})


@bookings_bp.route('/<int:booking_id>', methods=['GET'])
@require_login
@require_tenant
def get_booking(booking_id):
    booking = booking_service.get_booking(get_session(), g.tenant_id, booking_id)
    if is_customer() and booking.user_id != g.user_id:
        # Do not reveal other customers' bookings
        raise NotFoundError(f"Booking {booking_id} not found")
    return jsonify({'booking': booking.to_dict()})


@bookings_bp.route('/<int:booking_id>', methods=['PATCH'])
@require_login
@require_tenant
def update_booking(booking_id):
    """
    Change status, staff or time of a booking.

    Body: ``status`` (optional ``staff_id``), or ``staff_id`` alone, or
    ``booking_date`` + ``booking_time``.
    """
    payload = json_body()
    db_session = get_session()

    if payload.get('status'):
        data = TransitionInput.from_dict(payload)
        booking = booking_service.transition_booking(
            db_session, g.tenant_id, booking_id, data.status,
            actor=_actor(), staff_id=data.staff_id,
            enforce_qualification=_enforce_qualification()
        )
    elif is_customer():
        raise UnauthorizedError("Customers can only cancel bookings")
    elif 'booking_date' in payload or 'booking_time' in payload:
        if not payload.get('booking_date') or not payload.get('booking_time'):
            raise ValidationError("booking_date and booking_time are required together", field='booking_date')
        booking = booking_service.reschedule_booking(
            db_session, g.tenant_id, booking_id,
            parse_date(payload['booking_date'], 'booking_date'),
            parse_time(payload['booking_time'], 'booking_time')
        )
    elif 'staff_id' in payload:
        booking = booking_service.assign_staff(
            db_session, g.tenant_id, booking_id, parse_int(payload, 'staff_id'),
            enforce_qualification=_enforce_qualification()
        )
    else:
        raise ValidationError("Nothing to update", field='status')

    return jsonify({'status': 'success', 'booking': booking.to_dict()})

