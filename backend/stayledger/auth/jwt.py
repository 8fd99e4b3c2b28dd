"""JWT helpers: caller access tokens and scannable booking tokens."""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from stayledger.config import settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    Args:
        data: Payload data. Must include ``sub`` (user UUID as string).
        expires_delta: Custom expiration duration. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.

    Returns:
        Encoded JWT string.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode.update({"exp": expire, "iat": now, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_booking_token(booking_id: uuid.UUID, hotel_id: uuid.UUID, room_id: uuid.UUID) -> str:
    """Encode the QR payload shown to the guest for check-in/out scans.

    The token only identifies the booking; whoever scans it must still prove
    they own the booking.
    """
    payload = {
        "sub": str(booking_id),
        "hotel_id": str(hotel_id),
        "room_id": str(room_id),
        "type": "booking",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_booking_token(token: str) -> dict[str, uuid.UUID]:
    """Return ``booking_id``, ``hotel_id`` and ``room_id`` from a booking token.

    Raises:
        jose.JWTError: Bad signature, wrong token type or malformed ids.
    """
    payload = decode_token(token)
    if payload.get("type") != "booking":
        raise JWTError("Not a booking token")
    try:
        return {
            "booking_id": uuid.UUID(payload["sub"]),
            "hotel_id": uuid.UUID(payload["hotel_id"]),
            "room_id": uuid.UUID(payload["room_id"]),
        }
    except (KeyError, ValueError) as e:
        raise JWTError("Malformed booking token") from e
