"""String and time normalization helpers.

Provider adapters use these helpers to turn provider-native identifiers and
timestamps into the fields of a normalized ``Key``. Every failure is raised as
a ``NormalizationError`` so adapters can propagate it as an ordinary error.
"""

from datetime import UTC, datetime

from cloud_key_core.exceptions import DelimiterNotFoundError, NormalizationError

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Number of trailing key ID characters used in a key's display name
ID_CHARS_IN_NAME = 4

SECONDS_PER_MINUTE = 60.0


def substring(value: str, start: str, end: str) -> str:
    """Return the text strictly between ``start`` and ``end``.

    An empty ``start`` matches the beginning of ``value``; an empty ``end``
    matches its end. ``end`` is searched for after ``start``.

    Args:
        value: The string to extract from.
        start: Delimiter marking the beginning of the extracted text.
        end: Delimiter marking the end of the extracted text.

    Returns:
        The extracted text.

    Raises:
        DelimiterNotFoundError: If either delimiter is absent.
    """
    start_index = value.find(start)
    if start_index == -1:
        raise DelimiterNotFoundError(start, value)
    start_index += len(start)

    if not end:
        return value[start_index:]

    end_index = value.find(end, start_index)
    if end_index == -1:
        raise DelimiterNotFoundError(end, value)
    return value[start_index:end_index]


def parse_timestamp(value: str, *formats: str) -> datetime:
    """Parse a provider timestamp into an aware UTC datetime.

    Args:
        value: The timestamp string.
        *formats: ``strptime`` formats tried in order. Defaults to
            ``TIMESTAMP_FORMAT``.

    Returns:
        The parsed instant in UTC.

    Raises:
        NormalizationError: If the value matches none of the formats.
    """
    for fmt in formats or (TIMESTAMP_FORMAT,):
        try:
            parsed = datetime.strptime(value, fmt).replace(tzinfo=UTC)
        except (TypeError, ValueError):
            continue
        # strptime accepts unpadded fields; fixed-width formats must match exactly
        if "%f" in fmt or parsed.strftime(fmt) == value:
            return parsed
    error_message = f"Unable to parse timestamp: {value!r}"
    raise NormalizationError(error_message, str(value))


def as_utc(value: datetime | str | None, *formats: str) -> datetime:
    """Coerce an SDK timestamp (datetime or string) into an aware UTC datetime.

    Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, str):
        return parse_timestamp(value, *formats)
    error_message = f"Missing or unsupported timestamp: {value!r}"
    raise NormalizationError(error_message, None if value is None else str(value))


def minutes_since(then: datetime, now: datetime | None = None) -> float:
    """Return the minutes elapsed since ``then``, never negative."""
    if now is None:
        now = datetime.now(UTC)
    return max(0.0, (now - then).total_seconds() / SECONDS_PER_MINUTE)


def minutes_remaining(expires_at: datetime, now: datetime | None = None) -> float:
    """Return the absolute minutes between now and ``expires_at``.

    An expired key that still exists reports the time since expiry; callers
    checking expiry must compare against ``expires_at`` directly.
    """
    if now is None:
        now = datetime.now(UTC)
    return abs((expires_at - now).total_seconds()) / SECONDS_PER_MINUTE


def key_display_name(account: str, key_id: str) -> str:
    """Return ``account`` joined to the trailing characters of ``key_id``."""
    return f"{account}_{key_id[-ID_CHARS_IN_NAME:]}"
