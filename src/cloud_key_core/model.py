"""Normalized key and provider records.

This module defines the value objects every provider adapter produces and
consumes: ``Provider`` addresses a request, ``Key`` describes one credential.
"""

from dataclasses import dataclass, field

from cloud_key_core.exceptions import NormalizationError

STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"
KEY_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)


@dataclass(frozen=True)
class Provider:
    """Request/addressing tuple for one provider query.

    ``credential`` authenticates the query itself (for example an Aiven API
    token). It is excluded from ``repr`` so it never reaches the logs.
    """

    provider: str
    scope: str = ""
    credential: str = field(default="", repr=False)


@dataclass(frozen=True)
class Key:
    """A credential normalized from provider-native metadata.

    Ages are minutes since creation, measured when the key was listed.
    """

    account: str
    full_account: str
    age: float
    id: str
    life_remaining: float
    name: str
    provider: Provider
    status: str = STATUS_ACTIVE

    def __post_init__(self) -> None:
        """Validate the record invariants."""
        if self.age < 0:
            error_message = f"Key age must not be negative: {self.age}"
            raise NormalizationError(error_message, str(self.age))
        if self.life_remaining < 0:
            error_message = (
                f"Key remaining life must not be negative: {self.life_remaining}"
            )
            raise NormalizationError(error_message, str(self.life_remaining))
        if self.status not in KEY_STATUSES:
            error_message = f"Unknown key status: {self.status}"
            raise NormalizationError(error_message, self.status)

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE
