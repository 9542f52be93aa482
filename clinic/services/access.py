"""
Caller capability and target resolution.

A :class:`Capability` is resolved once per request from the caller's
identity and role and then handed to every query operation.  It answers
two questions: which operations the caller may run, and which records an
operation should act on.  Non-elevated callers are always pinned to the
records linked to their own user id; explicit ids are only honoured for
elevated callers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Optional

from clinic.models import Doctor, Patient, User

ELEVATED_ROLES = frozenset({User.ROLE_ADMIN, User.ROLE_STAFF})


def coerce_id(value: Any) -> Optional[int]:
    """Parse a record id supplied by a client or a model; ``None`` if invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        ident = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return ident if ident > 0 else None


def is_elevated(role: Optional[str]) -> bool:
    return role in ELEVATED_ROLES


@dataclass
class Capability:
    user_id: int
    role: str
    allowed_operations: frozenset = field(default_factory=frozenset)

    @property
    def elevated(self) -> bool:
        return is_elevated(self.role)

    def allows(self, operation: str) -> bool:
        return operation in self.allowed_operations

    @cached_property
    def own_patient_id(self) -> Optional[int]:
        return Patient.objects.filter(user_id=self.user_id).values_list('id', flat=True).first()

    @cached_property
    def own_doctor_id(self) -> Optional[int]:
        return Doctor.objects.filter(user_id=self.user_id).values_list('id', flat=True).first()

    def _explicit(self, explicit: Any) -> bool:
        return self.elevated and explicit not in (None, '')

    def target_patient_id(self, explicit: Any = None) -> Optional[int]:
        """Patient a single-record operation acts on, or ``None``."""
        if self._explicit(explicit):
            return coerce_id(explicit)
        return self.own_patient_id

    def patient_filter(self, explicit: Any = None) -> Optional[dict]:
        """Filter kwargs for patient-owned listings.

        An elevated caller without an explicit id gets an empty filter
        (every record).  ``None`` means there is nothing the caller may see.
        """
        if self.elevated and not self._explicit(explicit):
            return {}
        patient_id = self.target_patient_id(explicit)
        return {'patient_id': patient_id} if patient_id else None

    def appointment_filter(self, explicit: Any = None) -> Optional[dict]:
        """Like :meth:`patient_filter`, but doctors see their own schedule."""
        if self.role == User.ROLE_DOCTOR:
            return {'doctor_id': self.own_doctor_id} if self.own_doctor_id else None
        return self.patient_filter(explicit)
