import logging
from dataclasses import dataclass, field
from typing import Optional

from clarity.session import CallRequest

logger = logging.getLogger(__name__)


@dataclass
class SavedClinic:
    name: str
    phone: str = ""
    address: str = ""


@dataclass
class PatientProfile:
    callback_identity: str
    last_request: Optional[CallRequest] = None
    preferred_clinics: list[SavedClinic] = field(default_factory=list)


class PatientDirectory:
    """In-memory profiles keyed by callback identity.

    Holds the most recent booking request (what RETRY / WAIT re-dial) and the
    patient's saved clinics.
    """

    def __init__(self):
        self._profiles: dict[str, PatientProfile] = {}

    def profile(self, identity: str) -> PatientProfile:
        if identity not in self._profiles:
            self._profiles[identity] = PatientProfile(callback_identity=identity)
        return self._profiles[identity]

    def remember_request(self, request: CallRequest):
        if not request.callback_identity:
            return
        self.profile(request.callback_identity).last_request = request

    def last_request(self, identity: str) -> Optional[CallRequest]:
        profile = self._profiles.get(identity)
        return profile.last_request if profile else None

    def save_clinic(self, identity: str, clinic: SavedClinic) -> bool:
        """Add a clinic to the patient's list. Returns False if already saved."""
        if not clinic.name and not clinic.phone:
            raise ValueError("clinic needs a name or phone")
        saved = self.profile(identity).preferred_clinics
        for existing in saved:
            if clinic.phone and existing.phone == clinic.phone:
                return False
            if clinic.name and existing.name.lower() == clinic.name.lower():
                return False
        saved.append(clinic)
        logger.info("Saved clinic %r for %s", clinic.name or clinic.phone, identity)
        return True

    def clinics(self, identity: str) -> list[SavedClinic]:
        profile = self._profiles.get(identity)
        return list(profile.preferred_clinics) if profile else []
