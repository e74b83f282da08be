"""Colour lookup tables used when rendering calendar entries."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True, slots=True)
class ClinicStyle:
    bg: str
    border: str
    text: str
    dot: str


DEFAULT_CLINIC_STYLE = ClinicStyle(
    bg="bg-card", border="border-l-primary/70", text="text-primary", dot="bg-primary"
)
DEFAULT_STATUS_STYLE = "bg-gray-100 text-gray-800"
DEFAULT_TYPE_STYLE = "bg-card border-l-primary"


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class StylePalette:
    """Immutable clinic, status, and type style maps.

    Every lookup has an explicit fallback: unmapped clinics, statuses, and
    appointment types render with the neutral default style.
    """

    clinics: Mapping[str, ClinicStyle] = field(default_factory=dict)
    statuses: Mapping[str, str] = field(default_factory=dict)
    types: Mapping[str, str] = field(default_factory=dict)
    clinic_fallback: ClinicStyle = DEFAULT_CLINIC_STYLE
    status_fallback: str = DEFAULT_STATUS_STYLE
    type_fallback: str = DEFAULT_TYPE_STYLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "clinics", _frozen(self.clinics))
        object.__setattr__(self, "statuses", _frozen(self.statuses))
        object.__setattr__(self, "types", _frozen(self.types))

    def clinic_style(self, clinic: str) -> ClinicStyle:
        return self.clinics.get(clinic, self.clinic_fallback)

    def status_style(self, status: str) -> str:
        return self.statuses.get(status, self.status_fallback)

    def type_style(self, appointment_type: str) -> str:
        return self.types.get(appointment_type, self.type_fallback)


DEFAULT_PALETTE = StylePalette(
    clinics={
        "SSO Clinic": ClinicStyle("bg-blue-50", "border-l-blue-500", "text-blue-700", "bg-blue-500"),
        "McDowall Health": ClinicStyle(
            "bg-green-50", "border-l-green-500", "text-green-700", "bg-green-500"
        ),
        "Mahroz Clinic": ClinicStyle(
            "bg-purple-50", "border-l-purple-500", "text-purple-700", "bg-purple-500"
        ),
        "Imran Medical Center": ClinicStyle(
            "bg-orange-50", "border-l-orange-500", "text-orange-700", "bg-orange-500"
        ),
        "Muneeb Clinic": ClinicStyle("bg-pink-50", "border-l-pink-500", "text-pink-700", "bg-pink-500"),
    },
    statuses={
        "confirmed": "bg-green-100 text-green-800 border-green-200",
        "pending": "bg-yellow-100 text-yellow-800 border-yellow-200",
        "urgent": "bg-red-100 text-red-800 border-red-200",
        "cancelled": "bg-gray-100 text-gray-800 border-gray-200",
        "completed": "bg-blue-100 text-blue-800 border-blue-200",
    },
    types={
        "General Consultation": "bg-blue-50 border-l-blue-400",
        "Follow-up": "bg-purple-50 border-l-purple-400",
        "Initial Consultation": "bg-green-50 border-l-green-400",
        "Routine Checkup": "bg-gray-50 border-l-gray-400",
        "Emergency": "bg-red-50 border-l-red-400",
        "Physical Therapy": "bg-orange-50 border-l-orange-400",
        "Vaccination": "bg-cyan-50 border-l-cyan-400",
        "Mental Health": "bg-teal-50 border-l-teal-400",
        "Laboratory": "bg-amber-50 border-l-amber-400",
        "Surgery": "bg-red-100 border-l-red-500",
        "Diagnostic": "bg-amber-100 border-l-amber-500",
        "Consultation": "bg-blue-100 border-l-blue-500",
    },
)
