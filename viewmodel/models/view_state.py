"""Client-side state of the calendar page: filters, dialogs, invitations."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from viewmodel.models.appointment_filter import FilterCriteria
from viewmodel.models.appointments import Appointment
from viewmodel.models.date_grid import ViewMode
from viewmodel.models.navigation import NavigationController

LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class ViewState:
    """Filter panel, detail dialog, and navigation state of one calendar page.

    ``applied`` drives the visible appointments. ``pending`` holds what the
    open filter panel shows and only reaches ``applied`` through
    :meth:`apply_filters`.
    """

    navigation: NavigationController
    applied: FilterCriteria = field(default_factory=FilterCriteria)
    pending: FilterCriteria = field(default_factory=FilterCriteria)
    filter_panel_open: bool = False
    selected_appointment: Appointment | None = None
    detail_date: date | None = None
    invite_emails: list[str] = field(default_factory=list)

    @property
    def reference_date(self) -> date:
        return self.navigation.reference_date

    @property
    def view_mode(self) -> ViewMode:
        return self.navigation.view_mode

    # ------------------------------------------------------------------
    # Filter panel
    # ------------------------------------------------------------------
    def open_filter_panel(self) -> None:
        self.pending = self.applied
        self.filter_panel_open = True

    def close_filter_panel(self) -> None:
        self.filter_panel_open = False

    def set_pending_clinic(self, clinic: str) -> None:
        self.pending = self.pending.with_clinic(clinic)

    def set_pending_status(self, status: str) -> None:
        self.pending = self.pending.with_status(status)

    def toggle_practitioner(self, practitioner_id: int) -> None:
        selected = set(self.pending.practitioner_ids)
        selected.symmetric_difference_update({practitioner_id})
        self.pending = self.pending.with_practitioners(selected)

    def select_all_practitioners(self, practitioner_ids: Iterable[int]) -> None:
        self.pending = self.pending.with_practitioners(practitioner_ids)

    def clear_practitioners(self) -> None:
        self.pending = self.pending.with_practitioners(())

    def reset_pending(self) -> None:
        """Return the panel's clinic and status selections to "all"."""

        self.pending = FilterCriteria(practitioner_ids=self.pending.practitioner_ids)

    def apply_filters(self) -> None:
        self.applied = self.pending
        self.filter_panel_open = False

    def clear_filters(self) -> None:
        self.applied = FilterCriteria()
        self.pending = FilterCriteria()

    # ------------------------------------------------------------------
    # Day and appointment dialogs
    # ------------------------------------------------------------------
    def open_day(self, day: date) -> None:
        self.detail_date = day

    def close_day(self) -> None:
        self.detail_date = None

    def select_appointment(self, appointment: Appointment) -> None:
        self.selected_appointment = appointment
        self.invite_emails = []

    def close_appointment(self) -> None:
        self.selected_appointment = None
        self.invite_emails = []

    @property
    def appointment_open(self) -> bool:
        return self.selected_appointment is not None

    def add_invite_email(self, email: str) -> bool:
        """Queue an invitation address; returns whether it was added."""

        candidate = (email or "").strip()
        if not candidate or not EMAIL_PATTERN.match(candidate):
            return False
        if candidate in self.invite_emails:
            return False
        self.invite_emails.append(candidate)
        return True

    def remove_invite_email(self, email: str) -> None:
        self.invite_emails = [value for value in self.invite_emails if value != email]

    def send_invitations(self) -> list[str]:
        """Hand the queued addresses off and close the appointment dialog."""

        recipients = list(self.invite_emails)
        if self.selected_appointment is not None:
            LOGGER.info(
                "Sending invitations for appointment %s to %s",
                self.selected_appointment.id,
                recipients,
            )
        self.close_appointment()
        return recipients
