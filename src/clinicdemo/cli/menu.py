"""Interactive menus for the clinic demo.

ClinicApp owns one event loop for the whole session and runs each store
operation on it between prompts. The store is injected, so the same menus
drive the remote client or the local JSON store.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from .. import app
from ..app.queries import fetch_all_patients, search_care_plans
from ..errors import StoreError
from ..fetch import CompositeFetcher
from ..fhir.display import patient_name
from ..protocols import Store
from .prompts import Prompter, UserAborted

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

BACK = "back"


class ClinicApp:
    """Menu-driven front end over a Store."""

    def __init__(
        self,
        store: Store,
        fetcher: CompositeFetcher | None = None,
        prompter: Prompter | None = None,
    ):
        self.store = store
        self.fetcher = fetcher or CompositeFetcher()
        self.prompt = prompter or Prompter()
        self._loop = asyncio.new_event_loop()

    def close(self) -> None:
        self._loop.close()

    def run(self, coro: Awaitable[T], status: str = "") -> T:
        """Run one store coroutine to completion on the session loop."""
        if status:
            self.prompt.echo(status)
        try:
            return self._loop.run_until_complete(coro)
        except KeyboardInterrupt:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            raise

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def report(self, output: app.OperationOutput) -> None:
        """Print an operation's result or error, its timing, then pause."""
        if output.error:
            self.prompt.show_error(output.error)
        else:
            self.prompt.echo(f"\n{_indent_first(output.result)}")
            if output.elapsed_ms is not None and output.timing_note:
                self.prompt.show_timing(output.timing_note, output.elapsed_ms)
        self.prompt.press_enter()

    def _build(self, model: type[M], **fields: Any) -> M | None:
        """Validate form answers, reporting the first problem."""
        try:
            return model(**fields)
        except ValidationError as e:
            first = e.errors()[0]
            self.prompt.show_error(first["msg"].removeprefix("Value error, "))
            self.prompt.press_enter()
            return None

    # ------------------------------------------------------------------
    # Menus
    # ------------------------------------------------------------------

    def main_menu(self) -> None:
        actions: dict[str, Callable[[], None]] = {
            "seed": self.seed_data,
            "summary": self.patient_summary,
            "dashboard": self.clinic_dashboard,
            "manage": self.manage_menu,
            "unseed": self.delete_seed_data,
        }
        while True:
            try:
                choice = self.prompt.select(
                    "Community Health Clinic",
                    [
                        ("Seed Sample Data", "seed"),
                        ("Patient Summary", "summary"),
                        ("Clinic Dashboard", "dashboard"),
                        ("Manage Data", "manage"),
                        ("Delete Seed Data", "unseed"),
                        ("Exit", "exit"),
                    ],
                )
            except UserAborted:
                choice = "exit"
            if choice == "exit":
                self.prompt.echo("\nGoodbye!")
                return
            self._dispatch(actions[choice])

    def manage_menu(self) -> None:
        self._submenu(
            "Manage Data",
            [
                ("Patient Management", self.patient_menu),
                ("Clinical Records", self.clinical_menu),
                ("Health Plans", self.health_plan_menu),
            ],
        )

    def patient_menu(self) -> None:
        self._submenu(
            "Patient Management",
            [
                ("Register New Patient", self.register_patient),
                ("List All Patients", self.list_patients),
                ("View Patient Details", self.view_patient),
                ("Update Contact Info", self.update_contact),
                ("Delete Patient", self.delete_patient),
            ],
        )

    def clinical_menu(self) -> None:
        self._submenu(
            "Clinical Records",
            [
                ("Record Vital Signs", self.record_vitals),
                ("View Patient Vitals", self.view_vitals),
                ("Record Diagnosis", self.record_diagnosis),
                ("View Patient Diagnoses", self.view_diagnoses),
            ],
        )

    def health_plan_menu(self) -> None:
        self._submenu(
            "Health Plans",
            [
                ("Create New Plan", self.create_plan),
                ("Add Activity to Plan", self.add_activity),
                ("Complete Activity", self.complete_activity),
                ("View Plan Status", self.view_plan_status),
            ],
        )

    def _submenu(self, title: str, entries: list[tuple[str, Callable[[], None]]]) -> None:
        options: list[tuple[str, Any]] = list(entries)
        options.append(("← Back", BACK))
        while True:
            try:
                action = self.prompt.select(title, options)
            except UserAborted:
                return
            if action == BACK:
                return
            self._dispatch(action)

    def _dispatch(self, action: Callable[[], None]) -> None:
        try:
            action()
        except UserAborted:
            return
        except KeyboardInterrupt:
            # Ctrl-C while a store call was running
            self.prompt.show_error("cancelled")

    # ------------------------------------------------------------------
    # Pickers
    # ------------------------------------------------------------------

    def pick_patient(self) -> str | None:
        """Choose a patient from the store; None if there are none."""
        try:
            patients = self.run(fetch_all_patients(self.store), "Loading patients...")
        except StoreError as e:
            self.prompt.show_error(f"searching patients: {e}")
            self.prompt.press_enter()
            return None

        if not patients:
            self.prompt.echo("\n  No patients found. Try seeding sample data first.")
            self.prompt.press_enter()
            return None

        options = [
            (f"{patient_name(p)} ({p.get('birthDate', '')})", p["id"])
            for p in patients
            if p.get("id")
        ]
        return self.prompt.select("Select a patient", options, filtering=True)

    def pick_care_plan(self, patient_id: str) -> str | None:
        try:
            plans = self.run(search_care_plans(self.store, patient_id), "Loading care plans...")
        except StoreError as e:
            self.prompt.show_error(f"searching care plans: {e}")
            self.prompt.press_enter()
            return None

        options = [
            (f"{p.get('title', '')} ({p['id'][:8]})", p["id"]) for p in plans if p.get("id")
        ]
        if not options:
            self.prompt.echo("\n  No active care plans found for this patient.")
            self.prompt.press_enter()
            return None
        return self.prompt.select("Select a care plan", options)

    # ------------------------------------------------------------------
    # Top-level actions
    # ------------------------------------------------------------------

    def seed_data(self) -> None:
        if not self.prompt.confirm(
            "Seed sample data?",
            "Creates 5 patients with vitals, lab results, conditions, and care plans.",
        ):
            return
        self.report(self.run(app.seed_sample_data(self.store), "Seeding sample data..."))

    def delete_seed_data(self) -> None:
        if not self.prompt.confirm(
            "Delete all seed data?",
            'Only removes resources created by "Seed Sample Data". Your own data is safe.',
        ):
            return
        self.report(self.run(app.delete_seed_data(self.store), "Deleting seed data..."))

    def patient_summary(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        output = self.run(
            app.patient_summary(self.store, patient_id, self.fetcher),
            "Loading patient summary...",
        )
        self.report(output)

    def clinic_dashboard(self) -> None:
        self.report(self.run(app.clinic_dashboard(self.store), "Loading clinic dashboard..."))

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def register_patient(self) -> None:
        given = self.prompt.ask("First name", required=True)
        family = self.prompt.ask("Last name", required=True)
        birth_date = self.prompt.ask("Date of birth (YYYY-MM-DD)", required=True)
        gender = self.prompt.select(
            "Gender", [(g, g) for g in ("male", "female", "other", "unknown")]
        )
        input_data = self._build(
            app.RegisterPatientInput,
            given=given, family=family, birth_date=birth_date, gender=gender,
        )
        if input_data is None:
            return
        self.report(self.run(app.register_patient(self.store, input_data), "Registering patient..."))

    def list_patients(self) -> None:
        self.report(self.run(app.list_patients(self.store), "Loading patients..."))

    def view_patient(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        self.report(self.run(app.view_patient(self.store, patient_id), "Loading patient..."))

    def update_contact(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        phone = self.prompt.ask("Phone number (leave blank to skip)")
        email = self.prompt.ask("Email address (leave blank to skip)")
        input_data = self._build(
            app.UpdateContactInput, patient_id=patient_id, phone=phone, email=email
        )
        if input_data is None:
            return
        self.report(self.run(app.update_contact(self.store, input_data), "Updating patient..."))

    def delete_patient(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        if not self.prompt.confirm("Delete this patient?", "This action cannot be undone."):
            return
        self.report(self.run(app.delete_patient(self.store, patient_id), "Deleting patient..."))

    # ------------------------------------------------------------------
    # Clinical records
    # ------------------------------------------------------------------

    def record_vitals(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        vital_type = self.prompt.select(
            "Vital sign type",
            [("Blood Pressure", "bp"), ("Weight", "weight"), ("Heart Rate", "heart-rate")],
        )

        fields: dict[str, Any] = {"patient_id": patient_id, "vital_type": vital_type}
        if vital_type == "bp":
            fields["systolic"] = self.prompt.ask("Systolic (mmHg)", required=True)
            fields["diastolic"] = self.prompt.ask("Diastolic (mmHg)", required=True)
        elif vital_type == "weight":
            fields["value"] = self.prompt.ask("Weight (kg)", required=True)
        else:
            fields["value"] = self.prompt.ask("Heart rate (bpm)", required=True)

        input_data = self._build(app.RecordVitalsInput, **fields)
        if input_data is None:
            return
        self.report(self.run(app.record_vitals(self.store, input_data), "Recording observation..."))

    def view_vitals(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        self.report(self.run(app.view_vitals(self.store, patient_id), "Loading observations..."))

    def record_diagnosis(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        code = self.prompt.ask("ICD-10 code (e.g., I10)", required=True)
        label = self.prompt.ask("Display name (e.g., Hypertension)", required=True)
        input_data = self._build(
            app.RecordDiagnosisInput, patient_id=patient_id, code=code, display=label
        )
        if input_data is None:
            return
        self.report(self.run(app.record_diagnosis(self.store, input_data), "Recording diagnosis..."))

    def view_diagnoses(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        self.report(self.run(app.view_diagnoses(self.store, patient_id), "Loading diagnoses..."))

    # ------------------------------------------------------------------
    # Health plans
    # ------------------------------------------------------------------

    def create_plan(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        title = self.prompt.ask("Plan title", required=True)
        input_data = self._build(app.CreatePlanInput, patient_id=patient_id, title=title)
        if input_data is None:
            return
        self.report(self.run(app.create_plan(self.store, input_data), "Creating care plan..."))

    def add_activity(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        care_plan_id = self.pick_care_plan(patient_id)
        if not care_plan_id:
            return
        description = self.prompt.ask("Activity description", required=True)
        due = self.prompt.ask("Due date (optional, YYYY-MM-DD)")
        input_data = self._build(
            app.AddActivityInput, care_plan_id=care_plan_id, description=description, due=due
        )
        if input_data is None:
            return
        self.report(self.run(app.add_activity(self.store, input_data), "Adding activity..."))

    def complete_activity(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        care_plan_id = self.pick_care_plan(patient_id)
        if not care_plan_id:
            return

        try:
            care_plan = self.run(
                self.store.read_resource("CarePlan", care_plan_id), "Loading care plan..."
            )
        except StoreError as e:
            self.prompt.show_error(f"reading care plan: {e}")
            self.prompt.press_enter()
            return

        if not care_plan.get("activity"):
            self.prompt.echo("\n  No activities in this care plan.")
            self.prompt.press_enter()
            return
        pending = app.incomplete_activities(care_plan)
        if not pending:
            self.prompt.echo("\n  All activities are already completed.")
            self.prompt.press_enter()
            return

        index = self.prompt.select(
            "Select activity to complete",
            [(f"{i + 1}. {description}", i) for i, description in pending],
        )
        input_data = app.CompleteActivityInput(care_plan_id=care_plan_id, activity_index=index)
        self.report(self.run(app.complete_activity(self.store, input_data), "Updating care plan..."))

    def view_plan_status(self) -> None:
        patient_id = self.pick_patient()
        if not patient_id:
            return
        self.report(self.run(app.view_plan_status(self.store, patient_id), "Loading care plans..."))


def _indent_first(text: str) -> str:
    """Single-line results read as messages; indent them like one."""
    return f"  {text}" if "\n" not in text else text
