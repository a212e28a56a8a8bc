"""FHIR resource builders and text formatting.

Usage:
    from clinicdemo.fhir import resources, display

    body = resources.new_condition(patient_id, "I10", "Essential Hypertension")
    print(display.format_condition(body))
"""

from . import display, resources

__all__ = ["display", "resources"]
