"""Terminal front end: prompts, menus and the ``clinicdemo`` command."""

from .menu import ClinicApp
from .prompts import Prompter, UserAborted

__all__ = ["ClinicApp", "Prompter", "UserAborted"]
