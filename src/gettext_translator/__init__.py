"""Gettext catalog translation helper: review store, changelog and write-back."""

APP_ID = "gettext_translator"
__version__ = "0.4.0"
