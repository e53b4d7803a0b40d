"""Clinidraft - AI draft generation for clinical intake review.

This package turns a patient's intake questionnaire into two machine-authored
drafts (a clinical note and a medical-certificate draft), validates them
against the intake itself, and persists the outcome for doctor review.
"""

__version__ = "0.1.0"
