"""Data model for the FRMS compliance engine."""
