"""Appointment availability, lifecycle rules and persistence."""
