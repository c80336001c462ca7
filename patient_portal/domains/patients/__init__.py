"""Patients domain: resolution, onboarding and routing."""
