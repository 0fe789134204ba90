"""Core domain logic for the HealthCare patient portal.

This package contains the advisory rules, appointment scheduling and booking
workflow, isolated from the hosted backend so they stay easy to test and reason about.
"""
