"""Clinic application for the SmartCare back end.

This package contains models, services, serializers, views and route
registrations for appointments, scheduling, labs, pharmacy, triage,
payments, notifications and user administration.
"""
