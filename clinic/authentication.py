"""
Bearer JWT authentication for the API.

A thin subclass of SimpleJWT's ``JWTAuthentication`` that gives the
project's configuration a stable import path. Inactive users are
rejected by the parent class; missing credentials produce a 401
because ``authenticate_header`` advertises the ``Bearer`` scheme.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication


class BearerJWTAuthentication(JWTAuthentication):
    """Validate ``Authorization: Bearer <access token>`` headers."""

    www_authenticate_realm = 'smartcare'
