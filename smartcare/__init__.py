"""SmartCare hospital back end: Django project package."""
