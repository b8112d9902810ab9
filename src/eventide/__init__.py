"""Eventide: event registration & attendance service.

This package is organized by feature modules (events, registrations, checkin, ...)
with a thin Flask controller layer and service/repository layers.
"""
