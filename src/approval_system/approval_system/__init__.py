"""Approval System package.

This package is organized by feature modules (forms, templates, routing,
documents, ...) with a thin Flask controller layer and service/repository
layers around a pure routing engine.
"""
