"""Clinic application for the healthcare backend.

Models, role-scoped query operations, the records assistant and the REST
and WebSocket endpoints in front of them.
"""
