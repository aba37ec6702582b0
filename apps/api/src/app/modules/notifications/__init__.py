"""
Notifications Module

Append-only audit log for service sessions, best-effort user
notifications, and direct messages between users.

API Endpoints:
- GET /notifications, PUT /notifications/{id}/read
- GET /messages, POST /messages, PUT /messages/{id}/read
"""
