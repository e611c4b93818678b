"""
Knowledge Scout Backend - API Routes Package
============================================

Route Inventory:
    - health.py:     GET /health, GET /api/health, GET /
    - auth.py:       POST /api/auth/login, POST /api/auth/register, GET /api/auth/me
    - documents.py:  /api/documents (list, get, upload, delete, reprocess, test-extraction)
    - ai.py:         POST /api/documents/{id}/summary, POST /api/documents/{id}/questions
    - chat.py:       /api/chat/sessions (+ messages)

Design Principle:
    Routes are THIN. They extract request data, call a service, and let
    the global exception handlers format failures.
"""
