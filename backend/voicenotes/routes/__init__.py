"""
VoiceNotes Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:    POST /api/auth/signup, POST /api/auth/login, GET /api/auth/me
    - notes.py:   POST/GET /api/notes, GET/PUT/DELETE /api/notes/{id}
    - ai.py:      POST /api/ai/transcribe, POST /api/ai/summarize
    - health.py:  GET  /health

Routes extract request data, resolve the caller through the auth
dependencies, call one service method and shape the response. Errors are
raised as application exceptions and formatted by the handlers in main.py.
"""
